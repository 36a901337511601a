"""Schema descriptors for models and the immutable per-model ``Schema``.

Every declared field is a descriptor reading from and writing to the model's
attribute map, so there is one generic get/set path keyed by field name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import TypeAdapter

from ohm import registry
from ohm.collection import Set
from ohm.keys import collection_key

if TYPE_CHECKING:
    from ohm.collection import MultiSet
    from ohm.model import Model

T = TypeVar("T")


class Attribute(Generic[T]):
    """A persisted attribute, stored as a string in the model hash.

    ``Attribute(int)`` casts the stored string on read (pydantic lax mode).
    ``index=True`` and ``unique=True`` declare an index or a unique index.
    """

    kind = "attribute"

    def __init__(self, type_: Any = None, *, index: bool = False, unique: bool = False) -> None:
        self.type_ = type_
        self.index = index
        self.unique = unique
        self.name: str = ""
        self.adapter: TypeAdapter[Any] | None = TypeAdapter(type_) if type_ is not None else None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, obj: Any, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        return self.cast(obj._attributes.get(self.name))

    def __set__(self, obj: Any, value: Any) -> None:
        obj._attributes[self.name] = value

    def cast(self, value: Any) -> Any:
        if self.adapter is None or value is None or value == "":
            return value
        return self.adapter.validate_python(value)

    def __repr__(self) -> str:
        return f"Attribute({self.name!r})"


class ReferenceId(Attribute[str]):
    """The ``<name>_id`` attribute behind a ``Reference``; always indexed."""

    def __init__(self, reference: str) -> None:
        super().__init__(index=True)
        self.reference = reference

    def __set__(self, obj: Any, value: Any) -> None:
        obj._memo.pop(self.reference, None)
        super().__set__(obj, value)


class Counter:
    """A counter kept in ``<Model>:<id>:counters``.

    Counters are only changed with ``incr``/``decr`` and read as 0 before the
    model is saved.
    """

    kind = "counter"

    def __init__(self) -> None:
        self.name: str = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, obj: Any, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        return obj._counter(self.name)

    def __set__(self, obj: Any, value: Any) -> None:
        raise AttributeError(f"Counter '{self.name}' can only be changed with incr/decr")


class Reference:
    """A reference to another model, stored in an indexed ``<name>_id`` attribute.

    Reading ``post.user`` loads the referenced model once and memoizes it;
    assigning ``post.user = u`` (or ``post.user_id = ...``) clears the memo.
    """

    kind = "reference"

    def __init__(self, model: registry.ModelRef) -> None:
        self.model = model
        self.name: str = ""

    @property
    def id_attribute(self) -> str:
        return f"{self.name}_id"

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, obj: Any, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        memo = obj._memo
        if self.name not in memo:
            target = registry.resolve(self.model)
            memo[self.name] = target.by_id(getattr(obj, self.id_attribute))
        return memo[self.name]

    def __set__(self, obj: Any, value: Any) -> None:
        obj._memo.pop(self.name, None)
        setattr(obj, self.id_attribute, value.id if value is not None else None)


class SetOf:
    """A named set of another model's ids, stored in ``<Model>:<id>:<name>``.

    Requires a saved owner; removed together with the owner.
    """

    kind = "set"

    def __init__(self, model: registry.ModelRef) -> None:
        self.model = model
        self.name: str = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, obj: Any, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        target = registry.resolve(self.model)
        key = collection_key(type(obj).__model_name__, obj.id, self.name)
        return Set(key, target.key, target, db=type(obj).db())


class CollectionOf:
    """The models referencing the owner, e.g. ``Post.find(user_id=user.id)``."""

    kind = "collection"

    def __init__(self, model: registry.ModelRef, reference: str | None = None) -> None:
        self.model = model
        self.reference = reference
        self.name: str = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        if self.reference is None:
            self.reference = to_reference(owner.__name__)

    def __get__(self, obj: Any, objtype: type | None = None) -> Set | MultiSet | CollectionOf:
        if obj is None:
            return self
        target = registry.resolve(self.model)
        return target.find({f"{self.reference}_id": obj.id})


def to_reference(class_name: str) -> str:
    """``BlogPost`` -> ``blog_post``."""
    return re.sub(r"([a-z\d])([A-Z])", r"\1_\2", class_name).lower()


@dataclass(frozen=True)
class FieldSpec:
    """One entry of a model schema."""

    name: str
    kind: str
    computed: bool = False


@dataclass(frozen=True)
class Schema:
    """Immutable description of a model type, built once at class creation."""

    model_name: str
    fields: tuple[FieldSpec, ...]
    attributes: tuple[str, ...]
    counters: tuple[str, ...]
    indices: tuple[str, ...]
    uniques: tuple[str, ...]
    collections: tuple[str, ...]
    references: tuple[str, ...]

    def adapters(self, model: type) -> dict[str, TypeAdapter[Any]]:
        """The pydantic adapters of the typed attributes, by name."""
        typed: dict[str, TypeAdapter[Any]] = {}
        for name in self.attributes:
            desc = getattr(model, name)
            if isinstance(desc, Attribute) and desc.adapter is not None:
                typed[name] = desc.adapter
        return typed


_DESCRIPTORS = (Attribute, Counter, Reference, SetOf, CollectionOf)


def _append(items: list[str], name: str) -> None:
    if name not in items:
        items.append(name)


def build_schema(
    cls: type,
    model_name: str,
    *,
    indices: tuple[str, ...] | list[str] = (),
    uniques: tuple[str, ...] | list[str] = (),
) -> Schema:
    """Collect descriptors (own and inherited) and computed indices into a Schema."""
    for name, value in list(vars(cls).items()):
        if isinstance(value, Reference) and not isinstance(
            vars(cls).get(value.id_attribute), Attribute
        ):
            id_attr = ReferenceId(name)
            id_attr.__set_name__(cls, value.id_attribute)
            setattr(cls, value.id_attribute, id_attr)

    declared: dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        for name, value in vars(klass).items():
            if isinstance(value, _DESCRIPTORS):
                declared[name] = value

    fields: list[FieldSpec] = []
    attributes: list[str] = []
    counters: list[str] = []
    index_names: list[str] = []
    unique_names: list[str] = []
    collections: list[str] = []
    references: list[str] = []

    for name, desc in declared.items():
        fields.append(FieldSpec(name=name, kind=desc.kind))
        if isinstance(desc, Attribute):
            attributes.append(name)
            if desc.index:
                _append(index_names, name)
            if desc.unique:
                _append(unique_names, name)
        elif isinstance(desc, Counter):
            counters.append(name)
        elif isinstance(desc, Reference):
            references.append(name)
        elif isinstance(desc, SetOf):
            collections.append(name)

    inherited = [
        base.__ohm_schema__ for base in cls.__mro__[1:] if "__ohm_schema__" in vars(base)
    ]
    computed_indices = [n for s in inherited for n in s.indices if n not in declared]
    computed_uniques = [n for s in inherited for n in s.uniques if n not in declared]

    for kind, names, target in (
        ("index", [*computed_indices, *indices], index_names),
        ("unique", [*computed_uniques, *uniques], unique_names),
    ):
        for name in names:
            if not hasattr(cls, name):
                raise TypeError(
                    f"Model '{model_name}' declares {kind} '{name}' "
                    f"but has no attribute or property with that name"
                )
            if name not in target:
                target.append(name)
                if name not in declared:
                    fields.append(FieldSpec(name=name, kind=kind, computed=True))

    return Schema(
        model_name=model_name,
        fields=tuple(fields),
        attributes=tuple(attributes),
        counters=tuple(counters),
        indices=tuple(index_names),
        uniques=tuple(unique_names),
        collections=tuple(collections),
        references=tuple(references),
    )
