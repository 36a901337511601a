"""Index and unique-index bookkeeping.

Indices are sets ``<Model>:indices:<att>:<value>`` holding the ids whose
value for ``att`` is ``value``; uniques are hashes ``<Model>:uniques:<att>``
mapping value to id. The write helpers take a pipeline already in MULTI so
they land in the same atomic block as the attribute hash.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from ohm.errors import IndexNotFound, MalformedQueryError, UniqueIndexViolation
from ohm.keys import Key, index_key, unique_key

if TYPE_CHECKING:
    from ohm.model import Model

_MULTI_VALUED = (list, tuple, set, frozenset)


def dump(value: Any) -> str:
    """The string form a value is stored and indexed under."""
    return "" if value is None else str(value)


def _indexable(value: Any) -> list[str]:
    values = value if isinstance(value, _MULTI_VALUED) else [value]
    return [dump(v) for v in values if dump(v) != ""]


def merge_filters(query: Any, kwargs: dict[str, Any]) -> Any:
    """Combine a positional filter mapping with keyword filters."""
    if query is None:
        return kwargs
    if kwargs and isinstance(query, Mapping):
        return {**query, **kwargs}
    return query


def filters(model: type[Model], query: Any) -> list[Key]:
    """Translate ``{att: value}`` into index keys.

    A list value expands into one key per element, all of them intersected.
    """
    if not isinstance(query, Mapping) or not query:
        raise MalformedQueryError(model.__model_name__, query)

    keys: list[Key] = []
    for att, value in query.items():
        if isinstance(value, _MULTI_VALUED) and not value:
            raise MalformedQueryError(
                model.__model_name__, query, f"'{att}' is filtered by an empty list"
            )
        keys.extend(to_indices(model, att, value))
    return keys


def to_indices(model: type[Model], att: str, value: Any) -> list[Key]:
    if att not in model.__ohm_schema__.indices:
        raise IndexNotFound(att, model.__model_name__)

    values = value if isinstance(value, _MULTI_VALUED) else [value]
    return [index_key(model.__model_name__, att, lookup(model, att, v)) for v in values]


def lookup(model: type[Model], att: str, value: Any) -> str:
    """The stored form of a lookup value: cast like the attribute, then dumped.

    A value the attribute can't cast is dumped as given; it can't match, since
    stored values always went through the cast.
    """
    cast = getattr(getattr(model, att, None), "cast", None)
    if cast is None:
        return dump(value)
    try:
        return dump(cast(value))
    except PydanticValidationError:
        return dump(value)


def unique_keys(model: type[Model]) -> list[Key]:
    return [unique_key(model.__model_name__, att) for att in model.__ohm_schema__.uniques]


def index_values(instance: Model | None, kind: str) -> dict[str, Any]:
    """Current values of the model's ``indices`` or ``uniques``, computed ones included.

    Empty without an instance.
    """
    if instance is None:
        return {}
    names = getattr(type(instance).__ohm_schema__, kind)
    return {name: getattr(instance, name) for name in names}


def detect_duplicate(
    reader: Any, model: type[Model], id: str, uniques: Mapping[str, Any]
) -> str | None:
    """The first unique attribute whose value already belongs to another id."""
    for att, value in uniques.items():
        if dump(value) == "":
            continue
        owner = reader.hget(unique_key(model.__model_name__, att), dump(value))
        if owner is not None and owner != id:
            return att
    return None


def verify_uniques(reader: Any, model: type[Model], id: str, uniques: Mapping[str, Any]) -> None:
    att = detect_duplicate(reader, model, id, uniques)
    if att is not None:
        raise UniqueIndexViolation(att)


def delete_uniques(pipe: Any, model: type[Model], snapshot: Mapping[str, Any]) -> None:
    for att, value in snapshot.items():
        if dump(value) != "":
            pipe.hdel(unique_key(model.__model_name__, att), dump(value))


def delete_indices(pipe: Any, model: type[Model], id: str, snapshot: Mapping[str, Any]) -> None:
    for att, value in snapshot.items():
        for v in _indexable(value):
            pipe.srem(index_key(model.__model_name__, att, v), id)


def save_uniques(pipe: Any, model: type[Model], id: str, values: Mapping[str, Any]) -> None:
    for att, value in values.items():
        if dump(value) != "":
            pipe.hset(unique_key(model.__model_name__, att), dump(value), id)


def save_indices(pipe: Any, model: type[Model], id: str, values: Mapping[str, Any]) -> None:
    for att, value in values.items():
        for v in _indexable(value):
            pipe.sadd(index_key(model.__model_name__, att, v), id)
