"""The model base class: identity, persistence and lookups.

Creating a model runs, in one optimistic transaction::

    INCR User:id                              # first save only
    SADD User:all 1
    HDEL User:uniques:email <old email>       # stale uniques/indices
    SREM User:indices:name:<old name> 1
    DEL User:1
    HSET User:1 name John email foo@bar.com
    SADD User:indices:name:John 1
    HSET User:uniques:email foo@bar.com 1

Counters and sets are not touched by ``save``; ``user.incr("points")`` runs
``HINCRBY User:1:counters points 1`` and ``user.posts.add(post)`` runs
``SADD User:1:posts <post id>``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from types import SimpleNamespace
from typing import Any, ClassVar

import redis
from pydantic import ValidationError as PydanticValidationError

from ohm import connection, indices, registry
from ohm.collection import MultiSet, Set
from ohm.config import OhmConfig
from ohm.connection import Connection
from ohm.errors import IndexNotFound, MissingID
from ohm.fields import Attribute, Schema, build_schema, to_reference
from ohm.keys import (
    Key,
    all_key,
    collection_key,
    counters_key,
    id_key,
    instance_key,
    model_key,
    unique_key,
)
from ohm.lua import Lua
from ohm.transaction import Transaction
from ohm.validations import Validations

logger = logging.getLogger(__name__)

TransactionHook = Callable[[Transaction], None]


class _KeyAccessor:
    """``User.key`` is the model namespace; ``user.key`` is the instance key."""

    def __get__(self, obj: Any, objtype: type[Model] | None = None) -> Key:
        if obj is None:
            assert objtype is not None
            return model_key(objtype.__model_name__)
        return instance_key(type(obj).__model_name__, obj.id)


class Model(Validations):
    """Base class for models stored as Redis hashes.

    Example::

        class User(Model, indices=("provider",)):
            name = Attribute(index=True)
            email = Attribute(unique=True)
            points = Counter()
            posts = SetOf("Post")

            @property
            def provider(self):
                return self.email.split("@")[-1]
    """

    __model_name__: ClassVar[str]
    __ohm_schema__: ClassVar[Schema]

    key = _KeyAccessor()

    def __init_subclass__(
        cls,
        name: str | None = None,
        indices: tuple[str, ...] | list[str] = (),
        uniques: tuple[str, ...] | list[str] = (),
        **kwargs: Any,
    ) -> None:
        super().__init_subclass__(**kwargs)
        cls.__model_name__ = name or cls.__name__
        cls.__ohm_schema__ = build_schema(
            cls, cls.__model_name__, indices=tuple(indices), uniques=tuple(uniques)
        )
        registry.register(cls)

    def __init__(self, **atts: Any) -> None:
        self._id: str | None = None
        self._attributes: dict[str, Any] = {}
        self._memo: dict[str, Any] = {}
        id = atts.pop("id", None)
        if id is not None:
            self._id = str(id)
        self.update_attributes(**atts)

    # -- connection --------------------------------------------------------

    @classmethod
    def conn(cls) -> Connection:
        existing = cls.__dict__.get("_conn")
        if existing is None:
            existing = Connection(cls.__model_name__, connection.conn().options)
            cls._conn = existing
        return existing

    @classmethod
    def connect(cls, **options: Any) -> None:
        cls.conn().start(**options)

    @classmethod
    def db(cls) -> redis.Redis:
        return cls.conn().redis

    @classmethod
    def lua(cls) -> Lua:
        """Script runner bound to the model connection, rebuilt when it changes."""
        db = cls.db()
        existing = cls.__dict__.get("_lua")
        if existing is None or existing.redis is not db:
            existing = Lua(OhmConfig.from_env().scripts_dir, db)
            cls._lua = existing
        return existing

    # -- lookups -----------------------------------------------------------

    @classmethod
    def by_id(cls, id: Any) -> Model | None:
        """The model stored under ``id``, or None."""
        if id is None or not cls.exists(id):
            return None
        return cls(id=id).load()

    @classmethod
    def exists(cls, id: Any) -> bool:
        return bool(cls.db().sismember(all_key(cls.__model_name__), str(id)))

    @classmethod
    def with_unique(cls, att: str, value: Any) -> Model | None:
        """Find a model by the value of a unique attribute."""
        if att not in cls.__ohm_schema__.uniques:
            raise IndexNotFound(att, cls.__model_name__)
        key = unique_key(cls.__model_name__, att)
        id = cls.db().hget(key, indices.lookup(cls, att, value))
        return cls.by_id(id) if id is not None else None

    @classmethod
    def find(cls, query: Mapping[str, Any] | None = None, /, **kwargs: Any) -> Set | MultiSet:
        """Find models by indexed values; a list value matches every element.

        ``User.find(name="John")`` is a ``Set``; more than one filter gives a
        ``MultiSet``.
        """
        keys = indices.filters(cls, indices.merge_filters(query, kwargs))
        if len(keys) == 1:
            return Set(keys[0], cls.key, cls)
        return MultiSet(keys, cls.key, cls)

    @classmethod
    def all(cls) -> Set:
        return Set(all_key(cls.__model_name__), cls.key, cls)

    @classmethod
    def create(cls, **atts: Any) -> Model | None:
        return cls(**atts).save()

    @classmethod
    def to_reference(cls) -> str:
        return to_reference(cls.__name__)

    @classmethod
    def new_id(cls) -> str:
        return str(cls.db().incr(id_key(cls.__model_name__)))

    @classmethod
    def _from_hash(cls, id: Any, atts: Mapping[str, Any]) -> Model:
        obj = cls.__new__(cls)
        obj._id = str(id)
        obj._attributes = dict(atts)
        obj._memo = {}
        return obj

    # -- identity ----------------------------------------------------------

    @property
    def id(self) -> str:
        if self._id is None:
            raise MissingID(type(self).__model_name__)
        return self._id

    @property
    def is_new(self) -> bool:
        return self._id is None

    def __eq__(self, other: object) -> bool:
        try:
            return isinstance(other, type(self)) and other.key == self.key
        except MissingID:
            return False

    def __hash__(self) -> int:
        return object.__hash__(self) if self.is_new else hash(self.key)

    def __repr__(self) -> str:
        schema = type(self).__ohm_schema__
        fields = ", ".join(f"{n}={self._attributes.get(n)!r}" for n in schema.attributes)
        ident = f"id={self._id!r}"
        return f"{type(self).__name__}({ident}{', ' if fields else ''}{fields})"

    # -- attributes --------------------------------------------------------

    @property
    def attributes(self) -> dict[str, Any]:
        return dict(self._attributes)

    def update_attributes(self, **atts: Any) -> None:
        for att, value in atts.items():
            descriptor = getattr(type(self), att, None)
            if att == "id" or not hasattr(descriptor, "__set__"):
                raise AttributeError(f"{type(self).__name__} has no assignable attribute '{att}'")
            setattr(self, att, value)

    def load(self) -> Model:
        """Reload every attribute from Redis."""
        if not self.is_new:
            self._attributes.update(self.db().hgetall(self.key))
            self._memo.clear()
        return self

    def get(self, att: str) -> Any:
        """Read one attribute straight from Redis, replacing the local value."""
        raw = self.db().hget(self.key, att)
        self._attributes[att] = raw
        self._memo.clear()
        descriptor = getattr(type(self), att, None)
        return descriptor.cast(raw) if isinstance(descriptor, Attribute) else raw

    def set(self, att: str, value: Any) -> None:
        """Write one attribute straight to Redis.

        Indices and uniques are not updated, so don't use this for indexed
        or unique attributes; ``update`` is the safe equivalent.
        """
        if indices.dump(value) == "":
            self.db().hdel(self.key, att)
        else:
            self.db().hset(self.key, att, indices.dump(value))
        self._attributes[att] = value
        self._memo.clear()

    def incr(self, att: str, count: int = 1) -> int:
        return int(self.db().hincrby(counters_key(type(self).__model_name__, self.id), att, count))

    def decr(self, att: str, count: int = 1) -> int:
        return self.incr(att, -count)

    def _counter(self, name: str) -> int:
        if self.is_new:
            return 0
        value = self.db().hget(counters_key(type(self).__model_name__, self.id), name)
        return int(value or 0)

    def to_dict(self) -> dict[str, Any]:
        """Export the id and errors only; override to whitelist more attributes."""
        data: dict[str, Any] = {}
        if not self.is_new:
            data["id"] = self.id
        if any(self.errors.values()):
            data["errors"] = {k: list(v) for k, v in self.errors.items() if v}
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    # -- validation --------------------------------------------------------

    def validate(self) -> None:
        """Typed attributes must coerce to their declared type."""
        for att, adapter in type(self).__ohm_schema__.adapters(type(self)).items():
            self.assert_type(att, self._attributes.get(att), adapter)

    def value_of(self, att: str) -> Any:
        """Cast value of ``att``, or the raw one when it doesn't coerce.

        Uncoercible values are reported by ``validate`` through ``assert_type``.
        """
        descriptor = getattr(type(self), att, None)
        if not isinstance(descriptor, Attribute):
            return getattr(self, att)
        raw = self._attributes.get(att)
        try:
            return descriptor.cast(raw)
        except PydanticValidationError:
            return raw

    # -- persistence -------------------------------------------------------

    def save(self, extend: TransactionHook | None = None) -> Model | None:
        """Validate, then persist. Returns None (and fills ``errors``) when invalid."""
        if not self.is_valid():
            return None
        return self.persist(extend)

    def persist(self, extend: TransactionHook | None = None) -> Model:
        """Save without validating.

        ``extend`` receives the transaction before it commits, so callers can
        add watches and phases that must be atomic with the save.
        """
        model = type(self)
        t = Transaction()
        t.add_watch(*indices.unique_keys(model))
        if not self.is_new:
            t.add_watch(self.key)

        @t.on_before
        def _assign_id() -> None:
            if self.is_new:
                self._id = model.new_id()

        @t.on_read
        def _read(reader: Any, store: SimpleNamespace) -> None:
            store.uniques = indices.index_values(self, "uniques")
            store.indices = indices.index_values(self, "indices")
            indices.verify_uniques(reader, model, self.id, store.uniques)
            store.attributes = self._dump_attributes()
            self._read_snapshot(reader, store)

        @t.on_write
        def _write(pipe: Any, store: SimpleNamespace) -> None:
            pipe.sadd(all_key(model.__model_name__), self.id)
            indices.delete_uniques(pipe, model, store.old_uniques)
            indices.delete_indices(pipe, model, self.id, store.old_indices)
            pipe.delete(self.key)
            if store.attributes:
                pipe.hset(self.key, mapping=store.attributes)
            indices.save_indices(pipe, model, self.id, store.indices)
            indices.save_uniques(pipe, model, self.id, store.uniques)

        if extend is not None:
            extend(t)

        t.commit(self.db())
        logger.debug("Saved %s", self.key)
        return self

    def update(self, **atts: Any) -> Model | None:
        self.update_attributes(**atts)
        return self.save()

    def delete(self, extend: TransactionHook | None = None) -> None:
        """Delete the hash, counters, sets, membership, indices and uniques."""
        model = type(self)
        schema = model.__ohm_schema__
        t = Transaction()
        t.add_watch(self.key, *indices.unique_keys(model))

        @t.on_read
        def _read(reader: Any, store: SimpleNamespace) -> None:
            self._read_snapshot(reader, store)

        @t.on_write
        def _write(pipe: Any, store: SimpleNamespace) -> None:
            indices.delete_uniques(pipe, model, store.old_uniques)
            indices.delete_indices(pipe, model, self.id, store.old_indices)
            for name in schema.collections:
                pipe.delete(collection_key(model.__model_name__, self.id, name))
            pipe.srem(all_key(model.__model_name__), self.id)
            pipe.delete(counters_key(model.__model_name__, self.id))
            pipe.delete(self.key)

        if extend is not None:
            extend(t)

        t.commit(self.db())
        logger.debug("Deleted %s", self.key)

    def _read_snapshot(self, reader: Any, store: SimpleNamespace) -> None:
        """Index and unique values of the last persisted version."""
        existing = reader.hgetall(self.key)
        snapshot = type(self)._from_hash(self.id, existing) if existing else None
        store.existing = existing
        store.old_uniques = indices.index_values(snapshot, "uniques")
        store.old_indices = indices.index_values(snapshot, "indices")

    def _dump_attributes(self) -> dict[str, str]:
        model = type(self)
        dumped: dict[str, str] = {}
        for att, raw in self._attributes.items():
            if indices.dump(raw) == "":
                continue
            value = getattr(self, att) if isinstance(getattr(model, att, None), Attribute) else raw
            dumped[att] = indices.dump(value)
        return dumped
