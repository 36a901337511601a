"""Set and MultiSet: lazily executed views over index sets.

``Set`` wraps a single Redis set (``User:all``, ``User:indices:name:John``,
``User:1:posts``). ``MultiSet`` combines several index sets: the base keys
are intersected, then the deferred ``except_`` keys subtracted and the
deferred ``union`` keys added, in a temporary key that only lives for the
duration of one operation.

Chaining never mutates the receiver; every ``find``/``except_``/``union``
returns a new value::

    johns = User.find(name="John")
    adults = johns.find(age=30)          # johns is unchanged
    no_us = adults.except_(country="US")
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator, Mapping
from contextlib import AbstractContextManager, contextmanager
from typing import TYPE_CHECKING, Any

from ohm import indices
from ohm.keys import Key, temp_key

if TYPE_CHECKING:
    import redis

    from ohm.model import Model

logger = logging.getLogger(__name__)


def _sort_options(
    by: str | None, order: str | None, limit: tuple[int, int] | None
) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if by is not None:
        options["by"] = by
    for token in (order or "").upper().split():
        if token == "ALPHA":
            options["alpha"] = True
        elif token == "DESC":
            options["desc"] = True
        elif token != "ASC":
            raise ValueError(f"Invalid sort order token '{token}' (use ASC, DESC, ALPHA)")
    if limit is not None:
        start, num = limit
        options["start"] = start
        options["num"] = num
    return options


class Collection:
    """Behavior shared by ``Set`` and ``MultiSet``."""

    namespace: Key
    model: type[Model]

    def _execute(self) -> AbstractContextManager[str]:
        raise NotImplementedError

    def _db(self) -> redis.Redis:
        return self.model.db()

    def __iter__(self) -> Iterator[Model]:
        return iter(self.to_list())

    def to_list(self) -> list[Model]:
        """Fetch every member in one round trip."""
        return self._fetch(self.ids())

    def is_empty(self) -> bool:
        return self.size() == 0

    def size(self) -> int:
        with self._execute() as key:
            return int(self._db().scard(key))

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, model: Model) -> bool:
        """Only the id is checked; there is no type checking."""
        return self._exists(model.id)

    def __getitem__(self, id: Any) -> Model | None:
        """The member with this id, or None when it isn't part of the set."""
        if self._exists(id):
            return self.model.by_id(id)
        return None

    def ids(self) -> list[str]:
        with self._execute() as key:
            return list(self._db().smembers(key))

    def sort(
        self,
        *,
        by: str | None = None,
        get: str | None = None,
        order: str | None = None,
        limit: tuple[int, int] | None = None,
    ) -> list[Any]:
        """Sort by id (numerically unless ``order`` has ALPHA).

        ``limit`` is ``(offset, count)``. With ``get``, the raw values of that
        attribute are returned instead of models.
        """
        options = _sort_options(by, order, limit)
        with self._execute() as key:
            if get is not None:
                options["get"] = self.namespace[f"*->{get}"]
                return list(self._db().sort(key, **options))
            ids = list(self._db().sort(key, **options))
        return self._fetch(ids)

    def sort_by(
        self, att: str, *, order: str | None = None, limit: tuple[int, int] | None = None
    ) -> list[Model]:
        """Sort by an attribute, e.g. ``sort_by("name", order="ALPHA DESC")``.

        Slower than ``sort``: Redis reads every hash to compare.
        """
        return self.sort(by=self.namespace[f"*->{att}"], order=order, limit=limit)

    def first(self, *, by: str | None = None, order: str | None = None) -> Model | None:
        if by is not None:
            found = self.sort_by(by, order=order, limit=(0, 1))
        else:
            found = self.sort(order=order, limit=(0, 1))
        return found[0] if found else None

    def _exists(self, id: Any) -> bool:
        with self._execute() as key:
            return bool(self._db().sismember(key, id))

    def _fetch(self, ids: list[str]) -> list[Model]:
        if not ids:
            return []
        with self._db().pipeline(transaction=False) as pipe:
            for id in ids:
                pipe.hgetall(self.namespace[id])
            rows = pipe.execute()
        return [self.model._from_hash(id, atts) for id, atts in zip(ids, rows)]


class Set(Collection):
    """A collection backed by exactly one Redis set."""

    def __init__(
        self, key: str, namespace: Key, model: type[Model], db: redis.Redis | None = None
    ) -> None:
        self.key = key
        self.namespace = namespace
        self.model = model
        self._client = db

    def __repr__(self) -> str:
        return f"Set({self.key!r}, model={self.model.__model_name__})"

    def _db(self) -> redis.Redis:
        return self._client if self._client is not None else self.model.db()

    @contextmanager
    def _execute(self) -> Iterator[str]:
        yield self.key

    def add(self, model: Model) -> None:
        self._db().sadd(self.key, model.id)

    def delete(self, model: Model) -> None:
        self._db().srem(self.key, model.id)

    def replace(self, models: list[Model]) -> None:
        """Atomically replace every member with the given models."""
        ids = [model.id for model in models]
        with self._db().pipeline(transaction=True) as pipe:
            pipe.delete(self.key)
            if ids:
                pipe.sadd(self.key, *ids)
            pipe.execute()

    def find(self, query: Mapping[str, Any] | None = None, /, **kwargs: Any) -> MultiSet:
        keys = indices.filters(self.model, indices.merge_filters(query, kwargs))
        keys.append(Key(self.key))
        return MultiSet(keys, self.namespace, self.model)

    def except_(self, query: Mapping[str, Any] | None = None, /, **kwargs: Any) -> MultiSet:
        return MultiSet([Key(self.key)], self.namespace, self.model).except_(query, **kwargs)

    def union(self, query: Mapping[str, Any] | None = None, /, **kwargs: Any) -> MultiSet:
        return MultiSet([Key(self.key)], self.namespace, self.model).union(query, **kwargs)


class MultiSet(Collection):
    """Intersection of index sets with deferred difference and union lists."""

    def __init__(
        self,
        keys: list[Key],
        namespace: Key,
        model: type[Model],
        *,
        sdiff: tuple[Key, ...] = (),
        sunion: tuple[Key, ...] = (),
    ) -> None:
        self.keys = list(keys)
        self.namespace = namespace
        self.model = model
        self.sdiff = tuple(sdiff)
        self.sunion = tuple(sunion)

    def __repr__(self) -> str:
        return (
            f"MultiSet({self.keys!r}, except={list(self.sdiff)!r}, union={list(self.sunion)!r})"
        )

    def find(self, query: Mapping[str, Any] | None = None, /, **kwargs: Any) -> MultiSet:
        keys = indices.filters(self.model, indices.merge_filters(query, kwargs))
        return MultiSet(
            [*keys, *self.keys], self.namespace, self.model, sdiff=self.sdiff, sunion=self.sunion
        )

    def except_(self, query: Mapping[str, Any] | None = None, /, **kwargs: Any) -> MultiSet:
        keys = indices.filters(self.model, indices.merge_filters(query, kwargs))
        sdiff = tuple(dict.fromkeys([*self.sdiff, *keys]))
        return MultiSet(self.keys, self.namespace, self.model, sdiff=sdiff, sunion=self.sunion)

    def union(self, query: Mapping[str, Any] | None = None, /, **kwargs: Any) -> MultiSet:
        keys = indices.filters(self.model, indices.merge_filters(query, kwargs))
        sunion = tuple(dict.fromkeys([*self.sunion, *keys]))
        return MultiSet(self.keys, self.namespace, self.model, sdiff=self.sdiff, sunion=sunion)

    @contextmanager
    def _execute(self) -> Iterator[str]:
        db = self._db()
        key = temp_key(self.model.__model_name__, uuid.uuid4())
        try:
            db.sinterstore(key, self.keys)
            if self.sdiff:
                db.sdiffstore(key, [key, *self.sdiff])
            if self.sunion:
                db.sunionstore(key, [key, *self.sunion])
            logger.debug("Materialized %s from %d keys", key, len(self.keys))
            yield key
        finally:
            db.delete(key)
