"""Key namespace builder.

Keys are plain strings joined with ``:``; ``Key`` adds ``[]`` to build nested
keys without carrying any connection or command behavior::

    >>> Key("User")[1]["counters"]
    'User:1:counters'
"""

from __future__ import annotations

from typing import Any


def key(namespace: Any, *segments: Any) -> str:
    """Build a key from a namespace and any number of segments."""
    return ":".join(str(part) for part in (namespace, *segments))


class Key(str):
    """A key string that builds nested keys with ``key[segment]``."""

    __slots__ = ()

    def __getitem__(self, segment: Any) -> Key:  # type: ignore[override]
        return Key(key(self, segment))


def model_key(model_name: str) -> Key:
    return Key(model_name)


def instance_key(model_name: str, id: Any) -> Key:
    return Key(model_name)[id]


def all_key(model_name: str) -> Key:
    return Key(model_name)["all"]


def id_key(model_name: str) -> Key:
    return Key(model_name)["id"]


def unique_key(model_name: str, attribute: str) -> Key:
    return Key(model_name)["uniques"][attribute]


def index_key(model_name: str, attribute: str, value: Any) -> Key:
    return Key(model_name)["indices"][attribute][value]


def collection_key(model_name: str, id: Any, name: str) -> Key:
    return Key(model_name)[id][name]


def counters_key(model_name: str, id: Any) -> Key:
    return Key(model_name)[id]["counters"]


def temp_key(model_name: str, token: Any) -> Key:
    return Key(model_name)["temp"][token]
