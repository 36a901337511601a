"""Server-side Lua scripts, loaded once by logical name and run by SHA1.

``run`` tries EVALSHA first and only uploads the full source with EVAL when
Redis answers NOSCRIPT, which keeps large scripts off the wire once cached.
"""

from __future__ import annotations

import hashlib
import logging
import os
from collections.abc import Callable, Sequence
from typing import Any, Union

import redis
from redis.exceptions import NoScriptError

from ohm.errors import ScriptNotFoundError

logger = logging.getLogger(__name__)

ScriptSource = Union[str, bytes]
ScriptLoader = Callable[[str], ScriptSource]


class FileScriptLoader:
    """Loads ``<dir>/<name>.lua``."""

    def __init__(self, dir: str | os.PathLike[str]) -> None:
        self.dir = os.fspath(dir)

    def __call__(self, name: str) -> bytes:
        path = os.path.join(self.dir, f"{name}.lua")
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            raise ScriptNotFoundError(name, path) from None


class _ScriptCache(dict):
    """Script bodies by name, loaded on first access and kept indefinitely."""

    def __init__(self, loader: ScriptLoader) -> None:
        super().__init__()
        self.loader = loader

    def __missing__(self, name: str) -> ScriptSource:
        logger.debug("Loading Lua script %s", name)
        source = self.loader(name)
        self[name] = source
        return source


class Lua:
    def __init__(
        self, loader: ScriptLoader | str | os.PathLike[str], redis_client: redis.Redis
    ) -> None:
        if not callable(loader):
            loader = FileScriptLoader(loader)
        self.redis = redis_client
        self.files = _ScriptCache(loader)
        self.scripts: dict[ScriptSource, str] = {}

    def run_file(self, name: str, keys: Sequence[Any] = (), argv: Sequence[Any] = ()) -> Any:
        return self.run(self.files[name], keys=keys, argv=argv)

    def run(self, script: ScriptSource, keys: Sequence[Any] = (), argv: Sequence[Any] = ()) -> Any:
        try:
            return self.redis.evalsha(self.sha(script), len(keys), *keys, *argv)
        except NoScriptError:
            logger.debug("Script %s not cached by the server, sending source", self.sha(script))
            return self.redis.eval(script, len(keys), *keys, *argv)

    def sha(self, script: ScriptSource) -> str:
        digest = self.scripts.get(script)
        if digest is None:
            body = script.encode("utf-8") if isinstance(script, str) else script
            digest = hashlib.sha1(body).hexdigest()
            self.scripts[script] = digest
        return digest
