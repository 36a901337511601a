"""Connection manager: one lazily created Redis client per logical context.

Clients are cached per thread, keyed by the context name ("main" for the
global connection, the model name for model-specific connections).
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import redis

from ohm.config import OhmConfig

logger = logging.getLogger(__name__)

_threaded = threading.local()


def _connections() -> dict[str, redis.Redis]:
    conns = getattr(_threaded, "connections", None)
    if conns is None:
        conns = {}
        _threaded.connections = conns
    return conns


def create_client(options: dict[str, Any]) -> redis.Redis:
    """Build a Redis client from connection options.

    ``url`` goes through ``redis.from_url``; everything else is passed on as
    keyword arguments. Responses are decoded to ``str`` unless told otherwise.
    """
    opts = dict(options)
    opts.setdefault("decode_responses", True)
    url = opts.pop("url", None)
    if url:
        return redis.from_url(url, **opts)
    return redis.Redis(**opts)


class Connection:
    """Lazily connects to Redis and caches the client for its context."""

    def __init__(self, context: str = "main", options: dict[str, Any] | None = None) -> None:
        self.context = context
        self.options: dict[str, Any] = dict(options or {})

    def reset(self) -> None:
        _connections().pop(self.context, None)

    def start(self, **options: Any) -> None:
        self.options = options
        self.reset()

    @property
    def redis(self) -> redis.Redis:
        conns = _connections()
        client = conns.get(self.context)
        if client is None:
            logger.debug("Opening Redis connection for context %s", self.context)
            client = create_client(self.options)
            conns[self.context] = client
        return client


_conn: Connection | None = None


def conn() -> Connection:
    """The global connection, configured from the environment on first use."""
    global _conn
    if _conn is None:
        config = OhmConfig.from_env()
        _conn = Connection(config.default_context, config.connection_options())
    return _conn


def connect(**options: Any) -> None:
    """Store the connection options for the global Redis connection.

    Examples::

        ohm.connect(host="10.0.1.1", port=6380, db=1)
        ohm.connect(url="redis://10.0.1.1:6380/1")
    """
    conn().start(**options)


def client() -> redis.Redis:
    """The global Redis client, for ad hoc commands."""
    return conn().redis


def flush() -> None:
    client().flushdb()


def reset_all() -> None:
    """Drop every cached client of the current thread."""
    _connections().clear()
