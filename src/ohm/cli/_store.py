"""CLI helpers binding the global connection and loaded models to one Redis URL."""

from __future__ import annotations

from collections.abc import Iterable

import redis

import ohm
from ohm.config import OhmConfig
from ohm.model import Model


def resolve_url() -> str:
    """The URL from ``--url``, falling back to the environment config."""
    from ohm.cli import state

    return state.url or OhmConfig.from_env().redis_url


def open_client() -> redis.Redis:
    ohm.connect(url=resolve_url())
    return ohm.client()


def bind_models(models: Iterable[type[Model]]) -> None:
    """Point every model's own connection at the CLI URL."""
    url = resolve_url()
    for model in models:
        model.connect(url=url)
