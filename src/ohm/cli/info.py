"""ohm info: show server status and per-model counts."""

from __future__ import annotations

from collections import Counter
from typing import Any, Optional

import redis
import typer

from ohm.cli import _exitcodes as ec
from ohm.cli._models import load_bound_models
from ohm.cli._output import print_error, print_object
from ohm.cli._store import open_client, resolve_url


def _server_version(client: redis.Redis) -> str:
    try:
        return str(client.info("server").get("redis_version", "unknown"))
    except redis.ResponseError:
        # Some Redis-compatible servers don't implement INFO sections.
        return "unknown"


def info_cmd(
    models: Optional[str] = typer.Option(None, "--models", help="Python import path for models"),
    models_path: Optional[str] = typer.Option(
        None, "--models-path", help="Filesystem path to models"
    ),
    keys: bool = typer.Option(False, "--keys", help="Count keys per namespace (uses SCAN)"),
) -> None:
    """Show server status and, with models, how many instances each one has."""
    from ohm.cli import state

    json_mode = state.json_output
    client = open_client()

    try:
        data: dict[str, Any] = {
            "url": resolve_url(),
            "redis_version": _server_version(client),
            "dbsize": int(client.dbsize()),
        }

        if keys:
            namespaces = Counter(key.split(":", 1)[0] for key in client.scan_iter(count=500))
            data["namespaces"] = dict(sorted(namespaces.items()))

        if models or models_path:
            found = load_bound_models(models, models_path)
            data["model_counts"] = {name: model.all().size() for name, model in found.items()}
    except redis.RedisError as e:
        print_error(f"Cannot reach Redis: {e}")
        raise typer.Exit(ec.DATABASE_ERROR)

    if json_mode:
        print_object(data, json_mode=True)
        return

    print(f"URL: {data['url']}")
    print(f"Redis version: {data['redis_version']}")
    print(f"Keys: {data['dbsize']}")
    if "namespaces" in data:
        print("\nNamespaces:")
        for name, count in data["namespaces"].items():
            print(f"  {name}: {count}")
    if "model_counts" in data:
        print("\nModel counts:")
        for name, count in data["model_counts"].items():
            print(f"  {name}: {count}")
