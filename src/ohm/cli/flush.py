"""ohm flush: delete every key in the selected database."""

from __future__ import annotations

import redis
import typer

from ohm.cli import _exitcodes as ec
from ohm.cli._output import print_error, print_object
from ohm.cli._store import open_client, resolve_url


def flush_cmd(
    yes: bool = typer.Option(False, "--yes", help="Confirm deleting every key"),
) -> None:
    """Run FLUSHDB against the selected database."""
    from ohm.cli import state

    if not yes:
        print_error("Refusing to flush without --yes")
        raise typer.Exit(ec.USAGE_ERROR)

    url = resolve_url()
    try:
        open_client().flushdb()
    except redis.RedisError as e:
        print_error(f"Cannot reach Redis: {e}")
        raise typer.Exit(ec.DATABASE_ERROR)

    if state.json_output:
        print_object({"flushed": True, "url": url}, json_mode=True)
    else:
        print(f"Flushed {url}")
