"""ohm find: query models through their indices."""

from __future__ import annotations

from typing import Any, Optional

import redis
import typer

from ohm.cli import _exitcodes as ec
from ohm.cli._models import require_model
from ohm.cli._output import print_error, print_table
from ohm.errors import IndexNotFound, MalformedQueryError


def parse_filters(args: list[str]) -> dict[str, Any]:
    """Parse ``att=value`` pairs; a repeated attribute collects a list of values."""
    query: dict[str, Any] = {}
    for arg in args:
        att, sep, value = arg.partition("=")
        if not sep or not att:
            raise ValueError(f"Invalid filter '{arg}' (expected ATT=VALUE)")
        if att in query:
            existing = query[att]
            query[att] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            query[att] = value
    return query


def find_cmd(
    model_name: str = typer.Argument(..., help="Model name"),
    filter_args: Optional[list[str]] = typer.Argument(None, help="ATT=VALUE filters"),
    models: Optional[str] = typer.Option(None, "--models", help="Python import path for models"),
    models_path: Optional[str] = typer.Option(
        None, "--models-path", help="Filesystem path to models"
    ),
    sort_by: Optional[str] = typer.Option(None, "--sort-by", help="Attribute to sort by"),
    order: Optional[str] = typer.Option(
        None, "--order", help="Sort order tokens, e.g. 'ALPHA DESC'"
    ),
    limit: Optional[int] = typer.Option(None, "--limit", help="Max results"),
) -> None:
    """List the models matching every filter (all models without filters)."""
    from ohm.cli import state

    try:
        query = parse_filters(filter_args or [])
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)

    model = require_model(model_name, models, models_path)
    window = (0, limit) if limit is not None else None

    try:
        collection = model.find(query) if query else model.all()
        if sort_by:
            results = collection.sort_by(sort_by, order=order, limit=window)
        else:
            results = collection.sort(order=order, limit=window)
    except (IndexNotFound, MalformedQueryError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)
    except redis.RedisError as e:
        print_error(f"Query failed: {e}")
        raise typer.Exit(ec.EXECUTION_FAILURE)

    attributes = list(model.__ohm_schema__.attributes)
    rows = [[m.id, *(m.attributes.get(att) for att in attributes)] for m in results]
    if not rows and not state.json_output:
        print("No results.")
        return
    print_table(["id", *attributes], rows, json_mode=state.json_output)
