"""ohm show: print one stored model."""

from __future__ import annotations

from typing import Any, Optional

import redis
import typer

from ohm.cli import _exitcodes as ec
from ohm.cli._models import require_model
from ohm.cli._output import print_error, print_object


def show_cmd(
    model_name: str = typer.Argument(..., help="Model name"),
    id: str = typer.Argument(..., help="Model id"),
    models: Optional[str] = typer.Option(None, "--models", help="Python import path for models"),
    models_path: Optional[str] = typer.Option(
        None, "--models-path", help="Filesystem path to models"
    ),
) -> None:
    """Show the stored attributes, counters and set sizes of one model."""
    from ohm.cli import state

    model = require_model(model_name, models, models_path)
    schema = model.__ohm_schema__

    try:
        instance = model.by_id(id)
        if instance is None:
            print_error(f"{model_name} {id} not found")
            raise typer.Exit(ec.GENERAL_ERROR)

        data: dict[str, Any] = {"id": instance.id, **instance.attributes}
        if schema.counters:
            data["counters"] = {name: getattr(instance, name) for name in schema.counters}
        if schema.collections:
            data["sets"] = {name: getattr(instance, name).size() for name in schema.collections}
    except redis.RedisError as e:
        print_error(f"Cannot reach Redis: {e}")
        raise typer.Exit(ec.DATABASE_ERROR)

    print_object(data, json_mode=state.json_output)
