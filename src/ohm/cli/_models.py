"""Shared option handling for commands that operate on a model type."""

from __future__ import annotations

import typer

from ohm.cli import _exitcodes as ec
from ohm.cli._loader import load_models
from ohm.cli._output import print_error
from ohm.cli._store import bind_models
from ohm.model import Model


def load_bound_models(models: str | None, models_path: str | None) -> dict[str, type[Model]]:
    """Load models for a command and bind them to the CLI connection, or exit."""
    if not models and not models_path:
        print_error("One of --models or --models-path is required")
        raise typer.Exit(ec.USAGE_ERROR)

    try:
        found = load_models(models, models_path)
    except Exception as e:
        print_error(f"Failed to load models: {e}")
        raise typer.Exit(ec.GENERAL_ERROR)

    bind_models(found.values())
    return found


def require_model(model_name: str, models: str | None, models_path: str | None) -> type[Model]:
    found = load_bound_models(models, models_path)
    if model_name not in found:
        print_error(f"Model '{model_name}' not found in models")
        raise typer.Exit(ec.USAGE_ERROR)
    return found[model_name]
