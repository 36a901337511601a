"""Import the module that defines the models a command works on.

Defining a ``Model`` subclass registers it, so after the import the models
are read back from the registry, keeping only the ones the module defines.
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path
from types import ModuleType

from ohm import registry
from ohm.model import Model


def _import_path(models_path: str) -> ModuleType:
    path = Path(models_path).resolve()
    if not path.is_file():
        raise FileNotFoundError(f"Models path not found: {models_path}")
    if str(path.parent) not in sys.path:
        sys.path.insert(0, str(path.parent))
    return importlib.import_module(path.stem)


def load_models(
    models: str | None = None,
    models_path: str | None = None,
) -> dict[str, type[Model]]:
    """Model types defined by a dotted module (``models``) or a file, by model name."""
    if models_path:
        module = _import_path(models_path)
    elif models:
        module = importlib.import_module(models)
    else:
        raise ValueError("One of --models or --models-path is required")
    return registry.registered(module.__name__)
