"""Model registry used to resolve cross-model references by name.

References may name a model that is defined later in the same module, so the
target is stored as a string and resolved on first access.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from ohm.model import Model

ModelRef = Union[str, "type[Model]"]

_MODELS: dict[str, type[Model]] = {}


def register(model: type[Model]) -> None:
    _MODELS[model.__model_name__] = model


def resolve(ref: ModelRef) -> type[Model]:
    """Return the model type for a name, or the type itself."""
    if isinstance(ref, str):
        try:
            return _MODELS[ref]
        except KeyError:
            raise LookupError(f"Unknown model '{ref}'. Is the module defining it imported?")
    return ref


def registered(module: str | None = None) -> dict[str, type[Model]]:
    """Every registered model by name, or only those defined in ``module``."""
    if module is None:
        return dict(_MODELS)
    return {name: m for name, m in _MODELS.items() if m.__module__ == module}
