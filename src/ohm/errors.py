"""Structured error types for ohm.

All of the known errors can be traced back to ``OhmError``:

    MissingID             Comment().id before the comment was saved.
    IndexNotFound         Comment.find(foo="bar") without declaring the index.
    UniqueIndexViolation  saving a duplicate value of a unique attribute.
    MalformedQueryError   Comment.find("1") instead of Comment.by_id("1").
    StoreConflictError    a watched key changed before EXEC; nothing was written.
"""

from __future__ import annotations


class OhmError(Exception):
    """Base error for all ohm errors."""


class MissingID(OhmError):
    """Raised when the id or key of an unsaved model is accessed."""

    def __init__(self, model_name: str | None = None) -> None:
        self.model_name = model_name
        target = f"{model_name} instance" if model_name else "model"
        super().__init__(f"The {target} has no id yet. Save it first.")


class IndexNotFound(OhmError):
    """Raised when a query filters on an attribute that is not indexed."""

    def __init__(self, attribute: str, model_name: str | None = None) -> None:
        self.attribute = attribute
        self.model_name = model_name
        owner = f" on {model_name}" if model_name else ""
        super().__init__(f"No index declared for '{attribute}'{owner}.")


class UniqueIndexViolation(OhmError):
    """Raised when a save would duplicate the value of a unique attribute.

    The violation is detected in the read phase, before any write is issued.
    """

    def __init__(self, attribute: str) -> None:
        self.attribute = attribute
        super().__init__(f"{attribute} is not unique.")


class MalformedQueryError(OhmError, TypeError):
    """Raised when a filter is not a mapping of attribute to value.

    Also raised for a filter whose value is an empty list.
    """

    def __init__(self, model_name: str, received: object, detail: str | None = None) -> None:
        self.model_name = model_name
        self.received = received
        self.detail = detail
        if detail is not None:
            super().__init__(f"Malformed query for {model_name}: {detail}.")
            return
        super().__init__(
            "You need to supply a mapping with filters. "
            f"If you want to find by id, use {model_name}.by_id(id) instead "
            f"(got {type(received).__name__})."
        )


class StoreConflictError(OhmError):
    """Raised when EXEC was discarded because a watched key changed.

    None of the transaction's writes were applied; retrying is up to the caller.
    """

    def __init__(self, keys: list[str] | tuple[str, ...] = ()) -> None:
        self.keys = list(keys)
        watched = ", ".join(self.keys) if self.keys else "(none)"
        super().__init__(f"Transaction aborted: a watched key changed. Watched: {watched}")


class TransactionStateError(OhmError):
    """Raised when a transaction is used outside of its declared state."""

    def __init__(self, state: str) -> None:
        self.state = state
        super().__init__(f"Transaction already {state}; build a new one to commit again")


class ScriptNotFoundError(OhmError):
    """Raised when a Lua script cannot be found by its logical name."""

    def __init__(self, name: str, path: str) -> None:
        self.name = name
        self.path = path
        super().__init__(f"Lua script '{name}' not found at {path}")
