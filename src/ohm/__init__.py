"""ohm: object-hash mapping for Redis."""

__version__ = "0.1.0"

from ohm.collection import Collection, MultiSet, Set
from ohm.config import OhmConfig
from ohm.connection import Connection, client, conn, connect, flush
from ohm.errors import (
    IndexNotFound,
    MalformedQueryError,
    MissingID,
    OhmError,
    ScriptNotFoundError,
    StoreConflictError,
    TransactionStateError,
    UniqueIndexViolation,
)
from ohm.fields import Attribute, CollectionOf, Counter, Reference, Schema, SetOf
from ohm.lua import Lua
from ohm.model import Model
from ohm.transaction import Transaction, TransactionState

__all__ = [
    "__version__",
    "Model",
    "Attribute",
    "Counter",
    "Reference",
    "SetOf",
    "CollectionOf",
    "Schema",
    "Collection",
    "Set",
    "MultiSet",
    "Transaction",
    "TransactionState",
    "Lua",
    "Connection",
    "OhmConfig",
    "conn",
    "connect",
    "client",
    "flush",
    "OhmError",
    "MissingID",
    "IndexNotFound",
    "UniqueIndexViolation",
    "MalformedQueryError",
    "StoreConflictError",
    "TransactionStateError",
    "ScriptNotFoundError",
]
