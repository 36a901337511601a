"""Optimistic transactions on top of WATCH / MULTI / EXEC.

A transaction is declared first and committed once::

    t = Transaction()
    t.add_watch("User:uniques:email")
    t.on_before(assign_id)
    t.on_read(lambda reader, store: ...)   # immediate reads, may raise to abort
    t.on_write(lambda pipe, store: ...)    # buffered inside MULTI
    t.commit(db)

Commit order: WATCH, before-hooks, reads, MULTI, writes, EXEC. If a watched
key changes before EXEC, Redis discards the block and ``StoreConflictError``
is raised; nothing is retried here.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import redis

from ohm.errors import StoreConflictError, TransactionStateError

logger = logging.getLogger(__name__)

BeforeHook = Callable[[], None]
Phase = Callable[[Any, SimpleNamespace], None]


class TransactionState(str, enum.Enum):
    DECLARED = "declared"
    WATCHING = "watching"
    READING = "reading"
    WRITING = "writing"
    COMMITTED = "committed"
    ABORTED = "aborted"


class Transaction:
    """Watch list, before-hooks, read phases and write phases of one commit."""

    def __init__(self) -> None:
        self.watches: list[str] = []
        self.before: list[BeforeHook] = []
        self.reads: list[Phase] = []
        self.writes: list[Phase] = []
        self.state = TransactionState.DECLARED

    def add_watch(self, *keys: str) -> None:
        self._check_declared()
        for key in keys:
            if key not in self.watches:
                self.watches.append(key)

    def on_before(self, hook: BeforeHook) -> BeforeHook:
        self._check_declared()
        self.before.append(hook)
        return hook

    def on_read(self, phase: Phase) -> Phase:
        self._check_declared()
        self.reads.append(phase)
        return phase

    def on_write(self, phase: Phase) -> Phase:
        self._check_declared()
        self.writes.append(phase)
        return phase

    def append(self, other: Transaction) -> Transaction:
        """Merge another declared transaction into this one."""
        self._check_declared()
        other._check_declared()
        self.add_watch(*other.watches)
        self.before.extend(other.before)
        self.reads.extend(other.reads)
        self.writes.extend(other.writes)
        return self

    def commit(self, db: redis.Redis) -> list[Any]:
        """Run the protocol against ``db`` and return the EXEC replies."""
        self._check_declared()
        store = SimpleNamespace()
        pipe = db.pipeline(transaction=True)
        try:
            self.state = TransactionState.WATCHING
            if self.watches:
                pipe.watch(*self.watches)
            reader: Any = pipe if self.watches else db

            for hook in self.before:
                hook()

            self.state = TransactionState.READING
            for read in self.reads:
                read(reader, store)

            self.state = TransactionState.WRITING
            pipe.multi()
            for write in self.writes:
                write(pipe, store)
            replies = pipe.execute()
        except redis.WatchError:
            self.state = TransactionState.ABORTED
            logger.warning("Transaction aborted, watched keys changed: %s", self.watches)
            raise StoreConflictError(self.watches) from None
        except BaseException:
            self.state = TransactionState.ABORTED
            raise
        finally:
            pipe.reset()

        self.state = TransactionState.COMMITTED
        logger.debug("Transaction committed with %d replies", len(replies))
        return replies

    def _check_declared(self) -> None:
        if self.state is not TransactionState.DECLARED:
            raise TransactionStateError(self.state.value)
