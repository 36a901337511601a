"""Shared fixtures for CLI tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from ohm.cli import app
from tests.cli.models import Author, Book

if TYPE_CHECKING:
    from click.testing import Result

MODELS = ["--models", "tests.cli.models"]


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def seeded():
    """Two authors and three books."""
    ursula = Author.create(name="Ursula", country="US")
    stanislaw = Author.create(name="Stanislaw", country="PL")
    books = [
        Book.create(title="The Dispossessed", year=1974, author=ursula),
        Book.create(title="Solaris", year=1961, author=stanislaw),
        Book.create(title="The Lathe of Heaven", year=1971, author=ursula),
    ]
    for book in books:
        if book.author == ursula:
            ursula.books.add(book)
    ursula.incr("followers", 3)
    return ursula, stanislaw, books


def invoke(runner: CliRunner, args: list[str], url: str | None = None) -> "Result":
    """Invoke the CLI, optionally selecting the Redis URL."""
    if url:
        args = ["--url", url] + args
    return runner.invoke(app, args, catch_exceptions=False)
