"""Plain-text and JSON rendering for command results."""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

import typer


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def _cells(rows: Sequence[Sequence[Any]]) -> list[list[str]]:
    return [["" if v is None else str(v) for v in row] for row in rows]


def _lines(data: Mapping[str, Any], depth: int = 0) -> Iterator[str]:
    pad = "  " * depth
    for name, value in data.items():
        if isinstance(value, Mapping):
            yield f"{pad}{name}:"
            yield from _lines(value, depth + 1)
        else:
            yield f"{pad}{name}: {value}"


def print_table(headers: list[str], rows: list[list[Any]], *, json_mode: bool = False) -> None:
    """Rows under left-aligned headers, or a JSON array of objects.

    Nothing is printed for no rows in text mode.
    """
    if json_mode:
        typer.echo(_dumps([dict(zip(headers, row)) for row in rows]))
        return
    if not rows:
        return

    cells = _cells(rows)
    widths = [len(h) for h in headers]
    for row in cells:
        widths = [max(w, len(v)) for w, v in zip(widths, row)] + widths[len(row) :]

    def line(values: Sequence[str]) -> str:
        return "  ".join(v.ljust(w) for v, w in zip(values, widths)).rstrip()

    typer.echo(line(headers))
    typer.echo(line(["-" * w for w in widths]))
    for row in cells:
        typer.echo(line(row))


def print_object(data: Mapping[str, Any], *, json_mode: bool = False) -> None:
    """``name: value`` lines, nested mappings indented under their name."""
    if json_mode:
        typer.echo(_dumps(data))
        return
    for text in _lines(data):
        typer.echo(text)


def print_error(msg: str) -> None:
    typer.echo(f"Error: {msg}", err=True)
