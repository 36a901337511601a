"""ohm CLI: operator console for inspecting a Redis store of ohm models."""

from __future__ import annotations

from typing import Optional

import typer

from ohm.cli import find, flush, info, show

app = typer.Typer(
    name="ohm",
    help="ohm CLI: inspect and query models stored in Redis.",
    no_args_is_help=True,
)


class _State:
    """Global CLI state shared across subcommands."""

    url: str | None = None
    json_output: bool = False


state = _State()


def _version_callback(value: bool) -> None:
    if value:
        from ohm import __version__

        print(f"ohm {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    url: Optional[str] = typer.Option(
        None,
        "--url",
        envvar="OHM_REDIS_URL",
        help="Redis URL (default: redis://localhost:6379/0)",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output when supported"),
    version: bool = typer.Option(
        False, "--version", help="Show version", is_eager=True, callback=_version_callback
    ),
) -> None:
    """Global options for all ohm commands."""
    state.url = url
    state.json_output = json_output
    if ctx.invoked_subcommand is None and not version:
        print(ctx.get_help())
        raise typer.Exit()


app.command(name="info")(info.info_cmd)
app.command(name="show")(show.show_cmd)
app.command(name="find")(find.find_cmd)
app.command(name="flush")(flush.flush_cmd)


def main() -> None:
    """Entry point for the ohm CLI."""
    app()
