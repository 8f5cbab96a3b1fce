# ruff: noqa: I001
"""CLI for the ``feed_bridge`` package.

This module exposes callable command handlers (``cmd_ingest``,
``cmd_list_transactions``, ...) and a Typer-based console interface on top of
them. Environment variables (notably ``DATABASE_URL``) are loaded from a local
``.env`` using ``python-dotenv`` before any command runs. Business logic lives
in ``feed_bridge.api`` and the modules it wires together.

Exit codes for ``ingest``: ``0`` every parsed record was saved, ``2`` partial
outcome (some records failed), ``1`` nothing was committed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .api import Services, build_services
from .config import Settings
from .exceptions import FeedBridgeError
from .logging_setup import configure_logging
from .models import IngestionState

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PARTIAL = 2

console = Console()
err_console = Console(stderr=True)

# Errors that end a command with EXIT_FAILED before any output is produced.
_SETUP_ERRORS = (RuntimeError, OSError, ValueError, FeedBridgeError)


# ---- Small module-level helpers used by CLI commands -------------------------


def _services(settings: Settings) -> Services:
    return build_services(
        database_url=settings.require_database_url(),
        rules_file=settings.rules_file,
    )


def _print_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


# ---- Command handlers --------------------------------------------------------


def cmd_ingest(xml_path: Path, *, settings: Settings, as_json: bool = False) -> int:
    """Ingest one XML document and report the outcome.

    Errors are printed to stderr. With ``as_json`` the full
    :class:`~feed_bridge.models.IngestionResult`, errors included, is written to
    stdout as JSON instead.
    """

    try:
        xml_text = xml_path.read_text(encoding="utf-8")
    except OSError as e:
        err_console.print(f"[red]Error:[/red] cannot read {xml_path}: {escape(str(e))}")
        return EXIT_FAILED

    try:
        services = _services(settings)
    except _SETUP_ERRORS as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        return EXIT_FAILED

    result = services.ingest(xml_text)

    if as_json:
        _print_json(result.to_dict())
    else:
        style = "green" if result.success else "yellow"
        if result.state is IngestionState.FAILED:
            style = "red"
        console.print(
            f"[{style}]{result.state.value}[/{style}]: "
            f"processed={result.total_processed} saved={result.total_saved} "
            f"errors={len(result.errors)}"
        )
        for message in result.errors:
            err_console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)

    if result.state is IngestionState.FAILED:
        return EXIT_FAILED
    return EXIT_OK if result.success else EXIT_PARTIAL


def cmd_list_transactions(
    *, settings: Settings, category: str | None = None, as_json: bool = False
) -> int:
    """Print persisted transactions, newest first, optionally for one category."""

    try:
        rows = _services(settings).queries.list_transactions(category)
    except _SETUP_ERRORS as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        return EXIT_FAILED

    if as_json:
        _print_json([r.to_dict() for r in rows])
        return EXIT_OK

    table = Table(title=f"Transactions ({len(rows)})")
    for col in ("Date", "External ID", "Description", "Amount", "Currency", "Category"):
        table.add_column(col, justify="right" if col == "Amount" else "left")
    for r in rows:
        table.add_row(
            r.date.isoformat(),
            r.external_id,
            escape(r.description),
            f"{r.amount:.2f}",
            r.currency,
            r.category or "",
        )
    console.print(table)
    return EXIT_OK


def cmd_categories(*, settings: Settings, as_json: bool = False) -> int:
    """Print the category vocabulary with per-category counts and totals."""

    try:
        queries = _services(settings).queries
        vocabulary = queries.category_vocabulary()
        summary = {s.category: s for s in queries.category_summary()}
    except _SETUP_ERRORS as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        return EXIT_FAILED

    # Stored labels outside the configured vocabulary (e.g. from an older rule
    # set) are still listed after it.
    labels = [*vocabulary, *(c for c in summary if c not in vocabulary)]

    if as_json:
        _print_json(
            [
                {
                    "category": label,
                    "count": summary[label].count if label in summary else 0,
                    "total_amount": f"{summary[label].total_amount:.2f}"
                    if label in summary
                    else "0.00",
                }
                for label in labels
            ]
        )
        return EXIT_OK

    table = Table(title="Categories")
    table.add_column("Category")
    table.add_column("Count", justify="right")
    table.add_column("Total", justify="right")
    for label in labels:
        s = summary.get(label)
        table.add_row(label, str(s.count if s else 0), f"{s.total_amount:.2f}" if s else "0.00")
    console.print(table)
    return EXIT_OK


def cmd_list_merchants(*, settings: Settings, as_json: bool = False) -> int:
    """Print every known merchant."""

    try:
        merchants = _services(settings).merchant_store.list_merchants()
    except _SETUP_ERRORS as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        return EXIT_FAILED

    if as_json:
        _print_json([m.model_dump() for m in merchants])
        return EXIT_OK

    table = Table(title=f"Merchants ({len(merchants)})")
    table.add_column("ID", justify="right")
    table.add_column("Display name")
    table.add_column("Normalized key")
    for m in merchants:
        table.add_row(str(m.id), escape(m.display_name), m.normalized_key)
    console.print(table)
    return EXIT_OK


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Ingest the legacy XML transaction feed into the relational store. "
        "Loads DATABASE_URL from a local .env before running."
    ),
)

JsonFlag = Annotated[bool, typer.Option("--json", help="Write JSON to stdout instead of a table.")]


def _settings(ctx: typer.Context) -> Settings:
    obj = ctx.obj or {}
    return Settings.from_env(database_url=obj.get("database_url"), rules_file=obj.get("rules_file"))


@app.command("ingest")
def ingest_cmd(
    ctx: typer.Context,
    xml_path: Annotated[
        Path,
        typer.Option("--xml-path", help="Path to the XML feed document", dir_okay=False),
    ],
    as_json: JsonFlag = False,
) -> None:
    """Parse, categorize and persist one XML feed document."""

    raise typer.Exit(cmd_ingest(xml_path, settings=_settings(ctx), as_json=as_json))


@app.command("transactions")
def transactions_cmd(
    ctx: typer.Context,
    category: Annotated[
        str | None, typer.Option(help="Only show this category ('all' for no filter).")
    ] = None,
    as_json: JsonFlag = False,
) -> None:
    """List persisted transactions."""

    raise typer.Exit(
        cmd_list_transactions(settings=_settings(ctx), category=category, as_json=as_json)
    )


@app.command("categories")
def categories_cmd(ctx: typer.Context, as_json: JsonFlag = False) -> None:
    """Show the category vocabulary and a per-category summary."""

    raise typer.Exit(cmd_categories(settings=_settings(ctx), as_json=as_json))


@app.command("merchants")
def merchants_cmd(ctx: typer.Context, as_json: JsonFlag = False) -> None:
    """List known merchants."""

    raise typer.Exit(cmd_list_merchants(settings=_settings(ctx), as_json=as_json))


@app.callback()
def _root(
    ctx: typer.Context,
    *,
    database_url: Annotated[
        str | None, typer.Option(help="Override DATABASE_URL (falls back to env var).")
    ] = None,
    rules_file: Annotated[
        Path | None,
        typer.Option(help="JSON category rule set (falls back to FEED_BRIDGE_RULES_FILE)."),
    ] = None,
    log_level: Annotated[
        str | None, typer.Option(help="Log level (falls back to FEED_BRIDGE_LOG_LEVEL).")
    ] = None,
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging before the
    subcommand runs.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging(log_level)

    ctx.obj = {"database_url": database_url, "rules_file": rules_file}


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m feed_bridge.cli`
    app()
