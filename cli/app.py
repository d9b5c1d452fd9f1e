from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import typer

from cli.config import CLIConfig, load_config
from cli.render import echo_error, echo_heading, format_value, render_page, render_sites
from models.records import ReadingDraft, SortKey
from services.controller import PAGE_SIZES, CollectionController, Outcome, OutcomeStatus
from services.store_client import ReadingStoreClient
from sites.codes import all_codes
from sites.layout import build_default_layout


@dataclass
class CLIState:
    config: CLIConfig


app = typer.Typer(
    help="Log glucose readings and browse them in a reading store.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        echo_error("CLI state is uninitialized.")
        raise typer.Exit(code=1)
    return state


def _open_store(config: CLIConfig) -> ReadingStoreClient:
    return ReadingStoreClient(config.base_url, timeout=config.request_timeout)


def _fail_on(outcome: Outcome) -> None:
    if outcome.ok:
        return
    echo_error(str(outcome.error) if outcome.error else "Request did not complete.")
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Reading store base URL (defaults to API_BASE_URL env or http://localhost:8080).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Maximum seconds to wait for each store request.",
    ),
) -> None:
    """Entry point for the CLI."""
    ctx.obj = CLIState(config=load_config(base_url=base_url, request_timeout=timeout))


@app.command("add")
def add_command(
    ctx: typer.Context,
    value: str = typer.Argument(..., help="Glucose value in mg/dL."),
    note: str = typer.Option("", "--note", "-n", help="Free-text note."),
    at: Optional[str] = typer.Option(
        None,
        "--at",
        help="Local date and time of the reading, e.g. 2024-05-01T07:30 (defaults to now).",
    ),
    site: Optional[str] = typer.Option(None, "--site", "-s", help="Puncture site code, e.g. L3R."),
) -> None:
    """Log a new reading."""
    state = _get_state(ctx)
    draft = ReadingDraft(glucose_value=value, note=note, timestamp=at, puncture_site=site)

    async def run() -> Outcome:
        async with _open_store(state.config) as store:
            controller = CollectionController(store, request_timeout=state.config.request_timeout)
            return await controller.create_record(draft)

    outcome = asyncio.run(run())
    _fail_on(outcome)
    assert outcome.record is not None
    typer.secho(
        f"Reading saved. id={outcome.record.id} value={format_value(outcome.record.glucose_value)}",
        fg=typer.colors.GREEN,
    )


@app.command("list")
def list_command(
    ctx: typer.Context,
    sort: SortKey = typer.Option(SortKey.time_desc, "--sort", help="Ordering applied by the store."),
    page: int = typer.Option(1, "--page", min=1, help="Page number, starting at 1."),
    size: Optional[int] = typer.Option(
        None,
        "--size",
        help=f"Readings per page, one of {', '.join(str(s) for s in PAGE_SIZES)}.",
    ),
    start: Optional[datetime] = typer.Option(None, "--start", help="Hide readings before this local time."),
    end: Optional[datetime] = typer.Option(None, "--end", help="Hide readings after this local time."),
) -> None:
    """Show one page of readings."""
    state = _get_state(ctx)
    page_size = size if size is not None else state.config.page_size
    if page_size not in PAGE_SIZES:
        raise typer.BadParameter(f"Page size must be one of {PAGE_SIZES}.", param_hint="--size")

    async def run() -> CollectionController:
        async with _open_store(state.config) as store:
            controller = CollectionController(
                store,
                page_size=page_size,
                request_timeout=state.config.request_timeout,
                sort_key=sort,
                page=page,
            )
            _fail_on(await controller.refresh())
            return controller

    controller = asyncio.run(run())
    _fail_on(controller.set_time_window(start, end))
    render_page(controller)


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    entry_id: int = typer.Argument(..., help="Identifier shown by the list command."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Delete without asking for confirmation."),
) -> None:
    """Delete a reading."""
    state = _get_state(ctx)

    def confirm(record_id: int) -> bool:
        return yes or typer.confirm(f"Delete reading {record_id}?")

    async def run() -> Outcome:
        async with _open_store(state.config) as store:
            controller = CollectionController(
                store,
                request_timeout=state.config.request_timeout,
                confirm_delete=confirm,
            )
            return await controller.delete_record(entry_id)

    outcome = asyncio.run(run())
    if outcome.status is OutcomeStatus.skipped:
        typer.echo("Nothing deleted.")
        return
    _fail_on(outcome)
    typer.secho(f"Reading {entry_id} deleted.", fg=typer.colors.GREEN)


@app.command("sites")
def sites_command(
    legacy: bool = typer.Option(False, "--legacy", help="Include center-side codes."),
) -> None:
    """List every puncture site code with its on-screen position."""
    render_sites(all_codes(include_center=legacy), build_default_layout())


@app.command("recommend")
def recommend_command(ctx: typer.Context) -> None:
    """Show the puncture sites the store currently recommends."""
    state = _get_state(ctx)

    async def run() -> CollectionController:
        async with _open_store(state.config) as store:
            controller = CollectionController(store, request_timeout=state.config.request_timeout)
            _fail_on(await controller.load_recommendations())
            return controller

    controller = asyncio.run(run())
    echo_heading("Recommended sites")
    if not controller.recommended_sites:
        typer.echo("No recommendations available.")
        return
    render_sites((site.code for site in controller.recommended_sites), build_default_layout())
