from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

import typer

from models.records import ReadingRecord
from services.controller import CollectionController
from sites.layout import SiteLayout


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)


def format_value(value: float) -> str:
    return f"{value:g}"


def record_row(record: ReadingRecord) -> tuple[str, str, str, str, str]:
    """Columns shown for one reading: id, local time, value, site, note."""
    local_time = datetime.fromtimestamp(record.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
    site = record.puncture_site.code if record.puncture_site else "-"
    return str(record.id), local_time, format_value(record.glucose_value), site, record.note


def echo_table(header: Sequence[str], rows: Iterable[Sequence[str]]) -> None:
    rows = [tuple(row) for row in rows]
    widths = [
        max([len(header[index])] + [len(row[index]) for row in rows])
        for index in range(len(header))
    ]
    typer.echo("  ".join(cell.ljust(width) for cell, width in zip(header, widths)).rstrip())
    for row in rows:
        typer.echo("  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip())


def render_page(controller: CollectionController) -> None:
    echo_heading(
        f"Readings (sort={controller.sort_key.value}, page={controller.page}, "
        f"size={controller.page_size})"
    )
    visible = controller.visible_records
    if visible:
        echo_table(
            ("id", "time", "mg/dL", "site", "note"),
            (record_row(record) for record in visible),
        )
    else:
        typer.echo("No entries yet.")

    shown, total = controller.summary
    typer.echo()
    typer.echo(f"Showing {shown} of {total}")
    if controller.has_more:
        typer.echo(f"More readings on page {controller.page + 1}.")


def render_sites(codes: Iterable[str], layout: SiteLayout) -> None:
    rows = []
    for code in codes:
        target = layout.target_for(code)
        rows.append((code, f"{target.x:g}", f"{target.y:g}"))
    echo_table(("site", "x%", "y%"), rows)
