"""Command line entry points for harvesting the value set catalog."""
from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from catalog_harvest.config import get_settings
from catalog_harvest.export.summary import compare_summaries, load_summary
from catalog_harvest.harvest import harvest_catalog
from catalog_harvest.ingest.paginator import WalkStatus

app = typer.Typer(help="Harvest the paginated value set catalog into JSON documents and a CSV summary")


def configure_logging(verbose: bool, level: str = "INFO") -> None:
    level_value = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level_value, format="%(asctime)s %(levelname)s %(message)s")


def _install_signal_handlers(cancel: threading.Event) -> None:
    def handler(signum: int, frame: object) -> None:
        logging.warning("Received signal %d, stopping after the current request", signum)
        cancel.set()

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


@app.command()
def harvest(
    base_url: Optional[str] = typer.Option(None, help="Catalog listing URL"),
    output_dir: Optional[Path] = typer.Option(None, help="Directory for the summary CSV and archive"),
    max_retries: Optional[int] = typer.Option(None, min=0, help="Retries per page before giving up"),
    backoff: Optional[float] = typer.Option(None, min=0.0, help="Seconds of backoff per retry attempt"),
    archive: bool = typer.Option(True, "--archive/--no-archive", help="Write one JSON document per record"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Walk the whole catalog and write this run's outputs."""
    settings = get_settings()
    configure_logging(verbose, settings.log_level)

    overrides: Dict[str, Any] = {}
    if base_url:
        overrides["base_url"] = base_url
    if output_dir is not None:
        overrides["output_dir"] = str(output_dir)
    if max_retries is not None:
        overrides["max_retries"] = max_retries
    if backoff is not None:
        overrides["backoff_seconds"] = backoff
    if overrides:
        settings = settings.model_copy(update=overrides)

    cancel = threading.Event()
    _install_signal_handlers(cancel)

    typer.echo("Starting")
    report = harvest_catalog(settings, cancel=cancel, archive=archive)
    state = report.walk.state

    typer.echo(f"Wrote {report.rows_written} rows to {report.summary_path}")
    if report.archive_dir is not None:
        typer.echo(f"Archived documents in {report.archive_dir}")

    if state.status is WalkStatus.FAILED:
        typer.secho(
            f"Walk failed at {state.last_reference}: {state.error}. "
            f"Kept {report.walk.record_count} of {state.total or 0} records.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    if state.recovery_attempts:
        typer.secho(f"Recovered from {state.recovery_attempts} broken next link(s)", fg=typer.colors.YELLOW)
    typer.secho("Done!", fg=typer.colors.GREEN)


@app.command()
def compare(
    old: Path = typer.Argument(..., exists=True, dir_okay=False, help="Earlier summary CSV"),
    new: Path = typer.Argument(..., exists=True, dir_okay=False, help="Later summary CSV"),
) -> None:
    """Report value sets added, removed, or changed between two summaries."""
    diff = compare_summaries(load_summary(old), load_summary(new))
    if diff.is_empty:
        typer.secho("No differences", fg=typer.colors.GREEN)
        return

    for label, ids, color in (
        ("Added", diff.added, typer.colors.GREEN),
        ("Removed", diff.removed, typer.colors.RED),
        ("Changed", diff.changed, typer.colors.YELLOW),
    ):
        if not ids:
            continue
        typer.secho(f"{label} ({len(ids)}):", fg=color)
        for value_set_id in ids:
            typer.echo(f"- {value_set_id}")


if __name__ == "__main__":  # pragma: no cover
    app()
