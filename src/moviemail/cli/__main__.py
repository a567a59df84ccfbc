from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import typer

from moviemail import __version__
from moviemail.config import Settings, SettingsError, SettingsLoadResult, load_settings
from moviemail.errors import ArchiveUnavailable, DeliveryFailed
from moviemail.models import RunSummary
from moviemail.services.factory import build_notifier, build_pipeline, build_source, build_store
from moviemail.services.notifier import render_text
from moviemail.services.run import RunService

EXIT_CONFIG_ERROR = 1
EXIT_ARCHIVE_UNAVAILABLE = 2
EXIT_DELIVERY_FAILED = 3
EXIT_CATALOG_UNAVAILABLE = 4

app = typer.Typer(
    add_completion=False,
    help="Email new releases from the directors you follow.",
)


@app.callback()
def _cli_entry(ctx: typer.Context) -> None:
    """Entrypoint for the moviemail CLI."""
    ctx.obj = {} if ctx.obj is None else ctx.obj


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(__version__)


@app.command()
def run(
    config_path: Path | None = typer.Option(
        None, "--config", help="Path to config.toml (default: MOVIEMAIL_CONFIG or ~/.config/moviemail)."
    ),
    dry_run: bool = typer.Option(
        False, help="Show what would be announced without sending email or updating the archive."
    ),
    debug: bool = typer.Option(False, help="Enable debug logging."),
) -> None:
    """Check every configured director for new movies and announce them."""
    _setup_logging(logging.INFO if debug else logging.WARNING)

    load_result = _safe_load_settings(config_path)
    if load_result is None:
        raise typer.Exit(code=EXIT_CONFIG_ERROR)

    settings = load_result.settings
    try:
        settings.require_tmdb()
        settings.require_directors()
    except SettingsError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from exc

    try:
        summary = asyncio.run(_run(settings, dry_run=dry_run))
    except SettingsError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from exc
    except ArchiveUnavailable as exc:
        typer.secho(f"Archive unavailable, aborting: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_ARCHIVE_UNAVAILABLE) from exc
    except DeliveryFailed as exc:
        typer.secho(
            f"Delivery failed, archive not updated: {exc}",
            fg=typer.colors.RED,
        )
        raise typer.Exit(code=EXIT_DELIVERY_FAILED) from exc

    _render_summary(summary)
    if summary.failed_directors and len(summary.failed_directors) == len(settings.directors):
        raise typer.Exit(code=EXIT_CATALOG_UNAVAILABLE)


@app.command()
def config(
    config_path: Path | None = typer.Option(None, "--config", help="Path to config.toml."),
    show_sources: bool = typer.Option(False, help="Display where settings were resolved from."),
) -> None:
    """Describe the resolved configuration."""
    load_result = _safe_load_settings(config_path, load_even_if_missing=True)
    if load_result is None:
        raise typer.Exit(code=EXIT_CONFIG_ERROR)

    settings = load_result.settings
    values: dict[str, Any] = {
        "tmdb_api_key": "<set>" if settings.tmdb_api_key else "<unset>",
        "tmdb_base_url": settings.tmdb_base_url,
        "tmdb_language": settings.tmdb_language,
        "archive_path": settings.archive_path,
        "directors": ", ".join(f"{d.name} ({d.id})" for d in settings.directors) or "<unset>",
        "placeholder_patterns": settings.placeholder_patterns,
        "allow_patterns": settings.allow_patterns or [],
        "short_runtime_minutes": settings.short_runtime_minutes,
        "require_release_date": settings.require_release_date,
        "smtp_host": settings.smtp_host or "<unset>",
        "smtp_port": settings.smtp_port,
        "smtp_password": "<set>" if settings.smtp_password else "<unset>",
        "email_from": settings.email_from or "<unset>",
        "email_to": settings.email_to or [],
    }

    for key, value in values.items():
        typer.echo(f"{key}: {value}")

    if show_sources:
        source_hint = load_result.source_path or "<env/.env>"
        typer.echo(f"resolved_from: {source_hint}")
        typer.echo(
            "Keys: TMDB_API_KEY, MOVIEMAIL_DIRECTORS, MOVIEMAIL_SMTP_HOST."
            " Configure ~/.config/moviemail/config.toml for persistent settings.",
        )


def main() -> None:
    """Expose Typer app for the console script."""
    app()


async def _run(settings: Settings, *, dry_run: bool) -> RunSummary:
    notifier = build_notifier(settings, echo=typer.echo)
    async with build_source(settings) as source:
        service = RunService(source, build_store(settings), notifier, build_pipeline(settings))
        return await service.run(settings.directors, dry_run=dry_run)


def _safe_load_settings(
    config_path: Path | None = None, load_even_if_missing: bool = False
) -> SettingsLoadResult | None:
    try:
        return load_settings(config_path)
    except SettingsError as exc:
        if load_even_if_missing:
            typer.secho(
                f"Warning: configuration incomplete: {exc}",
                fg=typer.colors.YELLOW,
            )
            return SettingsLoadResult(settings=Settings(), source_path=None)
        typer.secho(str(exc), fg=typer.colors.RED)
        return None


def _setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        format="%(message)s",
        level=level,
        force=True,
    )


def _render_summary(summary: RunSummary) -> None:
    for error in summary.errors:
        typer.secho(f"Skipped {error}", fg=typer.colors.YELLOW)

    if summary.nothing_new:
        typer.secho("Nothing new to announce.", fg=typer.colors.YELLOW)
        return

    if summary.dry_run:
        typer.secho("[DRY RUN] Nothing sent, archive unchanged", fg=typer.colors.CYAN)
        typer.echo(render_text(summary.movies).rstrip("\n"))
        return

    typer.secho(
        f"Announced {len(summary.notified)} movie(s); archive now holds {summary.archive_size} ids.",
        fg=typer.colors.GREEN,
    )


if __name__ == "__main__":
    main()
