from __future__ import annotations

from collections.abc import Callable

from moviemail.clients.tmdb import TmdbClient
from moviemail.config import Settings
from moviemail.services.archive import ArchiveStore
from moviemail.services.notifier import ConsoleNotifier, EmailNotifier, Notifier
from moviemail.services.pipeline import FilterPipeline, QualityRules, TitleRules


def build_pipeline(settings: Settings) -> FilterPipeline:
    """Construct the filter pipeline from the configured title and quality rules."""
    rules = QualityRules(
        title_rules=TitleRules(
            deny_patterns=settings.placeholder_patterns,
            allow_patterns=settings.allow_patterns,
        ),
        require_release_date=settings.require_release_date,
    )
    return FilterPipeline(rules)


def build_source(settings: Settings) -> TmdbClient:
    settings.require_tmdb()
    return TmdbClient(
        settings.tmdb_api_key or "",
        base_url=settings.tmdb_base_url,
        language=settings.tmdb_language,
        timeout=settings.request_timeout,
        short_runtime_minutes=settings.short_runtime_minutes,
    )


def build_notifier(
    settings: Settings,
    *,
    console: bool = False,
    echo: Callable[[str], None] = print,
) -> Notifier:
    """Email when SMTP is configured, otherwise print to the console."""
    if console or not settings.email_configured:
        return ConsoleNotifier(echo)

    settings.require_email()
    return EmailNotifier(
        host=settings.smtp_host or "",
        port=settings.smtp_port,
        sender=settings.email_from or "",
        recipients=settings.email_to,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        use_ssl=settings.smtp_use_ssl,
        subject=settings.email_subject,
        timeout=settings.request_timeout,
    )


def build_store(settings: Settings) -> ArchiveStore:
    return ArchiveStore(settings.archive_path)


__all__ = ["build_notifier", "build_pipeline", "build_source", "build_store"]
