from __future__ import annotations

import asyncio
import html
import logging
import smtplib
from collections.abc import Callable, Sequence
from email.message import EmailMessage
from typing import Protocol

from moviemail.errors import DeliveryFailed
from moviemail.models import NotifiableMovie

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "New movies from your directors"


class Notifier(Protocol):
    """Protocol for anything that can announce a batch of movies."""

    name: str

    async def send(self, movies: Sequence[NotifiableMovie]) -> None:
        """Deliver the announcement or raise ``DeliveryFailed``."""


def describe(movie: NotifiableMovie) -> str:
    year = movie.year or "TBA"
    directors = ", ".join(movie.directors) or "unknown director"
    return f"{movie.title} ({year}) - {directors}"


def render_text(movies: Sequence[NotifiableMovie]) -> str:
    lines = [f"{len(movies)} new movie(s) from the directors you follow:", ""]
    for idx, movie in enumerate(movies, start=1):
        lines.append(f"{idx}. {describe(movie)}")
        if movie.release_date:
            lines.append(f"   Release date: {movie.release_date.isoformat()}")
        lines.append(f"   {movie.imdb_url}")
    return "\n".join(lines) + "\n"


def render_html(movies: Sequence[NotifiableMovie]) -> str:
    items = []
    for movie in movies:
        overview = f"<br><small>{html.escape(movie.overview)}</small>" if movie.overview else ""
        items.append(
            f'<li><a href="{html.escape(movie.imdb_url)}">{html.escape(describe(movie))}</a>'
            f"{overview}</li>"
        )
    return (
        "<html><body>"
        f"<p>{len(movies)} new movie(s) from the directors you follow:</p>"
        f"<ol>{''.join(items)}</ol>"
        "</body></html>"
    )


class EmailNotifier:
    """Sends the announcement as a multipart email over SMTP."""

    name = "email"

    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        recipients: Sequence[str],
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        use_ssl: bool = False,
        subject: str = DEFAULT_SUBJECT,
        timeout: float = 30.0,
        smtp_factory: Callable[..., smtplib.SMTP] | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._recipients = list(recipients)
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._use_ssl = use_ssl
        self._subject = subject
        self._timeout = timeout
        self._smtp_factory = smtp_factory or (smtplib.SMTP_SSL if use_ssl else smtplib.SMTP)

    def build_message(self, movies: Sequence[NotifiableMovie]) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = f"{self._subject} ({len(movies)})"
        message["From"] = self._sender
        message["To"] = ", ".join(self._recipients)
        message.set_content(render_text(movies))
        message.add_alternative(render_html(movies), subtype="html")
        return message

    async def send(self, movies: Sequence[NotifiableMovie]) -> None:
        if not self._recipients:
            raise DeliveryFailed("No email recipients configured")
        message = self.build_message(movies)
        await asyncio.to_thread(self._deliver, message)
        logger.info("[NOTIFY] Emailed %d movie(s) to %s", len(movies), ", ".join(self._recipients))

    def _deliver(self, message: EmailMessage) -> None:
        try:
            with self._smtp_factory(self._host, self._port, timeout=self._timeout) as smtp:
                if self._use_tls and not self._use_ssl:
                    smtp.starttls()
                if self._username:
                    smtp.login(self._username, self._password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryFailed(f"Unable to send email via {self._host}:{self._port}: {exc}") from exc


class ConsoleNotifier:
    """Writes the announcement to a stream; used for dry runs and without SMTP settings."""

    name = "console"

    def __init__(self, echo: Callable[[str], None] = print) -> None:
        self._echo = echo

    async def send(self, movies: Sequence[NotifiableMovie]) -> None:
        self._echo(render_text(movies).rstrip("\n"))


__all__ = [
    "ConsoleNotifier",
    "DEFAULT_SUBJECT",
    "EmailNotifier",
    "Notifier",
    "describe",
    "render_html",
    "render_text",
]
