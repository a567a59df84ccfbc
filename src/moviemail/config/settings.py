from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from moviemail.models import DEFAULT_PLACEHOLDER_PATTERNS, DEFAULT_SHORT_RUNTIME_MINUTES, Director

CONFIG_PATH_ENV = "MOVIEMAIL_CONFIG"
DEFAULT_ARCHIVE_PATH = Path.home() / ".local" / "share" / "moviemail" / "archive.json"


class Settings(BaseModel):
    """Application configuration resolved from env vars and an optional TOML file."""

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_base_url: str = Field(default="https://api.themoviedb.org/3", alias="TMDB_BASE_URL")
    tmdb_language: str = Field(default="en-US", alias="TMDB_LANGUAGE")
    request_timeout: float = Field(default=20.0)

    archive_path: Path = Field(default=DEFAULT_ARCHIVE_PATH, alias="MOVIEMAIL_ARCHIVE_PATH")
    directors: list[Director] = Field(default_factory=list, alias="MOVIEMAIL_DIRECTORS")

    placeholder_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PLACEHOLDER_PATTERNS)
    )
    allow_patterns: list[str] = Field(default_factory=list)
    short_runtime_minutes: int = Field(
        default=DEFAULT_SHORT_RUNTIME_MINUTES, ge=0, alias="MOVIEMAIL_SHORT_RUNTIME_MINUTES"
    )
    require_release_date: bool = Field(default=False)

    # Email delivery
    smtp_host: str | None = Field(default=None, alias="MOVIEMAIL_SMTP_HOST")
    smtp_port: int = Field(default=587, alias="MOVIEMAIL_SMTP_PORT")
    smtp_username: str | None = Field(default=None, alias="MOVIEMAIL_SMTP_USERNAME")
    smtp_password: str | None = Field(default=None, alias="MOVIEMAIL_SMTP_PASSWORD")
    smtp_use_tls: bool = Field(default=True)
    smtp_use_ssl: bool = Field(default=False)
    email_from: str | None = Field(default=None, alias="MOVIEMAIL_EMAIL_FROM")
    email_to: list[str] = Field(default_factory=list, alias="MOVIEMAIL_EMAIL_TO")
    email_subject: str = Field(default="New movies from your directors")

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "extra": "ignore",
    }

    @field_validator("directors", mode="before")
    @classmethod
    def _coerce_directors(cls, value: Any) -> Any:
        return _parse_directors(value)

    @field_validator("archive_path", mode="after")
    @classmethod
    def _expand_archive_path(cls, value: Path) -> Path:
        return value.expanduser()

    def require_tmdb(self) -> None:
        """Ensure catalog credentials are available."""
        if not self.tmdb_api_key:
            raise SettingsError("Missing TMDB_API_KEY. Configure environment or TOML file.")

    def require_directors(self) -> None:
        if not self.directors:
            raise SettingsError(
                "No directors configured. Add a [directors] table or set MOVIEMAIL_DIRECTORS.",
            )

    def require_email(self) -> None:
        if not self.smtp_host or not self.email_from or not self.email_to:
            raise SettingsError(
                "Email delivery needs MOVIEMAIL_SMTP_HOST, MOVIEMAIL_EMAIL_FROM and MOVIEMAIL_EMAIL_TO.",
            )

    @property
    def email_configured(self) -> bool:
        return bool(self.smtp_host)


class SettingsError(RuntimeError):
    """Raised when configuration cannot be resolved."""


@dataclass(frozen=True)
class SettingsLoadResult:
    settings: Settings
    source_path: Path | None


def load_settings(config_path: Path | None = None, *, load_env: bool = True) -> SettingsLoadResult:
    """Load settings from .env files, environment variables, and optional TOML configuration."""

    if load_env:
        load_dotenv()

    resolved_path = _determine_config_path(config_path)
    config_data: dict[str, Any] = {}

    if resolved_path and resolved_path.exists():
        try:
            with resolved_path.open("rb") as handle:
                toml_payload = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise SettingsError(f"Invalid TOML in {resolved_path}: {exc}") from exc
        try:
            config_data = _flatten_toml(toml_payload)
        except (TypeError, ValueError) as exc:
            raise SettingsError(f"Invalid value in {resolved_path}: {exc}") from exc
    elif config_path is not None:
        raise SettingsError(f"Config file not found: {config_path}")

    try:
        env_data = _collect_env_overrides()
    except ValueError as exc:
        raise SettingsError(f"Invalid environment override: {exc}") from exc
    merged = {**config_data, **env_data}

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as exc:  # pragma: no cover - surfaced via CLI messaging
        raise SettingsError(str(exc)) from exc

    return SettingsLoadResult(settings=settings, source_path=resolved_path)


def _determine_config_path(config_path: Path | None) -> Path | None:
    if config_path:
        return config_path.expanduser()

    env_override = os.getenv(CONFIG_PATH_ENV)
    if env_override:
        return Path(env_override).expanduser().resolve()

    default_path = Path.home() / ".config" / "moviemail" / "config.toml"
    return default_path if default_path.exists() else None


def _flatten_toml(payload: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}

    # Flat layout: archive_path / api_key / [directors] at the top level
    if "archive_path" in payload:
        result["archive_path"] = payload.get("archive_path")
    if "api_key" in payload:
        result["tmdb_api_key"] = payload.get("api_key")
    if "directors" in payload:
        result["directors"] = payload.get("directors")

    tmdb_cfg = payload.get("tmdb", {})
    if "api_key" in tmdb_cfg:
        result["tmdb_api_key"] = tmdb_cfg.get("api_key")
    if "base_url" in tmdb_cfg:
        result["tmdb_base_url"] = tmdb_cfg.get("base_url")
    if "language" in tmdb_cfg:
        result["tmdb_language"] = tmdb_cfg.get("language")
    if "timeout" in tmdb_cfg:
        result["request_timeout"] = float(tmdb_cfg.get("timeout"))

    archive_cfg = payload.get("archive", {})
    if "path" in archive_cfg:
        result["archive_path"] = archive_cfg.get("path")

    filters_cfg = payload.get("filters", {})
    if "placeholder_patterns" in filters_cfg:
        result["placeholder_patterns"] = [str(item) for item in filters_cfg["placeholder_patterns"]]
    if "allow_patterns" in filters_cfg:
        result["allow_patterns"] = [str(item) for item in filters_cfg["allow_patterns"]]
    if "short_runtime_minutes" in filters_cfg:
        result["short_runtime_minutes"] = int(filters_cfg.get("short_runtime_minutes"))
    if "require_release_date" in filters_cfg:
        result["require_release_date"] = bool(filters_cfg.get("require_release_date"))

    email_cfg = payload.get("email", {})
    if "smtp_host" in email_cfg:
        result["smtp_host"] = email_cfg.get("smtp_host")
    if "smtp_port" in email_cfg:
        result["smtp_port"] = int(email_cfg.get("smtp_port"))
    if "username" in email_cfg:
        result["smtp_username"] = email_cfg.get("username")
    if "password" in email_cfg:
        result["smtp_password"] = email_cfg.get("password")
    if "use_tls" in email_cfg:
        result["smtp_use_tls"] = bool(email_cfg.get("use_tls"))
    if "use_ssl" in email_cfg:
        result["smtp_use_ssl"] = bool(email_cfg.get("use_ssl"))
    if "sender" in email_cfg:
        result["email_from"] = email_cfg.get("sender")
    if "subject" in email_cfg:
        result["email_subject"] = email_cfg.get("subject")
    if "recipients" in email_cfg:
        recipients = email_cfg.get("recipients")
        if isinstance(recipients, (list, tuple)):
            result["email_to"] = [str(item) for item in recipients]
        elif isinstance(recipients, str):
            result["email_to"] = _split_csv(recipients)

    return result


def _collect_env_overrides() -> dict[str, Any]:
    mapping: dict[str, str] = {
        "TMDB_API_KEY": "tmdb_api_key",
        "TMDB_BASE_URL": "tmdb_base_url",
        "TMDB_LANGUAGE": "tmdb_language",
        "MOVIEMAIL_ARCHIVE_PATH": "archive_path",
        "MOVIEMAIL_DIRECTORS": "directors",
        "MOVIEMAIL_SHORT_RUNTIME_MINUTES": "short_runtime_minutes",
        "MOVIEMAIL_SMTP_HOST": "smtp_host",
        "MOVIEMAIL_SMTP_PORT": "smtp_port",
        "MOVIEMAIL_SMTP_USERNAME": "smtp_username",
        "MOVIEMAIL_SMTP_PASSWORD": "smtp_password",
        "MOVIEMAIL_EMAIL_FROM": "email_from",
        "MOVIEMAIL_EMAIL_TO": "email_to",
    }

    result: dict[str, Any] = {}
    for env_name, field in mapping.items():
        if env_name not in os.environ:
            continue
        value = os.environ[env_name]
        if field in {"short_runtime_minutes", "smtp_port"}:
            result[field] = int(value)
        elif field == "email_to":
            result[field] = _split_csv(value)
        else:
            result[field] = value
    return result


def _parse_directors(value: Any) -> Any:
    """Accept ``{id = "Name"}`` tables, ``[{id, name}]`` arrays and ``"id:Name,id:Name"`` strings."""
    if value is None:
        return []
    if isinstance(value, str):
        value = _split_csv(value)
    if isinstance(value, dict):
        return [{"id": str(key), "name": str(name)} for key, name in value.items()]
    if isinstance(value, (list, tuple)):
        directors: list[Any] = []
        for item in value:
            if isinstance(item, str):
                director_id, _, name = item.partition(":")
                directors.append({"id": director_id.strip(), "name": name.strip() or director_id.strip()})
            elif isinstance(item, dict) and "id" in item:
                directors.append({"id": str(item["id"]), "name": str(item.get("name") or item["id"])})
            else:
                directors.append(item)
        return directors
    return value


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


__all__ = ["Settings", "SettingsError", "SettingsLoadResult", "load_settings"]
