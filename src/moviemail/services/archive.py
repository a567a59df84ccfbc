"""File-backed archive of movies that have already been announced."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from moviemail.errors import ArchiveUnavailable
from moviemail.models import ArchiveRecord

logger = logging.getLogger(__name__)

ARCHIVE_VERSION = 1
ARCHIVE_KEY = "tmdb_id"


class ArchiveStore:
    """Loads and atomically replaces the archive JSON document.

    The document looks like ``{"version": 1, "key": "tmdb_id", "ids": [...]}``.
    Archives written by older releases, a plain list of movie objects carrying an
    ``id`` field, are still readable and are upgraded on the next save.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ArchiveRecord:
        if not self._path.exists():
            logger.warning("[ARCHIVE] No archive at %s, starting with an empty one", self._path)
            return ArchiveRecord()

        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            raise ArchiveUnavailable(f"Unable to read archive {self._path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ArchiveUnavailable(f"Archive {self._path} is not valid JSON: {exc}") from exc

        record = ArchiveRecord(ids=_extract_ids(payload, self._path))
        logger.info("[ARCHIVE] Loaded %d ids from %s", len(record), self._path)
        return record

    def save(self, record: ArchiveRecord) -> None:
        document = {
            "version": ARCHIVE_VERSION,
            "key": ARCHIVE_KEY,
            "ids": sorted(record.ids),
        }
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                json.dump(document, handle, indent=2)
                handle.write("\n")
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise ArchiveUnavailable(f"Unable to write archive {self._path}: {exc}") from exc

        logger.info("[ARCHIVE] Saved %d ids to %s", len(record), self._path)


def _extract_ids(payload: Any, path: Path) -> frozenset[int]:
    if isinstance(payload, dict):
        key = payload.get("key", ARCHIVE_KEY)
        if key != ARCHIVE_KEY:
            raise ArchiveUnavailable(f"Archive {path} is keyed by {key!r}, expected {ARCHIVE_KEY!r}")
        entries = payload.get("ids")
        if not isinstance(entries, list):
            raise ArchiveUnavailable(f"Archive {path} has no 'ids' list")
    elif isinstance(payload, list):
        entries = payload
    else:
        raise ArchiveUnavailable(f"Archive {path} has an unexpected layout")

    ids: set[int] = set()
    for entry in entries:
        raw = entry.get("id") if isinstance(entry, dict) else entry
        # bool is an int subclass, never a movie id
        if isinstance(raw, bool):
            raise ArchiveUnavailable(f"Archive {path} contains an invalid id: {entry!r}")
        try:
            ids.add(int(raw))
        except (TypeError, ValueError) as exc:
            raise ArchiveUnavailable(f"Archive {path} contains an invalid id: {entry!r}") from exc
    return frozenset(ids)


__all__ = ["ARCHIVE_KEY", "ARCHIVE_VERSION", "ArchiveStore"]
