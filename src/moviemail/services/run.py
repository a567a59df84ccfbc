from __future__ import annotations

import logging
from collections.abc import Sequence

from moviemail.clients.base import CatalogSource
from moviemail.errors import DeliveryFailed
from moviemail.models import Director, RunSummary
from moviemail.services.archive import ArchiveStore
from moviemail.services.notifier import Notifier
from moviemail.services.pipeline import FilterPipeline

logger = logging.getLogger(__name__)


class RunService:
    """Runs one fetch, filter, notify and archive cycle.

    The archive is only written after the notifier reports success, so a movie is
    never remembered without having been announced.
    """

    def __init__(
        self,
        source: CatalogSource,
        store: ArchiveStore,
        notifier: Notifier,
        pipeline: FilterPipeline | None = None,
    ) -> None:
        self._source = source
        self._store = store
        self._notifier = notifier
        self._pipeline = pipeline or FilterPipeline()

    async def run(self, directors: Sequence[Director], *, dry_run: bool = False) -> RunSummary:
        # ArchiveUnavailable propagates: starting from an empty archive would re-announce everything
        archive = self._store.load()

        results = await self._source.fetch_all(directors, skip_details=archive.ids)
        failed = [result for result in results if not result.ok]
        for result in failed:
            logger.warning("[RUN] Skipping %s this run: %s", result.director.name, result.error)

        outcome = self._pipeline.process(
            [(result.director, result.movies) for result in results if result.ok],
            archive,
        )

        summary = RunSummary(
            dry_run=dry_run,
            movies=list(outcome.notifications),
            notified=[movie.title for movie in outcome.notifications],
            failed_directors=[result.director.name for result in failed],
            rejected=len(outcome.rejections),
            archive_size=len(archive),
            errors=[f"{result.director.name}: {result.error}" for result in failed],
        )

        if not outcome.notifications:
            logger.info("[RUN] Nothing new to announce")
            return summary

        if dry_run:
            logger.info("[RUN] Dry run: %d movie(s) would be announced", len(outcome.notifications))
            return summary

        try:
            await self._notifier.send(outcome.notifications)
        except DeliveryFailed:
            logger.error("[RUN] Delivery via %s failed, archive left untouched", self._notifier.name)
            raise
        summary.delivered = True

        self._store.save(outcome.archive)
        summary.archive_saved = True
        summary.archive_size = len(outcome.archive)
        return summary


__all__ = ["RunService"]
