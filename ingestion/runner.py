# ============================================================================
# File: ingestion/runner.py
# Description: Daily price-history ingestion orchestrator
# ============================================================================
"""
Ingestion Runner - fetch, hash, dedup, normalize, persist, announce.

One straight-line pipeline per calendar date:

1. Start (or restart) the tracked run for the date
2. Fetch the provider snapshot
3. Compute the canonical content hash
4. Skip if this exact content was already processed for the date
5. Store the raw snapshot, normalize, upsert observation rows
6. Mark the run completed
7. Publish ``ingestion.completed``

Any failure after step 1 marks the run failed and is re-raised; retry policy
belongs to whoever triggered the run.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
import logging

from core.database import Database
from core.exceptions import DuplicateContentError, PipelineError
from events.bus import EventBus
from ingestion.extractors.price_history_extractor import PriceHistoryClient
from ingestion.loaders.postgres_loader import PriceHistoryLoader
from ingestion.run_tracker import IngestionRunTracker
from ingestion.transformers.canonical import compute_canonical_sha256
from ingestion.transformers.normalizer import normalize_price_history, summarize_payload
from models.base import RunStatus
from schemas.events import INGESTION_COMPLETED, IngestionCompletedEvent

logger = logging.getLogger(__name__)


def default_target_date() -> date:
    """Yesterday as a UTC calendar day"""
    return (datetime.now(timezone.utc) - timedelta(days=1)).date()


class PriceHistoryIngestionRunner:
    """
    Daily price-history ingestion orchestrator.

    Responsibilities:
    - Own the run lifecycle for each date
    - Enforce idempotency through the content-hash gate
    - Persist raw snapshot and normalized rows
    - Announce completed ingestions
    """

    def __init__(
        self,
        database: Database,
        client: PriceHistoryClient,
        event_bus: Optional[EventBus] = None,
        source: str = "price_history.daily",
        batch_size: int = 500
    ):
        self.database = database
        self.client = client
        self.event_bus = event_bus
        self.source = source
        self.batch_size = batch_size

    async def ingest(self, target_date: Optional[date] = None) -> Dict[str, Any]:
        """
        Ingest the snapshot for one date (yesterday, UTC, by default).

        Returns:
            Dictionary with run statistics:
            - run_id, date, status ("completed" or "skipped")
            - sha256, items_count, entries_count
            - upserted: rows written (0 when skipped)

        Raises:
            FetchError: Provider failure
            NormalizationError / PersistenceError: Processing failure
        """
        target_date = target_date or default_target_date()
        identifier = target_date.isoformat()

        async with self.database.session() as session:
            tracker = IngestionRunTracker(session)
            run = await tracker.start_run(self.source, identifier)
            run_id = run.id

            sha256: Optional[str] = None
            items_count = 0
            entries_count = 0

            try:
                payload = await self.client.fetch_daily_history(target_date)
                sha256 = compute_canonical_sha256(payload)
                items_count, entries_count = summarize_payload(payload)

                previous = await tracker.find_completed_run_by_hash(self.source, identifier, sha256)
                if previous is not None:
                    raise DuplicateContentError(
                        "Content already processed for this date",
                        context={
                            "source": self.source,
                            "date": identifier,
                            "sha256": sha256,
                            "previous_run_id": previous.id
                        }
                    )

                loader = PriceHistoryLoader(session)
                await loader.save_raw_snapshot(target_date, sha256, payload, items_count, entries_count)

                rows = normalize_price_history(payload, target_date)
                upserted = await loader.upsert_entries(rows, batch_size=self.batch_size)

                await tracker.update_run(
                    run_id,
                    RunStatus.COMPLETED,
                    content_hash=sha256,
                    metadata={
                        "contentHash": sha256,
                        "itemsCount": items_count,
                        "entriesCount": entries_count,
                        "upserted": upserted
                    }
                )

            except DuplicateContentError as e:
                logger.info(f"Skipping {self.source} for {identifier}: {e.message}")
                await tracker.update_run(
                    run_id,
                    RunStatus.SKIPPED,
                    content_hash=sha256,
                    metadata={
                        "reason": "duplicate_content",
                        "contentHash": sha256,
                        "previousRunId": e.context.get("previous_run_id")
                    }
                )
                return {
                    "run_id": run_id,
                    "date": identifier,
                    "status": RunStatus.SKIPPED.value,
                    "sha256": sha256,
                    "items_count": items_count,
                    "entries_count": entries_count,
                    "upserted": 0
                }

            except PipelineError as e:
                logger.error(
                    f"Ingestion failed for {identifier}: {e.message}",
                    extra={"error_context": e.to_dict()}
                )
                await self._mark_failed(session, tracker, run_id, sha256, str(e))
                raise

            except Exception as e:
                logger.exception(f"Unexpected error ingesting {identifier}")
                await self._mark_failed(session, tracker, run_id, sha256, str(e))
                raise

        logger.info(
            f"Ingestion completed for {identifier}: "
            f"{items_count} items, {entries_count} entries, {upserted} rows upserted"
        )

        if self.event_bus is not None:
            event = IngestionCompletedEvent(
                source=self.source,
                date=target_date,
                items_count=items_count,
                entries_count=entries_count,
                sha256=sha256,
            )
            await self.event_bus.publish(INGESTION_COMPLETED, event.to_message())

        return {
            "run_id": run_id,
            "date": identifier,
            "status": RunStatus.COMPLETED.value,
            "sha256": sha256,
            "items_count": items_count,
            "entries_count": entries_count,
            "upserted": upserted
        }

    async def _mark_failed(self, session, tracker: IngestionRunTracker, run_id: int, sha256: Optional[str], error: str):
        await session.rollback()
        await tracker.update_run(
            run_id,
            RunStatus.FAILED,
            content_hash=sha256,
            metadata={"error": error}
        )

    async def backfill(self, start: date, end: date) -> List[Dict[str, Any]]:
        """
        Ingest every date in ``[start, end]`` sequentially.

        A failing date is recorded in the result list and does not stop the
        remaining dates.
        """
        if start > end:
            raise ValueError(f"Backfill start {start.isoformat()} is after end {end.isoformat()}")

        results: List[Dict[str, Any]] = []
        current = start
        while current <= end:
            try:
                results.append(await self.ingest(current))
            except Exception as e:
                logger.warning(f"Backfill continuing after failure on {current.isoformat()}: {e}")
                results.append({
                    "date": current.isoformat(),
                    "status": RunStatus.FAILED.value,
                    "error": str(e)
                })
            current += timedelta(days=1)

        completed = sum(1 for r in results if r["status"] == RunStatus.COMPLETED.value)
        skipped = sum(1 for r in results if r["status"] == RunStatus.SKIPPED.value)
        logger.info(
            f"Backfill {start.isoformat()}..{end.isoformat()} finished: "
            f"{completed} completed, {skipped} skipped, {len(results) - completed - skipped} failed"
        )
        return results
