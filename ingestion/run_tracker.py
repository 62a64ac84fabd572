"""
Run tracking state machine: running -> {completed, skipped, failed}.

One row per (source, identifier). A new trigger for the same pair resets the
row to ``running`` instead of inserting a second one, so the row itself is the
arbiter of which attempt owns a date.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from core.database import dialect_insert
from core.exceptions import PersistenceError
from models.base import RunStatus
from models.ingestion_run import IngestionRun
import logging

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (RunStatus.COMPLETED, RunStatus.SKIPPED, RunStatus.FAILED)

# Statuses that mean "this content has been dealt with"
PROCESSED_STATUSES = (RunStatus.COMPLETED, RunStatus.SKIPPED)


class IngestionRunTracker:
    """Create, finish and look up tracked runs"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def start_run(self, source: str, identifier: str) -> IngestionRun:
        """
        Enter ``running`` for (source, identifier).

        Inserts the row, or resets an existing one with a fresh ``started_at``
        and cleared ``completed_at``. ``processed_hash`` is left untouched.
        """
        now = datetime.now(timezone.utc)
        table = IngestionRun.__table__

        stmt = dialect_insert(self.db, IngestionRun).values(
            source=source,
            identifier=identifier,
            status=RunStatus.RUNNING,
            started_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["source", "identifier"],
            set_={
                table.c["status"]: RunStatus.RUNNING,
                table.c["started_at"]: now,
                table.c["completed_at"]: None,
                table.c["sha256"]: None,
                table.c["metadata"]: None,
            }
        ).returning(IngestionRun)

        result = await self.db.scalars(
            stmt, execution_options={"populate_existing": True}
        )
        run = result.one()
        await self.db.commit()

        logger.info(f"Started run {run.id} for {source}:{identifier}")
        return run

    async def update_run(
        self,
        run_id: int,
        status: RunStatus,
        content_hash: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> IngestionRun:
        """
        Move a run to a terminal state and stamp ``completed_at``.

        On ``completed`` or ``skipped`` the content hash also becomes the
        processed hash consulted by ``find_completed_run_by_hash``.
        """
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Runs can only be moved to a terminal status, got {status}")

        values: Dict[Any, Any] = {
            IngestionRun.status: status,
            IngestionRun.completed_at: datetime.now(timezone.utc),
        }
        if content_hash is not None:
            values[IngestionRun.content_hash] = content_hash
            if status in PROCESSED_STATUSES:
                values[IngestionRun.processed_hash] = content_hash
        if metadata is not None:
            values[IngestionRun.run_metadata] = metadata

        result = await self.db.execute(
            update(IngestionRun)
            .where(IngestionRun.id == run_id)
            .values(values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise PersistenceError(
                f"Run {run_id} does not exist",
                context={
                    "operation": "UPDATE",
                    "table_name": IngestionRun.__tablename__,
                    "run_id": run_id
                }
            )
        await self.db.commit()

        logger.info(f"Run {run_id} marked {status.value}")
        return await self.get_run(run_id)

    async def find_completed_run_by_hash(
        self,
        source: str,
        identifier: str,
        content_hash: str
    ) -> Optional[IngestionRun]:
        """Most recent run whose processed content has this exact hash"""
        result = await self.db.execute(
            select(IngestionRun)
            .where(
                IngestionRun.source == source,
                IngestionRun.identifier == identifier,
                IngestionRun.processed_hash == content_hash,
            )
            .order_by(IngestionRun.completed_at.desc(), IngestionRun.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def get_run(self, run_id: int) -> Optional[IngestionRun]:
        result = await self.db.execute(
            select(IngestionRun)
            .where(IngestionRun.id == run_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def list_runs(self, source: Optional[str] = None, limit: int = 50) -> List[IngestionRun]:
        """Most recently started runs first"""
        query = select(IngestionRun)
        if source:
            query = query.where(IngestionRun.source == source)
        query = query.order_by(IngestionRun.started_at.desc(), IngestionRun.id.desc()).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())
