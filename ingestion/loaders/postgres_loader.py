"""
Load price-history snapshots and observation rows with upsert logic (idempotency)
"""

from datetime import date
from typing import Any, Dict, List
from sqlalchemy.ext.asyncio import AsyncSession
from core.database import dialect_insert
from core.exceptions import UpsertError
from models.price_history import PriceHistoryEntry, PriceHistoryRaw
from schemas.normalized import ObservationRow
import logging

logger = logging.getLogger(__name__)

ENTRY_KEY_COLUMNS = ["date", "datetime", "item_name", "order_type", "mod_rank"]

# Overwritten on conflict so a changed snapshot never leaves stale values behind
ENTRY_MUTABLE_COLUMNS = [
    "volume",
    "min_price",
    "max_price",
    "open_price",
    "closed_price",
    "avg_price",
    "wa_price",
    "median",
    "moving_avg",
    "donch_top",
    "donch_bot",
    "entry_id",
]


class PriceHistoryLoader:
    """
    Persist price history with idempotent upsert operations.

    Ensures:
    - One raw snapshot per date (replaced when content changes)
    - No duplicate observation rows on repeated runs
    - Every numeric field refreshed when a row is re-ingested
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def save_raw_snapshot(
        self,
        target_date: date,
        sha256: str,
        payload: Dict[str, Any],
        items_count: int,
        entries_count: int
    ):
        """Upsert the verbatim payload keyed by date"""
        stmt = dialect_insert(self.db, PriceHistoryRaw).values(
            date=target_date,
            sha256=sha256,
            payload=payload,
            items_count=items_count,
            entries_count=entries_count,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["date"],
            set_={
                "sha256": stmt.excluded.sha256,
                "payload": stmt.excluded.payload,
                "items_count": stmt.excluded.items_count,
                "entries_count": stmt.excluded.entries_count,
            }
        )

        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            raise UpsertError(
                "Failed to store raw price history snapshot",
                context={
                    "table_name": PriceHistoryRaw.__tablename__,
                    "date": target_date.isoformat(),
                    "sha256": sha256
                },
                original_exception=e
            )

        logger.info(f"Stored raw snapshot for {target_date.isoformat()} (sha256={sha256[:12]})")

    @staticmethod
    def deduplicate(rows: List[ObservationRow]) -> List[ObservationRow]:
        """Collapse rows sharing the uniqueness key; the last one wins"""
        by_key: Dict[tuple, ObservationRow] = {}
        for row in rows:
            by_key[row.unique_key] = row
        return list(by_key.values())

    async def _upsert_batch(self, batch: List[ObservationRow]):
        stmt = dialect_insert(self.db, PriceHistoryEntry).values(
            [row.to_db_dict() for row in batch]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=ENTRY_KEY_COLUMNS,
            set_={column: stmt.excluded[column] for column in ENTRY_MUTABLE_COLUMNS}
        )
        await self.db.execute(stmt)
        await self.db.commit()

    async def upsert_entries(self, rows: List[ObservationRow], batch_size: int = 500) -> int:
        """
        Upsert observation rows in batches (INSERT ON CONFLICT UPDATE).

        Each batch is committed on its own; batches written before a failure
        stay written.

        Returns:
            Number of distinct rows written

        Raises:
            UpsertError: If a batch fails
        """
        if not rows:
            return 0

        unique_rows = self.deduplicate(rows)
        if len(unique_rows) != len(rows):
            logger.debug(f"Collapsed {len(rows) - len(unique_rows)} duplicate observation rows")

        total_written = 0
        for i in range(0, len(unique_rows), batch_size):
            batch = unique_rows[i:i + batch_size]
            batch_index = i // batch_size
            try:
                await self._upsert_batch(batch)
            except Exception as e:
                await self.db.rollback()
                raise UpsertError(
                    "Failed to upsert observation batch",
                    context={
                        "table_name": PriceHistoryEntry.__tablename__,
                        "batch_index": batch_index,
                        "batch_size": len(batch),
                        "rows_written": total_written
                    },
                    original_exception=e
                )

            total_written += len(batch)
            logger.debug(f"Batch {batch_index + 1}: Upserted {len(batch)} rows")

        logger.info(f"Upserted {total_written} rows into {PriceHistoryEntry.__tablename__}")
        return total_written
