from sqlalchemy import Column, String, Enum, DateTime, Index
from sqlalchemy.sql import func
from models.base import Base, IdType, JSONType, RunStatus


class IngestionRun(Base):
    """
    One tracked run per (source, identifier).

    Purpose:
    - Idempotency gate (content hash of the last processed payload)
    - Audit trail of the latest attempt for a date
    - Error tracking and debugging

    Design:
    - At most one row per (source, identifier); a restart resets the row
    - content_hash is the hash seen by the latest attempt
    - processed_hash is only written when a run ends completed or skipped,
      and survives restarts so the gate still sees earlier processed content
    """
    __tablename__ = "ingestion_runs"

    id = Column(IdType, primary_key=True, autoincrement=True)

    # Run identification
    source = Column(String(64), nullable=False)
    identifier = Column(String(128), nullable=False)  # date for daily runs

    status = Column(Enum(RunStatus), default=RunStatus.RUNNING, nullable=False, index=True)

    # Timestamps
    started_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Content fingerprints
    content_hash = Column("sha256", String(64), nullable=True)
    processed_hash = Column("processed_sha256", String(64), nullable=True)

    # Diagnostics (counts, skip reason, error message)
    run_metadata = Column("metadata", JSONType, nullable=True)

    __table_args__ = (
        Index("ingestion_runs_source_identifier_idx", "source", "identifier", unique=True),
        Index("ingestion_runs_processed_sha256_idx", "processed_sha256"),
    )
