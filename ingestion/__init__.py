"""
Daily price-history ingestion.

Modules:
    runner: Orchestrator (fetch, hash, dedup, normalize, persist, announce)
    run_tracker: Run lifecycle running -> {completed, skipped, failed}
    scheduler: APScheduler cron trigger for the daily job

Subpackages:
    extractors: Provider HTTP client with retry and circuit breaker
    transformers: Canonical content hash and row normalization
    loaders: Idempotent upserts for snapshots and observation rows

Architecture:
    1. Fetch - Download the snapshot for one date, retrying transient failures
    2. Gate - Skip content whose canonical hash was already processed
    3. Persist - Store the raw snapshot, upsert flattened rows in batches
    4. Announce - Publish ``ingestion.completed`` for downstream analytics

Usage:
    from ingestion.runner import PriceHistoryIngestionRunner

    runner = PriceHistoryIngestionRunner(database, client, event_bus)
    result = await runner.ingest(date(2025, 8, 31))

    print(f"{result['status']}: {result['upserted']} rows")

Error Handling:
    Failures raise the structured exceptions from core.exceptions; the run
    is marked failed before the exception propagates to the caller.
"""

__all__ = [
    "PriceHistoryIngestionRunner",
    "IngestionRunTracker",
    "IngestionScheduler",
    "PriceHistoryClient",
    "PriceHistoryLoader",
]
