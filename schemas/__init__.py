"""
Pydantic schemas for validation and serialization.

Schemas:
    provider: Daily price-history payload as published by the provider
    normalized: Flattened observation row written to storage
    events: Event payloads (camelCase on the wire)
    api: API endpoint request/response schemas

Usage:
    from schemas.provider import DailyHistoryAdapter
    from schemas.normalized import ObservationRow
    from schemas.events import IngestionCompletedEvent
    from schemas.api import IngestRequest, HealthCheckResponse
"""

__all__ = [
    "DailyHistoryAdapter",
    "PriceHistoryEntrySchema",
    "ObservationRow",
    "IngestionCompletedEvent",
    "AnalyticsCompletedEvent",
    "IngestRequest",
    "BackfillRequest",
    "HealthCheckResponse",
]
