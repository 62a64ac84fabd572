"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List, Dict, Any
import datetime as dt
from models.base import Recommendation, RunStatus


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# ============================================================================
# Trigger Schemas
# ============================================================================

class IngestRequest(BaseModel):
    """Single-date ingestion trigger; omitted date means yesterday (UTC)"""
    date: Optional[dt.date] = Field(None, description="Target date (YYYY-MM-DD)")


class BackfillRequest(BaseModel):
    """Inclusive date range to ingest sequentially"""
    start: dt.date
    end: dt.date

    @model_validator(mode="after")
    def check_range(self):
        if self.start > self.end:
            raise ValueError("start must be on or before end")
        return self


class IngestResultResponse(BaseModel):
    """Outcome of one ingestion run"""
    run_id: Optional[int] = None
    date: str
    status: str = Field(..., description="completed, skipped or failed")
    sha256: Optional[str] = None
    items_count: int = 0
    entries_count: int = 0
    upserted: int = 0
    error: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "run_id": 12,
                "date": "2025-08-31",
                "status": "completed",
                "sha256": "3f5a...",
                "items_count": 412,
                "entries_count": 2380,
                "upserted": 2371
            }
        }
    )


class BackfillResponse(BaseModel):
    results: List[IngestResultResponse]
    completed: int = 0
    skipped: int = 0
    failed: int = 0

    @model_validator(mode="after")
    def count_statuses(self):
        self.completed = sum(1 for r in self.results if r.status == RunStatus.COMPLETED.value)
        self.skipped = sum(1 for r in self.results if r.status == RunStatus.SKIPPED.value)
        self.failed = sum(1 for r in self.results if r.status == RunStatus.FAILED.value)
        return self


# ============================================================================
# Run Schemas
# ============================================================================

class IngestionRunResponse(BaseModel):
    """Tracked run as stored"""
    id: int
    source: str
    identifier: str
    status: RunStatus
    started_at: Optional[dt.datetime] = None
    completed_at: Optional[dt.datetime] = None
    content_hash: Optional[str] = None
    processed_hash: Optional[str] = None
    run_metadata: Optional[Dict[str, Any]] = Field(None, serialization_alias="metadata")

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class IngestionRunListResponse(BaseModel):
    items: List[IngestionRunResponse]
    count: int


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: dt.datetime = Field(default_factory=_utcnow)
    database_connected: bool
    latest_runs: List[IngestionRunResponse] = Field(default_factory=list)

    @model_validator(mode="after")
    def determine_status(self):
        """Unhealthy without a database, degraded when a source's latest run failed"""
        if not self.database_connected:
            self.status = "unhealthy"
        elif any(run.status == RunStatus.FAILED.value for run in self.latest_runs):
            self.status = "degraded"
        else:
            self.status = "healthy"
        return self


# ============================================================================
# Analytics Schemas
# ============================================================================

class FlipRecommendationResponse(BaseModel):
    item_name: str
    mod_rank: int
    rank: int
    score: float
    recommendation: Recommendation
    confidence: float
    factors_json: Optional[Dict[str, float]] = Field(None, serialization_alias="factors")

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class FlipRecommendationListResponse(BaseModel):
    date: dt.date
    count: int
    items: List[FlipRecommendationResponse]


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    timestamp: dt.datetime = Field(default_factory=_utcnow)
