"""
Core utilities and configuration for the market-history pipeline.

This package provides foundational components used throughout the system:

Modules:
    config: Application configuration and environment variable management
    database: Async engine/session handle and dialect-aware upserts
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration
    services: Composition of the service graph for an entry point

Usage:
    from core.config import settings
    from core.database import Database
    from core.exceptions import FetchError, PersistenceError
    from core.logging import setup_logging
    from core.services import build_services

Example:
    setup_logging()
    services = build_services(settings)
    try:
        await services.ingestion_runner.ingest()
    finally:
        await services.aclose()
"""

__all__ = [
    "settings",
    "Database",
    "setup_logging",
    "build_services",
    # Exceptions
    "PipelineError",
    "FetchError",
    "NetworkError",
    "RateLimitError",
    "AuthenticationError",
    "ResourceNotFoundError",
    "SchemaValidationError",
    "NormalizationError",
    "PersistenceError",
    "UpsertError",
    "DuplicateContentError",
    "PerItemAnalyticsError",
    "UnknownRouteError",
    "RetryableError",
    "NonRetryableError",
]
