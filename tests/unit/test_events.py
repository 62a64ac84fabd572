"""
Unit tests for the event bus and the job dispatcher
"""

import pytest
from unittest.mock import AsyncMock
from core.exceptions import PipelineError, UnknownRouteError
from events.bus import EventBus
from events.dispatcher import INGEST_PRICE_HISTORY, JobDispatcher


class TestEventBus:

    @pytest.mark.asyncio
    async def test_publish_reaches_every_handler_in_order(self):
        bus = EventBus(["ingestion.completed"])
        calls = []

        async def first(message):
            calls.append(("first", message["date"]))

        async def second(message):
            calls.append(("second", message["date"]))

        bus.subscribe("ingestion.completed", first)
        bus.subscribe("ingestion.completed", second)

        delivered = await bus.publish("ingestion.completed", {"date": "2025-08-31"})

        assert delivered == 2
        assert calls == [("first", "2025-08-31"), ("second", "2025-08-31")]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self):
        bus = EventBus(["analytics.completed"])
        failing = AsyncMock(side_effect=PipelineError("handler broke"))
        crashing = AsyncMock(side_effect=RuntimeError("unexpected"))
        healthy = AsyncMock()

        for handler in (failing, crashing, healthy):
            bus.subscribe("analytics.completed", handler)

        delivered = await bus.publish("analytics.completed", {"count": 1})

        assert delivered == 1
        healthy.assert_awaited_once_with({"count": 1})
        failing.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_publish_without_handlers(self):
        bus = EventBus(["ingestion.completed"])

        assert await bus.publish("ingestion.completed", {}) == 0

    @pytest.mark.asyncio
    async def test_unknown_channel_is_rejected(self):
        bus = EventBus(["ingestion.completed"])

        with pytest.raises(UnknownRouteError):
            bus.subscribe("ingestion.started", AsyncMock())
        with pytest.raises(UnknownRouteError):
            await bus.publish("ingestion.started", {})


class TestJobDispatcher:

    @pytest.mark.asyncio
    async def test_dispatch_calls_registered_handler(self):
        handler = AsyncMock(return_value={"status": "completed"})
        dispatcher = JobDispatcher({INGEST_PRICE_HISTORY: handler})

        result = await dispatcher.dispatch(INGEST_PRICE_HISTORY, {"date": "2025-08-31"})

        assert result == {"status": "completed"}
        handler.assert_awaited_once_with({"date": "2025-08-31"})

    @pytest.mark.asyncio
    async def test_dispatch_defaults_to_empty_payload(self):
        handler = AsyncMock()
        dispatcher = JobDispatcher({INGEST_PRICE_HISTORY: handler})

        await dispatcher.dispatch(INGEST_PRICE_HISTORY)

        handler.assert_awaited_once_with({})

    @pytest.mark.asyncio
    async def test_unknown_job(self):
        dispatcher = JobDispatcher()

        with pytest.raises(UnknownRouteError) as exc_info:
            await dispatcher.dispatch("reindex")

        assert exc_info.value.context["job"] == "reindex"

    def test_validate_lists_missing_routes(self):
        dispatcher = JobDispatcher({INGEST_PRICE_HISTORY: AsyncMock()})

        dispatcher.validate([INGEST_PRICE_HISTORY])
        with pytest.raises(UnknownRouteError) as exc_info:
            dispatcher.validate([INGEST_PRICE_HISTORY, "backfill-price-history", "reindex"])

        assert exc_info.value.context["missing"] == ["backfill-price-history", "reindex"]
