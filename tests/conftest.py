"""
Pytest configuration and fixtures
"""

import copy
import json
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

from core.config import Settings
from core.database import Database
from core.exceptions import ResourceNotFoundError
from core.services import build_services

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Test database: one shared in-memory SQLite connection per test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def load_fixture(name: str) -> Dict[str, Any]:
    with open(FIXTURES_DIR / name, encoding="utf-8") as f:
        return json.load(f)


class FakePriceHistoryClient:
    """Serves payloads per date; dates without a payload behave like a 404"""

    def __init__(self, payloads: Optional[Dict[date, Any]] = None):
        self.payloads: Dict[date, Any] = dict(payloads or {})
        self.calls: List[date] = []
        self.closed = False

    async def fetch_daily_history(self, target_date: date) -> Dict[str, Any]:
        self.calls.append(target_date)
        payload = self.payloads.get(target_date)
        if payload is None:
            raise ResourceNotFoundError(
                f"No price history published for {target_date.isoformat()}",
                context={"status_code": 404, "date": target_date.isoformat()}
            )
        return copy.deepcopy(payload)

    async def aclose(self):
        self.closed = True


def closed_entry(day: date, avg_price: float, volume: int, mod_rank: Optional[int] = None, suffix: str = "0") -> Dict[str, Any]:
    entry = {
        "datetime": f"{day.isoformat()}T00:00:00.000+00:00",
        "volume": volume,
        "min_price": int(avg_price * 0.9),
        "max_price": int(avg_price * 1.1) + 1,
        "open_price": int(avg_price),
        "closed_price": int(avg_price),
        "avg_price": avg_price,
        "wa_price": avg_price,
        "median": avg_price,
        "moving_avg": avg_price,
        "donch_top": int(avg_price * 1.2),
        "donch_bot": int(avg_price * 0.8),
        "id": f"{day.strftime('%Y%m%d')}{suffix}",
        "item_id": "item-" + suffix,
        "order_type": "closed",
    }
    if mod_rank is not None:
        entry["mod_rank"] = mod_rank
    return entry


@pytest.fixture
def sample_payload() -> Dict[str, Any]:
    """Three items, nine entries, one of them with an unknown order type"""
    return load_fixture("price_history_2025-08-31.json")


@pytest.fixture
def shuffled_payload() -> Dict[str, Any]:
    """The 2025-08-31 content with keys and entries shuffled, published for 2025-08-30"""
    return load_fixture("price_history_2025-08-30.json")


@pytest.fixture
def daily_payloads() -> Callable[..., Dict[date, Dict[str, Any]]]:
    """
    Factory for consecutive daily snapshots.

    "Rising Mod" gains 2% a day on growing volume, "Flat Set" barely moves
    and "Newcomer Relic" only trades on the last three days.
    """

    def build(end: date, days: int = 10) -> Dict[date, Dict[str, Any]]:
        payloads = {}
        for offset in range(days):
            day = end - timedelta(days=days - 1 - offset)
            payload = {
                "Rising Mod": [closed_entry(day, 100 * (1.02 ** offset), 50 + offset * 5, mod_rank=0, suffix="1")],
                "Flat Set": [closed_entry(day, 40 + (offset % 2) * 0.2, 20, suffix="2")],
            }
            if offset >= days - 3:
                payload["Newcomer Relic"] = [closed_entry(day, 10.0, 3, suffix="3")]
            payloads[day] = payload
        return payloads

    return build


@pytest.fixture
def fake_client() -> FakePriceHistoryClient:
    return FakePriceHistoryClient()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        DATABASE_URL=TEST_DATABASE_URL,
        SCHEDULER_ENABLED=False,
        ENVIRONMENT="test",
        ETL_BATCH_SIZE=3,
        ANALYTICS_BATCH_SIZE=2,
    )


@pytest_asyncio.fixture(scope="function")
async def database():
    """In-memory database with every table created"""
    db = Database(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()

    yield db

    await db.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(database):
    """Create database session for tests"""
    async with database.session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def services(test_settings, database, fake_client):
    """Full service graph over the test database and the fake provider"""
    return build_services(test_settings, database=database, client=fake_client, with_scheduler=False)
