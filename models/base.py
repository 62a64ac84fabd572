from sqlalchemy import JSON, BigInteger, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

# BIGSERIAL on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY
IdType = BigInteger().with_variant(Integer(), "sqlite")


# ============================================================================
# ENUMS
# ============================================================================

class RunStatus(str, enum.Enum):
    """Ingestion/analytics run status"""
    RUNNING = "running"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


class OrderSide(str, enum.Enum):
    """Side of a trade-history sample"""
    BUY = "buy"
    SELL = "sell"
    CLOSED = "closed"


class Recommendation(str, enum.Enum):
    """Flip recommendation label"""
    BUY = "BUY"
    HOLD = "HOLD"
    AVOID = "AVOID"


class TrendDirection(str, enum.Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    SIDEWAYS = "sideways"
