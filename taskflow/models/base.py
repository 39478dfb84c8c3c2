from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from taskflow.db import Base

# jsonb on postgres, plain json elsewhere (sqlite in tests)
JSONType = sa.JSON().with_variant(JSONB(), "postgresql")

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

__all__ = ["Base", "JSONType", "utcnow"]
