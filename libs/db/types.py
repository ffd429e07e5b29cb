"""Portable column types.

Usage:
    from libs.db.types import AwareDateTime, JSONType

    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator

# JSONB on Postgres, plain JSON elsewhere (tests run on SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class AwareDateTime(TypeDecorator):
    """Timezone-aware UTC datetime on every backend.

    Postgres keeps the offset natively; SQLite drops it, so naive values read
    back are tagged as UTC and aware values are normalised to UTC on write.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: Optional[datetime], dialect
    ) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(
        self, value: Optional[datetime], dialect
    ) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
