"""Admin-editable store settings with a process-wide read-through cache."""

import time
from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.shop_service.errors import ValidationError
from services.shop_service.models import SettingAudit, StoreSetting
from services.shop_service.services.pricing import PricingConfig
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

SHIPPING_FEE = "shipping_fee"
FREE_SHIPPING_THRESHOLD = "free_shipping_threshold"
INTEGER_KEYS = (SHIPPING_FEE, FREE_SHIPPING_THRESHOLD)


def _defaults() -> dict[str, int]:
    settings = get_settings()
    return {
        SHIPPING_FEE: settings.DEFAULT_SHIPPING_FEE,
        FREE_SHIPPING_THRESHOLD: settings.DEFAULT_FREE_SHIPPING_THRESHOLD,
    }


async def load_settings(db: AsyncSession) -> dict[str, int]:
    """Stored values over defaults. Unparseable stored values fall back too."""
    values = _defaults()
    result = await db.execute(
        select(StoreSetting).where(StoreSetting.key.in_(INTEGER_KEYS))
    )
    for row in result.scalars().all():
        try:
            values[row.key] = int(row.value)
        except ValueError:
            logger.warning("Ignoring non-integer setting %s=%r", row.key, row.value)
    return values


class SettingsCache:
    """Caches the pricing config for ``ttl`` seconds; ``invalidate()`` drops it."""

    def __init__(self, ttl: Optional[float] = None):
        self.ttl = ttl if ttl is not None else get_settings().SETTINGS_CACHE_TTL_SECONDS
        self._config: Optional[PricingConfig] = None
        self._loaded_at = 0.0

    def _fresh(self) -> bool:
        return (
            self._config is not None
            and time.monotonic() - self._loaded_at < self.ttl
        )

    async def get(self, db: AsyncSession) -> PricingConfig:
        if not self._fresh():
            values = await load_settings(db)
            self._config = PricingConfig(
                shipping_fee=values[SHIPPING_FEE],
                free_shipping_threshold=values[FREE_SHIPPING_THRESHOLD],
            )
            self._loaded_at = time.monotonic()
        return self._config

    def invalidate(self) -> None:
        self._config = None


settings_cache = SettingsCache()


async def update_settings(
    db: AsyncSession,
    values: dict[str, int],
    *,
    performed_by: str,
    cache: SettingsCache = settings_cache,
) -> dict[str, int]:
    """Write several keys in one transaction, auditing each changed key."""
    unknown = set(values) - set(INTEGER_KEYS)
    if unknown:
        raise ValidationError(f"Unknown setting(s): {', '.join(sorted(unknown))}")

    result = await db.execute(
        select(StoreSetting)
        .where(StoreSetting.key.in_(list(values)))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    existing = {row.key: row for row in result.scalars().all()}

    for key, value in values.items():
        new_value = str(value)
        row = existing.get(key)
        old_value = row.value if row else None
        if old_value == new_value:
            continue
        if row is None:
            db.add(StoreSetting(key=key, value=new_value))
        else:
            row.value = new_value
        db.add(
            SettingAudit(
                key=key,
                old_value=old_value,
                new_value=new_value,
                changed_by=performed_by,
            )
        )

    await db.commit()
    cache.invalidate()
    logger.info("Store settings updated by %s: %s", performed_by, values)
    return await load_settings(db)
