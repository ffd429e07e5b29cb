"""Shop inventory ledger."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import AwareDateTime
from services.shop_service.models.enums import InventoryReason, enum_values
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class InventoryLog(Base):
    """Append-only stock movements; their sum is the current stock."""

    __tablename__ = "shop_inventory_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shop_products.id", ondelete="CASCADE"), nullable=False
    )
    variant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("shop_product_variants.id", ondelete="CASCADE"),
        nullable=True,
    )

    change: Mapped[int] = mapped_column(
        Integer, nullable=False
    )  # Positive = add, negative = subtract
    reason: Mapped[InventoryReason] = mapped_column(
        SAEnum(
            InventoryReason,
            values_callable=enum_values,
            name="shop_inventory_reason_enum",
        ),
        nullable=False,
    )

    reference_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )  # order id for ORDER_* reasons
    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)

    __table_args__ = (
        Index("ix_shop_inventory_logs_product", "product_id", "variant_id"),
    )

    def __repr__(self):
        return f"<InventoryLog {self.reason} change={self.change}>"
