"""Shop Service models package."""

from services.shop_service.models.catalog import Category, Product, ProductVariant
from services.shop_service.models.community import NewsletterSubscriber, Review
from services.shop_service.models.commerce import (
    Customer,
    Order,
    OrderItem,
    SettingAudit,
    StoreAuditLog,
    StoreSetting,
    WebhookEvent,
)
from services.shop_service.models.enums import (
    AuditEntityType,
    DiscountType,
    GiftCardStatus,
    InventoryReason,
    OrderStatus,
    PaymentMethod,
    ReviewStatus,
)
from services.shop_service.models.inventory import InventoryLog
from services.shop_service.models.promotions import (
    Coupon,
    GiftCard,
    GiftCardRedemption,
    PriceAlert,
    coupon_products,
)

__all__ = [
    "AuditEntityType",
    "Category",
    "Coupon",
    "Customer",
    "DiscountType",
    "GiftCard",
    "GiftCardRedemption",
    "GiftCardStatus",
    "InventoryLog",
    "InventoryReason",
    "NewsletterSubscriber",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "PriceAlert",
    "Product",
    "ProductVariant",
    "Review",
    "ReviewStatus",
    "SettingAudit",
    "StoreAuditLog",
    "StoreSetting",
    "WebhookEvent",
    "coupon_products",
]
