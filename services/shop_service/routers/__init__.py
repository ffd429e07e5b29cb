"""Shop service routers package."""

from services.shop_service.routers.admin_catalog import router as admin_catalog_router
from services.shop_service.routers.admin_coupons import router as admin_coupons_router
from services.shop_service.routers.admin_inventory import (
    router as admin_inventory_router,
)
from services.shop_service.routers.admin_newsletter import (
    router as admin_newsletter_router,
)
from services.shop_service.routers.admin_orders import router as admin_orders_router
from services.shop_service.routers.admin_reviews import router as admin_reviews_router
from services.shop_service.routers.admin_settings import (
    router as admin_settings_router,
)
from services.shop_service.routers.cart import router as cart_router
from services.shop_service.routers.catalog import router as catalog_router
from services.shop_service.routers.gift_cards import router as gift_cards_router
from services.shop_service.routers.loyalty import router as loyalty_router
from services.shop_service.routers.newsletter import router as newsletter_router
from services.shop_service.routers.orders import router as orders_router
from services.shop_service.routers.price_alerts import router as price_alerts_router
from services.shop_service.routers.reviews import router as reviews_router
from services.shop_service.routers.webhooks import router as webhooks_router

__all__ = [
    "admin_catalog_router",
    "admin_coupons_router",
    "admin_inventory_router",
    "admin_newsletter_router",
    "admin_orders_router",
    "admin_reviews_router",
    "admin_settings_router",
    "cart_router",
    "catalog_router",
    "gift_cards_router",
    "loyalty_router",
    "newsletter_router",
    "orders_router",
    "price_alerts_router",
    "reviews_router",
    "webhooks_router",
]
