"""FastAPI application for the Shop Service."""

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.shop_service.errors import register_error_handlers
from services.shop_service.routers import (
    admin_catalog_router,
    admin_coupons_router,
    admin_inventory_router,
    admin_newsletter_router,
    admin_orders_router,
    admin_reviews_router,
    admin_settings_router,
    cart_router,
    catalog_router,
    gift_cards_router,
    loyalty_router,
    newsletter_router,
    orders_router,
    price_alerts_router,
    reviews_router,
    webhooks_router,
)
from slowapi.errors import RateLimitExceeded


def create_app() -> FastAPI:
    """Create and configure the Shop Service FastAPI app."""
    app = FastAPI(
        title="NEXU Webshop Service",
        version="0.1.0",
        description="Webshop backend - catalog, checkout, payments, gift cards, reviews.",
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    add_observability_middleware(app)
    register_error_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "shop"}

    # Public shop routes
    app.include_router(catalog_router, prefix="/shop")
    app.include_router(cart_router, prefix="/shop")
    app.include_router(orders_router, prefix="/shop")
    app.include_router(gift_cards_router, prefix="/shop")
    app.include_router(price_alerts_router, prefix="/shop")
    app.include_router(loyalty_router, prefix="/shop")
    app.include_router(reviews_router, prefix="/shop")
    app.include_router(newsletter_router, prefix="/shop")
    app.include_router(webhooks_router, prefix="/shop")

    # Admin routes
    app.include_router(admin_catalog_router, prefix="/admin/shop")
    app.include_router(admin_inventory_router, prefix="/admin/shop")
    app.include_router(admin_coupons_router, prefix="/admin/shop")
    app.include_router(admin_orders_router, prefix="/admin/shop")
    app.include_router(admin_settings_router, prefix="/admin/shop")
    app.include_router(admin_reviews_router, prefix="/admin/shop")
    app.include_router(admin_newsletter_router, prefix="/admin/shop")

    return app


app = create_app()
