"""ARQ worker for shop housekeeping: stale orders, price alerts, gift cards."""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.logging import configure_logging, get_logger

logger = get_logger(__name__)


async def startup(ctx: dict):
    configure_logging()


async def task_expire_pending_orders(ctx: dict):
    from services.shop_service.tasks import expire_pending_orders

    logger.info("Running: expire_pending_orders")
    await expire_pending_orders()


async def task_send_price_alerts(ctx: dict):
    from services.shop_service.tasks import send_price_alerts

    logger.info("Running: send_price_alerts")
    await send_price_alerts()


async def task_expire_gift_cards(ctx: dict):
    from services.shop_service.tasks import expire_overdue_gift_cards

    logger.info("Running: expire_overdue_gift_cards")
    await expire_overdue_gift_cards()


class WorkerSettings:
    redis_settings = get_redis_settings()
    on_startup = startup

    functions = [
        task_expire_pending_orders,
        task_send_price_alerts,
        task_expire_gift_cards,
    ]

    cron_jobs = [
        cron(
            task_expire_pending_orders,
            minute={0, 15, 30, 45},
            run_at_startup=True,
        ),
        cron(task_send_price_alerts, minute={5}),
        cron(task_expire_gift_cards, hour={3}, minute={10}),
    ]
