"""Contact form delivery to the store inbox."""

from libs.common.emails.store import send_contact_email
from libs.common.logging import get_logger

logger = get_logger(__name__)


async def send_contact_message(name: str, email: str, message: str) -> bool:
    """Forward the message. A failed delivery is logged, never raised."""
    try:
        delivered = await send_contact_email(name=name, email=email, message=message)
    except Exception:
        logger.exception("Contact message from %s could not be sent", email)
        return False

    if not delivered:
        logger.warning("Contact message from %s was not delivered", email)
    return delivered
