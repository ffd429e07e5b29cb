"""
Core email sending over SMTP.
"""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


def _deliver(
    to_email: str,
    subject: str,
    body: str,
    html_body: Optional[str],
    sender: str,
    reply_to: Optional[str] = None,
) -> None:
    settings = get_settings()

    if html_body:
        msg = MIMEMultipart("alternative")
        msg.attach(MIMEText(body, "plain"))
        msg.attach(MIMEText(html_body, "html"))
    else:
        msg = MIMEText(body, "plain")

    msg["Subject"] = subject
    msg["From"] = f"{settings.DEFAULT_FROM_NAME} <{sender}>"
    msg["To"] = to_email
    if reply_to:
        msg["Reply-To"] = reply_to

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
        server.starttls()
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.sendmail(sender, to_email, msg.as_string())


async def send_email(
    to_email: str,
    subject: str,
    body: str,
    html_body: Optional[str] = None,
    from_email: Optional[str] = None,
    reply_to: Optional[str] = None,
) -> bool:
    """
    Send an email over SMTP.

    Fire-and-forget from the caller's point of view: every failure is logged
    and reported as False, never raised.
    """
    settings = get_settings()

    if not settings.SMTP_USERNAME or not settings.SMTP_PASSWORD:
        logger.warning("SMTP credentials not configured - email not sent")
        logger.info(f"Would have sent email to {to_email}: {subject}")
        return False

    sender = from_email or settings.DEFAULT_FROM_EMAIL

    try:
        logger.info(f"Sending email to {to_email}: {subject}")
        await asyncio.to_thread(
            _deliver, to_email, subject, body, html_body, sender, reply_to
        )
        return True
    except smtplib.SMTPAuthenticationError as e:
        logger.error(f"SMTP authentication failed: {e}")
        return False
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to_email}: {type(e).__name__}: {e}")
        return False
