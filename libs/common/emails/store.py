"""
Store-related email templates.
"""

from datetime import datetime
from typing import Optional

from libs.common.config import get_settings
from libs.common.currency import format_huf
from libs.common.emails.core import send_email


def _wrap_html(title: str, inner: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background: #111827; color: white; padding: 24px; border-radius: 12px 12px 0 0; }}
        .content {{ background: #f8fafc; padding: 24px; border-radius: 0 0 12px 12px; }}
        table {{ width: 100%; border-collapse: collapse; }}
        th, td {{ padding: 8px; text-align: left; border-bottom: 1px solid #e2e8f0; }}
        .code {{ font-size: 22px; font-weight: bold; letter-spacing: 2px; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header"><h1>{title}</h1></div>
        <div class="content">{inner}</div>
    </div>
</body>
</html>
"""


async def send_order_confirmation_email(
    to_email: str,
    customer_name: str,
    order_number: str,
    items: list[dict],  # [{"name": str, "quantity": int, "unit_price": int}]
    subtotal: int,
    discount: int,
    shipping_cost: int,
    total: int,
) -> bool:
    """
    Send order confirmation email once payment is confirmed.
    """
    settings = get_settings()
    subject = f"Order Confirmed - #{order_number}"

    items_text = "\n".join(
        f"  - {item['name']} x{item['quantity']} - {format_huf(item['unit_price'])}"
        for item in items
    )
    items_html = "".join(
        f"<tr><td>{item['name']}</td><td>{item['quantity']}</td>"
        f"<td style='text-align:right'>{format_huf(item['unit_price'])}</td></tr>"
        for item in items
    )

    body = f"""Hi {customer_name},

Thank you for your order! We've received your payment.

Order #{order_number}

Items:
{items_text}

Subtotal: {format_huf(subtotal)}
{f"Discount: -{format_huf(discount)}" if discount > 0 else ""}
Shipping: {format_huf(shipping_cost)}
Total: {format_huf(total)}

{settings.STORE_NAME}
"""
    html_body = _wrap_html(
        "Order confirmed",
        f"""
<p>Hi {customer_name},</p>
<p>Thank you for your order <strong>#{order_number}</strong>.</p>
<table>
    <tr><th>Item</th><th>Qty</th><th style='text-align:right'>Price</th></tr>
    {items_html}
</table>
<p>Subtotal: {format_huf(subtotal)}<br>
{f"Discount: -{format_huf(discount)}<br>" if discount > 0 else ""}
Shipping: {format_huf(shipping_cost)}<br>
<strong>Total: {format_huf(total)}</strong></p>
""",
    )
    return await send_email(to_email, subject, body, html_body)


async def send_gift_card_email(
    to_email: str,
    recipient_name: str,
    code: str,
    amount: int,
    expires_at: datetime,
    sender_name: Optional[str] = None,
    message: Optional[str] = None,
) -> bool:
    """
    Deliver a gift card code to its recipient.
    """
    settings = get_settings()
    from_line = f"{sender_name} sent you" if sender_name else "You received"
    subject = f"{from_line} a {format_huf(amount)} gift card"

    body = f"""Hi {recipient_name},

{from_line} a {settings.STORE_NAME} gift card worth {format_huf(amount)}.
{f'Message: "{message}"' if message else ""}

Code: {code}
Valid until: {expires_at:%Y-%m-%d}

Redeem it at checkout on {settings.STORE_URL}
"""
    html_body = _wrap_html(
        "Your gift card",
        f"""
<p>Hi {recipient_name},</p>
<p>{from_line} a gift card worth <strong>{format_huf(amount)}</strong>.</p>
{f"<blockquote>{message}</blockquote>" if message else ""}
<p class="code">{code}</p>
<p>Valid until {expires_at:%Y-%m-%d}.</p>
""",
    )
    return await send_email(to_email, subject, body, html_body)


async def send_price_drop_email(
    to_email: str,
    product_name: str,
    product_slug: str,
    current_price: int,
    target_price: int,
) -> bool:
    """
    Notify a price alert subscriber that the product reached their target.
    """
    settings = get_settings()
    url = f"{settings.STORE_URL}/shop/{product_slug}"
    subject = f"Price drop: {product_name} is now {format_huf(current_price)}"

    body = f"""Good news!

{product_name} is now {format_huf(current_price)} (your target: {format_huf(target_price)}).

{url}
"""
    html_body = _wrap_html(
        "Price drop",
        f"""
<p><strong>{product_name}</strong> is now {format_huf(current_price)}
(your target: {format_huf(target_price)}).</p>
<p><a href="{url}">View product</a></p>
""",
    )
    return await send_email(to_email, subject, body, html_body)


async def send_contact_email(
    name: str,
    email: str,
    message: str,
) -> bool:
    """
    Forward a contact form message to the store inbox; replies go to the sender.
    """
    settings = get_settings()
    subject = f"Contact form: {name}"

    body = f"""New message from the contact form.

Name: {name}
Email: {email}

{message}
"""
    html_body = _wrap_html(
        "New contact message",
        f"""
<p><strong>{name}</strong> &lt;{email}&gt; wrote:</p>
<blockquote>{message}</blockquote>
""",
    )
    return await send_email(
        settings.ADMIN_EMAIL, subject, body, html_body, reply_to=email
    )


async def send_newsletter_email(
    to_email: str,
    subject: str,
    content: str,
) -> bool:
    """
    Send one newsletter issue to a subscriber, with an unsubscribe link.
    """
    settings = get_settings()
    unsubscribe_url = f"{settings.STORE_URL}/newsletter/unsubscribe?email={to_email}"

    body = f"""{content}

--
{settings.STORE_NAME}
Unsubscribe: {unsubscribe_url}
"""
    html_body = _wrap_html(
        subject,
        f"""
{content}
<p style="font-size: 12px; color: #64748b;">
<a href="{unsubscribe_url}">Unsubscribe</a></p>
""",
    )
    return await send_email(to_email, subject, body, html_body)
