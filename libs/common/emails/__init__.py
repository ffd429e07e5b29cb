"""
Webshop email package.

Modules:
- core: send_email over SMTP
- store: order, gift card and price-drop templates
"""
