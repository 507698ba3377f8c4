"""Runtime configuration defaults for the backend, pricing and printing."""

from __future__ import annotations

import os
from decimal import Decimal

API_BASE_URL = os.environ.get("POS_API_BASE_URL", "https://server-erp.payshia.com").rstrip("/")
COMPANY_ID = os.environ.get("POS_COMPANY_ID", "1")
LOCATION_ID = os.environ.get("POS_LOCATION_ID", "1")
CASHIER_ID = os.environ.get("POS_CASHIER_ID", "3")
CASHIER_NAME = os.environ.get("POS_CASHIER_NAME", "Cashier")
REQUEST_TIMEOUT_SECONDS = float(os.environ.get("POS_REQUEST_TIMEOUT", "10"))

TAX_RATE = Decimal(os.environ.get("POS_TAX_RATE", "0.08"))
CURRENCY_SYMBOL = "$"

WALK_IN_CUSTOMER_ID = "4"
WALK_IN_CUSTOMER_NAME = "Walk-in Customer"

LOG_PATH = os.environ.get("POS_LOG_PATH", "/tmp/pos-terminal.log")

PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 28
PRINTER_FONT_PATH = "/System/Library/Fonts/SFNS.ttf"
PRINTER_LEFT_INDENT_PX = 8
PRINTER_TAIL_SPACER_PX = 70
