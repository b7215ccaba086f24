"""Runtime configuration defaults for persistence, sync and printing."""

from __future__ import annotations

import os

DB_PATH = os.environ.get("GRILL_DB_PATH", "data/grill.db")
STATE_KEY = "grill_state"

LOG_PATH = os.environ.get("GRILL_LOG_PATH", "/tmp/grill-debug.log")

BACKEND_URL = os.environ.get(
    "GRILL_BACKEND_URL",
    "https://script.google.com/macros/s/AKfycbxnTrVOOjPDKiaHRuG9EAjeLt4R9UDiBXgZiGoyW9F1xD42U82RAeRarOywVm4VPJDH/exec",
)
HTTP_TIMEOUT_SECONDS = 15
SYNC_AFTER_ENQUEUE_SECONDS = 1.5
SYNC_INTERVAL_SECONDS = 60
ONLINE_PROBE_TIMEOUT_SECONDS = 1.5

DISPATCH_OVERDUE_MINUTES = 20
CURRENCY = "Kč"

PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 40
PRINTER_FONT_PATH = "/System/Library/Fonts/SFNS.ttf"
PRINTER_LEFT_INDENT_PX = 16
PRINTER_TAIL_SPACER_PX = 70
