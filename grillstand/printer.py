"""Kitchen ticket printing on the stand's USB thermal printer."""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

from grillstand.config import (
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_TAIL_SPACER_PX,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
)
from grillstand.data import bill_line_label
from grillstand.models import BillItem

_SEPARATOR_HEIGHT_PX = 14
_SEPARATOR_THICKNESS_PX = 3
# Extra vertical headroom so descenders are not clipped on thermal output.
_LINE_EXTRA_PX = 30
_FONT_OVERRIDE_ENV = "GRILL_PRINTER_FONT_PATH"
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/liberation/LiberationSans-Regular.ttf",
)


def resolve_printer_font_path() -> str:
    """
    Resolve a printer font that can draw Czech diacritics.

    Resolution order:
    1. GRILL_PRINTER_FONT_PATH (if set)
    2. PRINTER_FONT_PATH
    3. Known Linux fallbacks
    """
    env_override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    candidates: list[str] = []
    if env_override:
        candidates.append(env_override)
    candidates.append(PRINTER_FONT_PATH)
    candidates.extend(_LINUX_FONT_FALLBACKS)

    seen: set[str] = set()
    for candidate in candidates:
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        if Path(candidate).is_file():
            return candidate

    raise RuntimeError(
        f"No usable printer font found. Set {_FONT_OVERRIDE_ENV} to a valid .ttf/.otf file. "
        f"Tried: {', '.join(seen)}"
    )


def check_printer_dependencies() -> tuple[bool, str]:
    """Check whether the printer stack and a font are usable."""
    try:
        from escpos.printer import Usb  # noqa: F401
        from PIL import ImageFont

        font_path = resolve_printer_font_path()
        ImageFont.truetype(font_path, max(10, PRINTER_FONT_SIZE // 2))
    except (ImportError, OSError, RuntimeError) as exc:
        return (False, f"Printer deps unavailable: {exc}")
    return (True, "Printer ready")


def ticket_lines(table_label: str, customer_name: str, items: list[BillItem], ready_at: datetime) -> list[str]:
    """Text lines of a kitchen ticket, header first.

    Only food goes to the grill; drinks and extras stay off the ticket.
    """
    header = f"{table_label} {ready_at.astimezone().strftime('%H:%M')}"
    lines = [header, customer_name]
    lines.extend(bill_line_label(item) for item in items if not item.is_other)
    return lines


def _render_line(text: str, font: object) -> object:
    from PIL import Image, ImageDraw

    canvas_height = PRINTER_FONT_SIZE + _LINE_EXTRA_PX
    img = Image.new("1", (PRINTER_WIDTH_PX, canvas_height), color=1)
    draw = ImageDraw.Draw(img)

    bbox = draw.textbbox((0, 0), text, font=font)
    text_height = bbox[3] - bbox[1]
    # Offset by bbox top so descenders are not clipped.
    y = (canvas_height - text_height) // 2 - bbox[1]
    draw.text((PRINTER_LEFT_INDENT_PX, y), text, font=font, fill=0)
    return img


def _render_separator() -> object:
    from PIL import Image, ImageDraw

    img = Image.new("1", (PRINTER_WIDTH_PX, _SEPARATOR_HEIGHT_PX), color=1)
    draw = ImageDraw.Draw(img)
    top = (_SEPARATOR_HEIGHT_PX - _SEPARATOR_THICKNESS_PX) // 2
    draw.rectangle((0, top, PRINTER_WIDTH_PX - 1, top + _SEPARATOR_THICKNESS_PX - 1), fill=0)
    return img


def _render_spacer(height_px: int) -> object:
    from PIL import Image

    return Image.new("1", (PRINTER_WIDTH_PX, max(1, height_px)), color=1)


def print_kitchen_ticket(table_label: str, customer_name: str, items: list[BillItem], ready_at: datetime) -> None:
    """Print one ticket for a batch sent to the grill and cut it."""
    lines = ticket_lines(table_label, customer_name, items, ready_at)
    if len(lines) <= 2:
        return

    try:
        from escpos.printer import Usb
        from PIL import ImageFont
    except ImportError as exc:
        raise RuntimeError(f"Printer dependencies unavailable: {exc}") from exc

    printer = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)
    font_path = resolve_printer_font_path()
    font = ImageFont.truetype(font_path, PRINTER_FONT_SIZE)
    header_font = ImageFont.truetype(font_path, max(20, PRINTER_FONT_SIZE - 12))

    header, customer, *food = lines
    printer.image(_render_line(header, header_font))
    printer.image(_render_line(customer, header_font))
    printer.image(_render_separator())
    for line in food:
        printer.image(_render_line(line, font))
    printer.image(_render_spacer(PRINTER_TAIL_SPACER_PX))
    printer.cut()
