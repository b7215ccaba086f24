"""Entry point for the grill-stand Textual app."""

from __future__ import annotations

import logging
from pathlib import Path

from grillstand.config import LOG_PATH
from grillstand.grill_app import GrillStandApp


def configure_logging(path: str = LOG_PATH, level: int = logging.DEBUG) -> None:
    """Send log records to the debug file; the TUI owns the terminal."""
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(message)s"))
    root = logging.getLogger("grillstand")
    root.setLevel(level)
    root.addHandler(handler)


def main() -> None:
    configure_logging()
    GrillStandApp().run()


if __name__ == "__main__":
    main()
