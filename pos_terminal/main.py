"""Entry point for the POS terminal Textual app."""

from __future__ import annotations

import logging
from pathlib import Path

from pos_terminal.config import LOG_PATH
from pos_terminal.pos_app import PosApp


def configure_logging(path: str = LOG_PATH) -> None:
    """Send log records to the debug log file; the terminal belongs to the TUI."""
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(handler)


def main() -> None:
    """Run the Textual application."""
    configure_logging()
    logging.getLogger(__name__).info("app_start")
    PosApp().run()


if __name__ == "__main__":
    main()
