from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

LOG_DIR = Path("logs")


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    handlers: list = [logging.StreamHandler()]
    if log_file:
        LOG_DIR.mkdir(exist_ok=True)
        handlers.append(logging.FileHandler(LOG_DIR / log_file))
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
    )


def write_click_event(event: Dict[str, Any]) -> Path:
    """Dump a clicked event payload to ``logs/`` for later inspection."""
    LOG_DIR.mkdir(exist_ok=True)
    ts = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    path = LOG_DIR / f"click_{ts}.json"
    with path.open("w", encoding="utf-8") as f:
        json.dump(event, f, indent=2, ensure_ascii=False)
    return path
