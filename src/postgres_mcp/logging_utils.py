from __future__ import annotations

import logging
import sys
from typing import Any


def configure_logging(level: str) -> None:
    # stdout carries the stdio transport, keep log output off it
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )


def log_extra(**kwargs: Any) -> dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not None}
