"""
Process-wide logging setup.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)

    resolved = logging.getLevelName((level or "").strip().upper())
    # getLevelName returns a string for unknown names.
    root.setLevel(resolved if isinstance(resolved, int) else logging.INFO)
