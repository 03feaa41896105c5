"""
Logging setup shared by the server entry points.
"""

import logging
import sys
from datetime import datetime


class DotMsFormatter(logging.Formatter):
    """Formatter that renders timestamps with millisecond precision."""

    def formatTime(self, record, datefmt=None):
        ct = datetime.fromtimestamp(record.created)
        s = ct.strftime(datefmt or "%Y-%m-%d %H:%M:%S")
        return f"{s}.{int(record.msecs):03d}"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a console handler to the root logger (idempotent)."""
    root = logging.getLogger()
    root.setLevel(level.upper())

    if not any(getattr(h, "_coinwatch", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            DotMsFormatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s")
        )
        handler._coinwatch = True
        root.addHandler(handler)

    return root
