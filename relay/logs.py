"""
Logging setup for the relay client.

All diagnostic output goes to stderr so stdout stays free for the CLI's
pairing URL and status lines.
"""

from __future__ import annotations

import logging
import sys

_LOG_FORMAT = "%(asctime)s.%(msecs)03d " "[%(name)s] %(levelname)s " "%(message)s"
_LOG_DATE_FORMAT = "%H:%M:%S"


def configure_logging(level: int = logging.INFO) -> None:
    """
    Configure the root logger to write structured output to stderr.

    Args:
        level: Python logging level (default: INFO)
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # websocket-client logs every reconnect/ping at INFO
    logging.getLogger("websocket").setLevel(logging.WARNING)
