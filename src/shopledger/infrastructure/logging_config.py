"""Logging setup for the command line entry point.

Library code only ever calls ``logging.getLogger(__name__)``; handlers
and levels are configured once, here.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(level=getattr(logging, level.upper()), format=LOG_FORMAT, force=True)
    logging.getLogger("shopledger").setLevel(level.upper())
