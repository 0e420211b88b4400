# log_config.py
from __future__ import annotations

import logging
import sys

from env_config import get_env

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def configure_logging(level: int | str | None = None) -> None:
    """Configure the root logger once. TREATMENT_PLAN_LOG_LEVEL sets the default level."""
    global _configured
    if _configured:
        return

    if level is None:
        level = get_env("TREATMENT_PLAN_LOG_LEVEL", "INFO").upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)
    _configured = True
