"""Process-level logging setup for applications embedding agentflow."""

import logging
from typing import Optional

from agentflow.config import config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging at *level* (default ``config.log_level``)."""
    logging.basicConfig(
        level=(level or config.log_level).upper(),
        format=LOG_FORMAT,
    )
