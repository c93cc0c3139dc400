"""
Logging setup for the pricing engine.

Modules log through ``logging.getLogger(__name__)``; this only installs
the root handler and is called by entry points (API startup, scripts).
"""
import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure stdout logging at the given level (default: settings.log_level)."""
    if level is None:
        from .settings import get_settings
        level = get_settings().log_level

    logging.basicConfig(
        format=LOG_FORMAT,
        stream=sys.stdout,
        level=getattr(logging, str(level).upper(), logging.INFO),
    )
