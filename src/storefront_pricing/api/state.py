"""
Shared pricing service for the API routers.
"""
import logging
from functools import lru_cache

from ..engine import PricingService

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_service() -> PricingService:
    """Build the file-backed pricing service once per process."""
    logger.info("Initialising pricing service from settings")
    return PricingService.from_settings()
