"""Source adapters and orchestration."""

from .base_scraper import SourceAdapter
from .fc2_scraper import FC2Adapter
from .javbus_scraper import JavBusAdapter
from .orchestrator import ScraperOrchestrator, ScrapeStrategy
from .registry import ADAPTER_REGISTRY, create_adapter
from .scraper_factory import ScraperFactory

__all__ = [
    'SourceAdapter',
    'JavBusAdapter',
    'FC2Adapter',
    'ADAPTER_REGISTRY',
    'create_adapter',
    'ScraperOrchestrator',
    'ScrapeStrategy',
    'ScraperFactory',
]
