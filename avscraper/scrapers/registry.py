"""Static registry of the built-in source adapters."""

from typing import Dict, Optional, Type

from .base_scraper import SourceAdapter
from .fc2_scraper import FC2Adapter
from .javbus_scraper import JavBusAdapter
from ..utils.error_handler import ConfigurationError
from ..utils.http_client import HttpClient


ADAPTER_REGISTRY: Dict[str, Type[SourceAdapter]] = {
    JavBusAdapter.name: JavBusAdapter,
    FC2Adapter.name: FC2Adapter,
}


def create_adapter(name: str, http_client: Optional[HttpClient] = None) -> SourceAdapter:
    """
    Instantiate a registered adapter.

    Args:
        name: Registry name (case insensitive)
        http_client: Client shared by the adapter

    Returns:
        Adapter instance

    Raises:
        ConfigurationError: Unknown adapter name
    """
    adapter_cls = ADAPTER_REGISTRY.get(name.strip().lower())
    if adapter_cls is None:
        available = ', '.join(sorted(ADAPTER_REGISTRY))
        raise ConfigurationError(f"Unknown source adapter '{name}' (available: {available})")
    return adapter_cls(http_client)
