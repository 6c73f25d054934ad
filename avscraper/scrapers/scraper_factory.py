"""Factory for wiring the engine components from configuration."""

import logging
from typing import List, Optional

from .base_scraper import SourceAdapter
from .orchestrator import ScraperOrchestrator
from .registry import ADAPTER_REGISTRY, create_adapter
from ..identifiers.normalizer import IdentifierNormalizer
from ..models.config import EngineConfig
from ..utils.anti_bot_detector import AntiBotDetector
from ..utils.cache import TTLCache
from ..utils.http_client import HttpClient
from ..utils.proxy_manager import ProxyManager, system_proxy_urls
from ..utils.rate_limiter import RateLimiter


class ScraperFactory:
    """
    Builds a ready-to-use orchestrator and its collaborators.

    Every adapter shares one HTTP client, so the rate limiter and proxy pool
    are process-wide for the engine instance.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize the scraper factory.

        Args:
            config: Engine configuration; defaults apply when omitted
        """
        self.config = config or EngineConfig()
        self.logger = logging.getLogger(__name__)

        self.rate_limiter: Optional[RateLimiter] = None
        self.proxy_manager: Optional[ProxyManager] = None
        self.http_client: Optional[HttpClient] = None

    def create_normalizer(self) -> IdentifierNormalizer:
        settings = self.config.normalizer
        return IdentifierNormalizer(
            ignore_patterns=settings.ignore_patterns,
            max_parent_depth=settings.max_parent_depth,
        )

    def create_rate_limiter(self) -> RateLimiter:
        if self.rate_limiter is None:
            self.rate_limiter = RateLimiter(self.config.rate_limit)
        return self.rate_limiter

    def create_proxy_manager(self) -> Optional[ProxyManager]:
        """Proxy pool, or None when proxies are disabled or none are configured."""
        proxy_config = self.config.proxy
        if not proxy_config.enabled:
            return None

        if self.proxy_manager is None:
            urls = proxy_config.proxies
            if not urls and proxy_config.use_system_proxy:
                urls = system_proxy_urls()
                if urls:
                    self.logger.info(f"Using system proxies: {urls}")
            if not urls:
                return None

            self.proxy_manager = ProxyManager.from_urls(
                urls,
                failure_threshold=proxy_config.failure_threshold,
                health_check_interval=proxy_config.health_check_interval,
                probe_url=proxy_config.probe_url,
                probe_timeout=proxy_config.probe_timeout,
            )
        return self.proxy_manager

    def create_http_client(self) -> HttpClient:
        if self.http_client is None:
            http_config = self.config.http
            self.http_client = HttpClient(
                config=http_config,
                rate_limiter=self.create_rate_limiter(),
                proxy_manager=self.create_proxy_manager(),
                detector=AntiBotDetector(self.config.anti_bot),
                cache=TTLCache(default_ttl=http_config.cache_ttl, max_entries=http_config.cache_max_entries),
                prefer_region=self.config.proxy.prefer_region,
            )
            self.logger.debug("Created shared HTTP client")
        return self.http_client

    def create_adapters(self, names: Optional[List[str]] = None) -> List[SourceAdapter]:
        """
        Instantiate adapters by registry name.

        Args:
            names: Adapter names; defaults to the configured list

        Returns:
            Adapters in the given order
        """
        names = names if names is not None else self.config.orchestrator.adapters
        client = self.create_http_client()
        adapters = [create_adapter(name, client) for name in names]
        self.logger.info(f"Created adapters: {[a.name for a in adapters]}")
        return adapters

    def create_orchestrator(self, adapter_names: Optional[List[str]] = None) -> ScraperOrchestrator:
        settings = self.config.orchestrator
        cache = None
        if settings.cache_duration_minutes > 0:
            cache = TTLCache(default_ttl=settings.cache_duration_minutes * 60, max_entries=1000)

        return ScraperOrchestrator(
            adapters=self.create_adapters(adapter_names),
            priority_table=settings.priority,
            timeout_seconds=settings.timeout_seconds,
            max_concurrent_requests=settings.max_concurrent_requests,
            batch_delay_seconds=settings.batch_delay_seconds,
            completeness_weights=settings.completeness_weights or None,
            cache=cache,
            normalizer=self.create_normalizer(),
            default_strategy=settings.strategy,
        )

    def start_background_tasks(self) -> None:
        """Start the adaptive rate loop and proxy health checks (needs a running loop)."""
        self.create_rate_limiter().start()
        proxy_manager = self.create_proxy_manager()
        if proxy_manager is not None:
            proxy_manager.start()

    async def shutdown(self) -> None:
        """Stop background tasks and close the shared HTTP client."""
        if self.rate_limiter is not None:
            await self.rate_limiter.stop()
        if self.proxy_manager is not None:
            await self.proxy_manager.stop()
        if self.http_client is not None:
            await self.http_client.close()

    @staticmethod
    def get_available_adapters() -> List[str]:
        return list(ADAPTER_REGISTRY)
