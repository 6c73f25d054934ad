"""Package entry point with lazy imports to avoid heavy dependencies at import time."""

from importlib import import_module
from typing import Any, Dict, Tuple

__version__ = "1.0.0"
__description__ = "Resilient metadata scraping engine with regression checks"

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    # Core models
    "Identifier": (".models.identifier", "Identifier"),
    "IdFormat": (".models.identifier", "IdFormat"),
    "NormalizationError": (".models.identifier", "NormalizationError"),
    "Record": (".models.record", "Record"),
    "ComparisonResult": (".models.comparison", "ComparisonResult"),
    "EngineConfig": (".models.config", "EngineConfig"),

    # Main components
    "IdentifierNormalizer": (".identifiers.normalizer", "IdentifierNormalizer"),
    "normalize": (".identifiers.normalizer", "normalize"),
    "classify": (".identifiers.normalizer", "classify"),
    "RateLimiter": (".utils.rate_limiter", "RateLimiter"),
    "ProxyManager": (".utils.proxy_manager", "ProxyManager"),
    "AntiBotDetector": (".utils.anti_bot_detector", "AntiBotDetector"),
    "HttpClient": (".utils.http_client", "HttpClient"),
    "ScraperOrchestrator": (".scrapers.orchestrator", "ScraperOrchestrator"),
    "ScrapeStrategy": (".scrapers.orchestrator", "ScrapeStrategy"),
    "ScraperFactory": (".scrapers.scraper_factory", "ScraperFactory"),
    "RegressionComparator": (".regression.comparator", "RegressionComparator"),
    "BaselineStore": (".regression.baseline_store", "BaselineStore"),

    # Configuration
    "ConfigManager": (".config.config_manager", "ConfigManager"),

    # CLI
    "cli_main": (".cli.cli_main", "main"),
}

__all__ = [
    "__version__",
    "__description__",
    *list(_EXPORT_MAP.keys()),
]


def __getattr__(name: str) -> Any:  # pragma: no cover - trivial getter
    if name in _EXPORT_MAP:
        module_name, attribute_name = _EXPORT_MAP[name]
        module = import_module(module_name, package=__name__)
        value = getattr(module, attribute_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
