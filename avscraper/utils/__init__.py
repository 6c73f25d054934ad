"""Utility functions and classes."""

from .logging_config import get_logger, LogLevel, setup_application_logging
from .error_handler import (
    AVScraperError, ConfigurationError, ValidationError, CrawlerError,
    RateLimitExceeded, MovieNotFound, MovieDuplicate, SiteBlocked,
    SitePermissionError, CredentialError, WebsiteError, ProxyExhausted,
    OtherError, AggregateScrapeError, RetryStrategy, is_retryable
)
from .cache import TTLCache
from .events import Event, EventListeners

__all__ = [
    'get_logger',
    'LogLevel',
    'setup_application_logging',
    'AVScraperError',
    'ConfigurationError',
    'ValidationError',
    'CrawlerError',
    'RateLimitExceeded',
    'MovieNotFound',
    'MovieDuplicate',
    'SiteBlocked',
    'SitePermissionError',
    'CredentialError',
    'WebsiteError',
    'ProxyExhausted',
    'OtherError',
    'AggregateScrapeError',
    'RetryStrategy',
    'is_retryable',
    'TTLCache',
    'Event',
    'EventListeners',
]
