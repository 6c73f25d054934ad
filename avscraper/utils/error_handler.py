"""Error taxonomy and retry policy for the scraping engine."""

import random
from typing import Dict, Optional


# Custom Exception Classes
class AVScraperError(Exception):
    """Base exception for AV Scraper errors."""
    pass


class ConfigurationError(AVScraperError):
    """Exception raised for configuration-related errors."""
    pass


class ValidationError(AVScraperError):
    """Exception raised for validation errors."""
    pass


class CrawlerError(AVScraperError):
    """
    Failure while fetching or parsing data from a source.

    ``retryable`` tells the HTTP client whether another attempt may succeed.
    """

    retryable = False

    def __init__(self, message: str = "", source: Optional[str] = None, identifier: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.source = source
        self.identifier = identifier

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.source:
            parts.append(f"source={self.source}")
        if self.identifier:
            parts.append(f"id={self.identifier}")
        return " ".join(parts) if len(parts) == 1 else f"{parts[0]} ({', '.join(parts[1:])})"


class RateLimitExceeded(CrawlerError):
    """Admission denied by the rate limiter."""
    pass


class MovieNotFound(CrawlerError):
    """The source has no entry for the identifier."""
    pass


class MovieDuplicate(CrawlerError):
    """The source returned several candidates for one identifier."""

    def __init__(self, message: str = "", source: Optional[str] = None,
                 identifier: Optional[str] = None, candidates: Optional[list] = None):
        super().__init__(message, source, identifier)
        self.candidates = list(candidates or [])


class SiteBlocked(CrawlerError):
    """The source served an anti-automation page or blocking status."""

    def __init__(self, message: str = "", source: Optional[str] = None,
                 identifier: Optional[str] = None, confidence: float = 0.0):
        super().__init__(message, source, identifier)
        self.confidence = confidence


class SitePermissionError(CrawlerError):
    """The content requires permissions the client does not have."""
    pass


class CredentialError(CrawlerError):
    """Credentials are missing or rejected."""
    pass


class WebsiteError(CrawlerError):
    """Transient server or transport failure."""

    retryable = True

    def __init__(self, message: str = "", source: Optional[str] = None,
                 identifier: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, source, identifier)
        self.status_code = status_code


class ProxyExhausted(CrawlerError):
    """No active proxy is available."""
    pass


class OtherError(CrawlerError):
    """Unclassified failure."""

    retryable = True


class AggregateScrapeError(AVScraperError):
    """Every eligible adapter failed for an identifier."""

    def __init__(self, identifier: str, errors: Optional[Dict[str, Exception]] = None, message: str = ""):
        self.identifier = identifier
        self.errors: Dict[str, Exception] = dict(errors or {})
        if not message:
            if self.errors:
                details = "; ".join(f"{name}: {err}" for name, err in self.errors.items())
                message = f"All sources failed for {identifier}: {details}"
            else:
                message = f"No eligible sources for {identifier}"
        super().__init__(message)

    @property
    def not_found(self) -> bool:
        """True when every source reported the identifier as missing."""
        return bool(self.errors) and all(isinstance(e, MovieNotFound) for e in self.errors.values())


def is_retryable(error: BaseException) -> bool:
    """Whether an HTTP attempt that raised ``error`` may be retried."""
    if isinstance(error, CrawlerError):
        return error.retryable
    return False


class RetryStrategy:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_backoff: bool = True,
        jitter: bool = True
    ):
        """
        Initialize retry strategy.

        Args:
            max_attempts: Maximum number of attempts
            base_delay: Base delay between retries in seconds
            max_delay: Maximum delay between retries
            exponential_backoff: Use exponential backoff
            jitter: Add random jitter to delays
        """
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_backoff = exponential_backoff
        self.jitter = jitter

    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay for given attempt.

        Args:
            attempt: Attempt number (0-based)

        Returns:
            Delay in seconds
        """
        if self.exponential_backoff:
            delay = self.base_delay * (2 ** attempt)
        else:
            delay = self.base_delay

        # Apply maximum delay limit
        delay = min(delay, self.max_delay)

        if self.jitter:
            delay *= (0.5 + random.random() * 0.5)  # 50-100% of calculated delay

        return delay
