"""Resilient HTTP client: rate limiting, proxy rotation, block detection and retries."""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Union

import aiohttp
from aiohttp import ClientSession, ClientTimeout, ClientError

from .anti_bot_detector import AntiBotDetector, DetectionSignal, ExpectedStructure
from .cache import TTLCache
from .error_handler import (
    CrawlerError,
    CredentialError,
    MovieNotFound,
    OtherError,
    ProxyExhausted,
    RateLimitExceeded,
    RetryStrategy,
    SiteBlocked,
    SitePermissionError,
    WebsiteError,
)
from .proxy_manager import ProxyEntry, ProxyManager
from .rate_limiter import RateLimiter
from ..models.config import RetryConfig
from ..models.response import HttpResponse
from ..models.scrape_result import ScrapeRequest


DEFAULT_USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:121.0) Gecko/20100101 Firefox/121.0',
]

# Signals that indicate a challenge page even on a 5xx status
_CONTENT_SIGNALS = {DetectionSignal.HEADER_PATTERN, DetectionSignal.CONTENT_PATTERN}


class HttpClient:
    """
    Async HTTP client performing one logical fetch over several attempts.

    Each attempt acquires a rate limiter token, picks a proxy when a pool is
    configured, sends the request with a fixed timeout and classifies the
    outcome. Terminal errors (not found, credentials, permissions) are raised
    at once; transient ones are retried with exponential backoff.
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        rate_limiter: Optional[RateLimiter] = None,
        proxy_manager: Optional[ProxyManager] = None,
        detector: Optional[AntiBotDetector] = None,
        cache: Optional[TTLCache] = None,
        prefer_region: Optional[str] = None
    ):
        """
        Initialize the HTTP client.

        Args:
            config: Retry, timeout and user agent settings
            rate_limiter: Admission control shared by every request
            proxy_manager: Proxy pool; requests go direct when None
            detector: Anti-automation detector run on every response
            cache: Response cache for successful GET requests
            prefer_region: Preferred proxy region
        """
        self.config = config or RetryConfig()
        self.rate_limiter = rate_limiter
        self.proxy_manager = proxy_manager
        self.detector = detector
        self.cache = cache
        self.prefer_region = prefer_region
        self.timeout = self.config.timeout
        self.retry_strategy = RetryStrategy(
            max_attempts=self.config.max_retries,
            base_delay=self.config.base_delay,
            max_delay=self.config.max_delay,
            exponential_backoff=True,
            jitter=self.config.jitter
        )
        self.logger = logging.getLogger(__name__)

        self.user_agents = list(self.config.user_agents or DEFAULT_USER_AGENTS)
        self._user_agent_index = 0

        # Default headers
        self.default_headers = {
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': 'ja,en-US;q=0.8,en;q=0.6,zh;q=0.4',
            'Accept-Encoding': 'gzip, deflate',
            'Connection': 'keep-alive',
            'Upgrade-Insecure-Requests': '1',
        }

        self._session: Optional[ClientSession] = None
        self.stats = {
            'requests': 0,
            'successes': 0,
            'failures': 0,
            'retries': 0,
            'blocked': 0,
            'cache_hits': 0,
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self):
        """Ensure the HTTP session is created."""
        if self._session is None or self._session.closed:
            self._session = ClientSession(
                timeout=ClientTimeout(total=self.timeout),
                headers=self.default_headers
            )
            self.logger.debug("Created new HTTP session")

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self.logger.debug("Closed HTTP session")

    def _next_user_agent(self) -> str:
        agent = self.user_agents[self._user_agent_index % len(self.user_agents)]
        self._user_agent_index += 1
        return agent

    async def get(self, url: str, **kwargs) -> HttpResponse:
        """Fetch a URL with GET. See ``fetch`` for arguments."""
        return await self.fetch(url, method='GET', **kwargs)

    async def post(
        self,
        url: str,
        data: Optional[Union[Dict, str, bytes]] = None,
        json: Optional[Dict] = None,
        **kwargs
    ) -> HttpResponse:
        """Send a POST request. Responses to POST are never cached."""
        return await self.fetch(url, method='POST', data=data, json=json, use_cache=False, **kwargs)

    async def fetch(
        self,
        url: str,
        method: str = 'GET',
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Union[Dict, str, bytes]] = None,
        json: Optional[Dict] = None,
        request: Optional[ScrapeRequest] = None,
        expected: Optional[ExpectedStructure] = None,
        use_cache: bool = True,
        detect: bool = True
    ) -> HttpResponse:
        """
        Perform one logical fetch.

        Args:
            url: URL to request
            method: HTTP method
            headers: Additional headers
            params: Query parameters
            data: Form data or raw body
            json: JSON body
            request: Scrape request providing priority, deadline and context
            expected: Page markers checked by the detector
            use_cache: Serve and store successful GET responses in the cache
            detect: Run the anti-automation detector on responses

        Returns:
            Successful response

        Raises:
            RateLimitExceeded: Admission was denied
            ProxyExhausted: A proxy pool is configured but no proxy is active
            MovieNotFound: The resource does not exist
            CredentialError, SitePermissionError: Access is not allowed
            SiteBlocked: The site served an anti-automation response
            WebsiteError, OtherError: Transient failures persisted after all attempts
        """
        method = method.upper()
        source = request.source_name if request else None
        identifier = request.identifier.normalized if request else None
        priority = request.priority if request else 0

        cache_key = None
        if use_cache and method == 'GET' and self.cache is not None:
            cache_key = self._cache_key(url, params)
            cached = self.cache.get(cache_key)
            if cached is not None:
                self.stats['cache_hits'] += 1
                self.logger.debug(f"Cache hit for {url}")
                return cached

        blocked_proxies: List[ProxyEntry] = []
        last_error: Optional[CrawlerError] = None

        for attempt in range(self.retry_strategy.max_attempts):
            if attempt > 0:
                self.stats['retries'] += 1
                delay = self.retry_strategy.get_delay(attempt - 1)
                if request:
                    delay = min(delay, request.remaining())
                self.logger.debug(f"Retrying {url} in {delay:.2f}s (attempt {attempt + 1})")
                await asyncio.sleep(delay)

            remaining = request.remaining() if request else None
            if remaining is not None and remaining <= 0:
                raise WebsiteError(f"Deadline exceeded fetching {url}", source, identifier) from last_error

            if self.rate_limiter is not None:
                granted = await self.rate_limiter.acquire(priority, timeout=remaining)
                if not granted:
                    # A timed wait only happens under a request deadline
                    if self.rate_limiter.last_denial_reason == "timeout":
                        raise WebsiteError(
                            f"Deadline exceeded waiting for rate limiter on {url}", source, identifier
                        ) from last_error
                    raise RateLimitExceeded(f"Rate limit admission denied for {url}", source, identifier)

            proxy = self._select_proxy(blocked_proxies, last_error, source, identifier)

            timeout = self.timeout if remaining is None else min(self.timeout, remaining)
            self.stats['requests'] += 1
            started = time.monotonic()
            response: Optional[HttpResponse] = None

            try:
                response = await self._send(
                    method, url, headers=headers, proxy=proxy, timeout=timeout,
                    params=params, data=data, json=json
                )
            except asyncio.TimeoutError:
                error = WebsiteError(f"Timeout after {timeout:.1f}s fetching {url}", source, identifier)
            except ClientError as e:
                error = WebsiteError(f"Transport error fetching {url}: {e}", source, identifier)
            except Exception as e:
                error = OtherError(f"Unexpected error fetching {url}: {e}", source, identifier)
            else:
                error = self._classify(response, expected if detect else None, detect, source, identifier)

            latency_ms = (time.monotonic() - started) * 1000
            self._report(proxy, response, error, latency_ms)

            if error is None:
                self.stats['successes'] += 1
                if cache_key is not None:
                    self.cache.set(cache_key, response)
                return response

            last_error = error
            if isinstance(error, SiteBlocked):
                self.stats['blocked'] += 1
                if proxy is None:
                    self.stats['failures'] += 1
                    raise error
                blocked_proxies.append(proxy)
                self.logger.warning(f"Blocked via proxy {proxy.key} on {url}, rotating")
                continue

            if not error.retryable:
                self.stats['failures'] += 1
                raise error

            self.logger.warning(f"Request failed (attempt {attempt + 1}/{self.retry_strategy.max_attempts}): {error}")

        self.stats['failures'] += 1
        self.logger.error(f"Request failed after {self.retry_strategy.max_attempts} attempts: {url}")
        raise last_error or OtherError(f"Request failed: {url}", source, identifier)

    def _select_proxy(
        self,
        blocked: List[ProxyEntry],
        last_error: Optional[CrawlerError],
        source: Optional[str],
        identifier: Optional[str]
    ) -> Optional[ProxyEntry]:
        if self.proxy_manager is None or len(self.proxy_manager) == 0:
            return None

        proxy = self.proxy_manager.select(self.prefer_region, exclude=blocked)
        if proxy is not None:
            return proxy

        # Every remaining proxy already got blocked on this fetch
        if blocked and isinstance(last_error, SiteBlocked):
            raise last_error
        raise ProxyExhausted("No active proxy available", source, identifier)

    def _report(
        self,
        proxy: Optional[ProxyEntry],
        response: Optional[HttpResponse],
        error: Optional[CrawlerError],
        latency_ms: float
    ) -> None:
        delivered = response is not None and not isinstance(error, SiteBlocked)

        if proxy is not None:
            if delivered:
                self.proxy_manager.report_success(proxy, latency_ms)
            else:
                self.proxy_manager.report_failure(proxy, error)

        if self.rate_limiter is not None:
            # A definitive answer from the site counts as healthy traffic
            healthy = error is None or isinstance(
                error, (MovieNotFound, CredentialError, SitePermissionError)
            )
            self.rate_limiter.record_result(healthy, latency_ms)

    def _classify(
        self,
        response: HttpResponse,
        expected: Optional[ExpectedStructure],
        detect: bool,
        source: Optional[str],
        identifier: Optional[str]
    ) -> Optional[CrawlerError]:
        """Map a received response to an error, or None when it is usable."""
        status = response.status

        if status == 404:
            return MovieNotFound(f"Not found: {response.url}", source, identifier)
        if status in (401, 407):
            return CredentialError(f"Authentication required ({status}): {response.url}", source, identifier)
        if status in (402, 451):
            return SitePermissionError(f"Access not permitted ({status}): {response.url}", source, identifier)

        detection = self.detector.detect(response, expected) if (detect and self.detector) else None

        if status in (403, 429):
            confidence = detection.confidence if detection else 0.0
            return SiteBlocked(f"Blocked ({status}): {response.url}", source, identifier, confidence)

        if status >= 500:
            if detection and detection.signals & _CONTENT_SIGNALS:
                return SiteBlocked(f"Challenge page ({status}): {response.url}", source, identifier,
                                   detection.confidence)
            return WebsiteError(f"Server error {status}: {response.url}", source, identifier, status_code=status)

        if status >= 400:
            return WebsiteError(f"HTTP {status}: {response.url}", source, identifier, status_code=status)

        if not response.ok:
            return OtherError(f"Unexpected status {status}: {response.url}", source, identifier)

        if detection and detection.is_blocked:
            return SiteBlocked(
                f"Anti-automation response ({', '.join(detection.reasons)}): {response.url}",
                source, identifier, detection.confidence
            )
        return None

    async def _send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        proxy: Optional[ProxyEntry] = None,
        timeout: Optional[float] = None,
        **kwargs
    ) -> HttpResponse:
        """Send one request and read the whole body."""
        await self._ensure_session()

        request_headers = {'User-Agent': self._next_user_agent()}
        if headers:
            request_headers.update(headers)

        kwargs = {k: v for k, v in kwargs.items() if v is not None}
        started = time.monotonic()

        async with self._session.request(
            method,
            url,
            headers=request_headers,
            proxy=proxy.url if proxy else None,
            timeout=ClientTimeout(total=timeout or self.timeout),
            **kwargs
        ) as resp:
            body = await resp.read()
            self.logger.debug(f"Response: {resp.status} {resp.reason} for {url}")
            return HttpResponse(
                url=str(resp.url),
                status=resp.status,
                headers=dict(resp.headers),
                body=body,
                elapsed_ms=(time.monotonic() - started) * 1000,
                proxy=proxy.key if proxy else None,
            )

    @staticmethod
    def _cache_key(url: str, params: Optional[Dict[str, Any]]) -> str:
        if not params:
            return url
        query = "&".join(f"{k}={params[k]}" for k in sorted(params))
        return f"{url}?{query}"

    def get_stats(self) -> Dict[str, Any]:
        """
        Get client statistics.

        Returns:
            Dictionary with client statistics
        """
        stats = {
            **self.stats,
            'session_active': self._session is not None and not self._session.closed,
            'max_retries': self.retry_strategy.max_attempts,
            'timeout': self.timeout,
        }
        if self.rate_limiter is not None:
            stats['rate_limiter'] = self.rate_limiter.get_stats()
        if self.proxy_manager is not None:
            stats['proxies'] = self.proxy_manager.get_stats()
        if self.detector is not None:
            stats['detection'] = self.detector.get_detection_stats()
        if self.cache is not None:
            stats['cache'] = self.cache.get_stats()
        return stats
