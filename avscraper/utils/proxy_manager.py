"""Weighted proxy pool with circuit breaking and background health checks."""

import asyncio
import logging
import random
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional
from urllib.parse import quote, urlparse
from urllib.request import getproxies

import aiohttp

from .events import EventListeners


class ProxyStatus(Enum):
    ACTIVE = "active"
    DISABLED = "disabled"


@dataclass(eq=False)
class ProxyEntry:
    """One upstream proxy and its health counters."""

    host: str
    port: int
    protocol: str = "http"
    weight: float = 1.0
    region: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    success_count: int = 0
    failure_count: int = 0
    consecutive_failures: int = 0
    status: ProxyStatus = ProxyStatus.ACTIVE
    last_latency_ms: Optional[float] = None
    last_error: Optional[str] = None

    def __post_init__(self):
        if not self.host:
            raise ValueError("proxy host cannot be empty")
        if not (0 < int(self.port) < 65536):
            raise ValueError(f"invalid proxy port: {self.port}")
        if self.weight <= 0:
            raise ValueError("proxy weight must be positive")
        self.port = int(self.port)

    @classmethod
    def from_url(cls, url: str, weight: float = 1.0, region: Optional[str] = None) -> 'ProxyEntry':
        """Parse ``scheme://[user:pass@]host:port``."""
        parsed = urlparse(url if '://' in url else f"http://{url}")
        if not parsed.hostname or not parsed.port:
            raise ValueError(f"Proxy URL needs a host and port: {url}")
        return cls(
            host=parsed.hostname,
            port=parsed.port,
            protocol=parsed.scheme or "http",
            weight=weight,
            region=region,
            username=parsed.username,
            password=parsed.password,
        )

    @property
    def key(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def url(self) -> str:
        auth = ""
        if self.username:
            auth = quote(self.username, safe='')
            if self.password:
                auth += f":{quote(self.password, safe='')}"
            auth += "@"
        return f"{self.protocol}://{auth}{self.host}:{self.port}"

    @property
    def is_active(self) -> bool:
        return self.status == ProxyStatus.ACTIVE

    @property
    def success_rate(self) -> float:
        total = self.success_count + self.failure_count
        return self.success_count / total if total else 0.0

    @property
    def effective_weight(self) -> float:
        """Configured weight scaled by the smoothed historical success rate."""
        return self.weight * (self.success_count + 1) / (self.success_count + self.failure_count + 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'proxy': self.key,
            'protocol': self.protocol,
            'region': self.region,
            'weight': self.weight,
            'status': self.status.value,
            'success_count': self.success_count,
            'failure_count': self.failure_count,
            'consecutive_failures': self.consecutive_failures,
            'last_latency_ms': self.last_latency_ms,
            'last_error': self.last_error,
        }


ProxyProbe = Callable[[ProxyEntry], Awaitable[bool]]


def system_proxy_urls() -> List[str]:
    """
    HTTP proxies configured for the process (``HTTP_PROXY``, ``HTTPS_PROXY``
    and the platform settings), in that order without duplicates.

    Entries without an explicit port are skipped.
    """
    configured = getproxies()
    urls: List[str] = []
    for scheme in ('http', 'https'):
        url = configured.get(scheme)
        if not url or url in urls:
            continue
        parsed = urlparse(url if '://' in url else f"http://{url}")
        if parsed.hostname and parsed.port:
            urls.append(url)
    return urls


class ProxyManager:
    """
    Pool of upstream proxies.

    Selection is weighted-random over active entries. An entry whose
    consecutive failures reach ``failure_threshold`` is disabled and only
    comes back through ``report_success`` or a successful health probe.
    Entries are removed only through ``remove_proxy``.
    """

    def __init__(
        self,
        proxies: Optional[Iterable[ProxyEntry]] = None,
        failure_threshold: int = 3,
        health_check_interval: float = 300.0,
        probe_url: str = "https://httpbin.org/ip",
        probe_timeout: float = 10.0,
        probe: Optional[ProxyProbe] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the proxy pool.

        Args:
            proxies: Initial entries
            failure_threshold: Consecutive failures that disable an entry
            health_check_interval: Seconds between background probes
            probe_url: URL fetched through a proxy to check reachability
            probe_timeout: Timeout for one probe in seconds
            probe: Custom async probe returning True when the proxy works
            rng: Random source used for selection
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")

        self.failure_threshold = failure_threshold
        self.health_check_interval = health_check_interval
        self.probe_url = probe_url
        self.probe_timeout = probe_timeout
        self._probe = probe or self._http_probe
        self._rng = rng or random.Random()
        self._entries: Dict[str, ProxyEntry] = {}
        self._health_task: Optional[asyncio.Task] = None

        self.listeners = EventListeners("proxy manager")
        self.logger = logging.getLogger(__name__)

        for entry in proxies or []:
            self._entries[entry.key] = entry

        self.logger.info(f"Initialized ProxyManager with {len(self._entries)} proxies")

    @classmethod
    def from_urls(cls, urls: Iterable[str], **kwargs) -> 'ProxyManager':
        return cls([ProxyEntry.from_url(u) for u in urls], **kwargs)

    @property
    def entries(self) -> List[ProxyEntry]:
        return list(self._entries.values())

    def active_entries(self) -> List[ProxyEntry]:
        return [e for e in self._entries.values() if e.is_active]

    def disabled_entries(self) -> List[ProxyEntry]:
        return [e for e in self._entries.values() if not e.is_active]

    def __len__(self) -> int:
        return len(self._entries)

    def select(
        self,
        prefer_region: Optional[str] = None,
        exclude: Optional[Iterable[ProxyEntry]] = None
    ) -> Optional[ProxyEntry]:
        """
        Pick an active proxy.

        Args:
            prefer_region: Restrict to this region when any active entry matches
            exclude: Entries to skip (e.g. ones that were just blocked)

        Returns:
            Selected entry, or None when nothing is selectable
        """
        excluded = {e.key for e in exclude or []}
        candidates = [e for e in self.active_entries() if e.key not in excluded]
        if not candidates:
            return None

        if prefer_region:
            regional = [e for e in candidates if e.region == prefer_region]
            if regional:
                candidates = regional

        weights = [e.effective_weight for e in candidates]
        return self._rng.choices(candidates, weights=weights, k=1)[0]

    def report_success(self, entry: ProxyEntry, latency_ms: Optional[float] = None) -> None:
        entry.success_count += 1
        entry.consecutive_failures = 0
        entry.last_error = None
        if latency_ms is not None:
            entry.last_latency_ms = latency_ms

        if not entry.is_active:
            self._activate(entry, reason="request succeeded")

    def report_failure(self, entry: ProxyEntry, error: Optional[BaseException] = None) -> None:
        entry.failure_count += 1
        entry.consecutive_failures += 1
        entry.last_error = str(error) if error else None

        if entry.is_active and entry.consecutive_failures >= self.failure_threshold:
            entry.status = ProxyStatus.DISABLED
            self.logger.warning(
                f"Disabled proxy {entry.key} after {entry.consecutive_failures} consecutive failures"
            )
            self.listeners.emit('proxy_disabled', proxy=entry.key, error=entry.last_error)

    def _activate(self, entry: ProxyEntry, reason: str) -> None:
        entry.status = ProxyStatus.ACTIVE
        entry.consecutive_failures = 0
        self.logger.info(f"Reactivated proxy {entry.key} ({reason})")
        self.listeners.emit('proxy_reactivated', proxy=entry.key, reason=reason)

    def add_proxy(self, entry: ProxyEntry) -> bool:
        if entry.key in self._entries:
            self.logger.warning(f"Proxy {entry.key} already in pool")
            return False
        self._entries[entry.key] = entry
        self.listeners.emit('proxy_added', proxy=entry.key)
        return True

    def remove_proxy(self, entry_or_key) -> bool:
        key = entry_or_key.key if isinstance(entry_or_key, ProxyEntry) else str(entry_or_key)
        if self._entries.pop(key, None) is None:
            return False
        self.listeners.emit('proxy_removed', proxy=key)
        return True

    async def _http_probe(self, entry: ProxyEntry) -> bool:
        timeout = aiohttp.ClientTimeout(total=self.probe_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self.probe_url, proxy=entry.url) as response:
                    return 200 <= response.status < 300
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.debug(f"Probe through {entry.key} failed: {e}")
            return False

    async def health_check(self) -> Dict[str, bool]:
        """
        Probe every disabled entry and reactivate the reachable ones.

        Returns:
            Mapping of proxy key to probe outcome
        """
        disabled = self.disabled_entries()
        if not disabled:
            return {}

        outcomes = await asyncio.gather(
            *(self._probe(entry) for entry in disabled), return_exceptions=True
        )

        results = {}
        for entry, outcome in zip(disabled, outcomes):
            ok = outcome is True
            if isinstance(outcome, Exception):
                self.logger.debug(f"Probe for {entry.key} raised: {outcome}")
            results[entry.key] = ok
            # Entry may have been removed or reactivated while probing
            if ok and entry.key in self._entries and not entry.is_active:
                self._activate(entry, reason="health check passed")

        self.logger.debug(f"Health check: {sum(results.values())}/{len(results)} proxies recovered")
        return results

    async def _health_loop(self) -> None:
        while True:
            await asyncio.sleep(self.health_check_interval)
            await self.health_check()

    def start(self) -> None:
        """Start periodic health checks (requires a running event loop)."""
        if self._health_task is None or self._health_task.done():
            self._health_task = asyncio.get_running_loop().create_task(self._health_loop())

    async def stop(self) -> None:
        if self._health_task and not self._health_task.done():
            self._health_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._health_task
        self._health_task = None

    def get_stats(self) -> Dict[str, Any]:
        return {
            'total': len(self._entries),
            'active': len(self.active_entries()),
            'disabled': len(self.disabled_entries()),
            'health_checks_running': self._health_task is not None and not self._health_task.done(),
            'proxies': [e.to_dict() for e in self._entries.values()],
        }
