"""Scraper orchestrator that queries source adapters by strategy and priority."""

import asyncio
import logging
import time
from datetime import timedelta
from enum import Enum
from functools import reduce
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .base_scraper import SourceAdapter
from ..identifiers.normalizer import IdentifierNormalizer, get_normalizer
from ..models.identifier import Identifier, IdFormat
from ..models.record import Record, completeness_score
from ..models.scrape_result import BatchResult, ScrapeOutcome, ScrapeRequest, ScrapeResult
from ..utils.cache import TTLCache
from ..utils.error_handler import AggregateScrapeError, CrawlerError, OtherError, WebsiteError


DEFAULT_PRIORITY_TABLE: Dict[str, List[str]] = {
    'standard': ['javbus'],
    'fc2': ['fc2'],
}


class ScrapeStrategy(Enum):
    """How adapters are combined for one identifier."""
    FALLBACK_CHAIN = "fallback_chain"
    PARALLEL_RACE = "parallel_race"
    MERGE_ALL = "merge_all"
    SMART_BEST = "smart_best"

    @classmethod
    def from_value(cls, value: Union['ScrapeStrategy', str]) -> 'ScrapeStrategy':
        if isinstance(value, cls):
            return value
        lowered = str(value).strip().lower().replace('-', '_')
        for member in cls:
            if member.value == lowered or member.name.lower() == lowered:
                return member
        raise ValueError(f"Unknown scrape strategy: {value}")


class ScraperOrchestrator:
    """
    Coordinates source adapters for one or many identifiers.

    Adapters eligible for an identifier are ordered by the per-format
    priority table; adapters missing from the table follow in registration
    order. Every adapter attempt runs under its own ScrapeRequest deadline.
    Total failure always raises AggregateScrapeError carrying each adapter's
    error.
    """

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        priority_table: Optional[Mapping[str, Sequence[str]]] = None,
        timeout_seconds: float = 60.0,
        max_concurrent_requests: int = 3,
        batch_delay_seconds: float = 1.0,
        completeness_weights: Optional[Mapping[str, float]] = None,
        cache: Optional[TTLCache] = None,
        normalizer: Optional[IdentifierNormalizer] = None,
        default_strategy: Union[ScrapeStrategy, str] = ScrapeStrategy.FALLBACK_CHAIN
    ):
        """
        Initialize the orchestrator.

        Args:
            adapters: Source adapters in registration order
            priority_table: Identifier format to ordered adapter names
            timeout_seconds: Deadline for a single adapter attempt
            max_concurrent_requests: Concurrent adapter attempts and batch chunk size
            batch_delay_seconds: Pause between batch chunks
            completeness_weights: Field weights used by SMART_BEST
            cache: Record cache keyed by identifier and strategy
            normalizer: Normalizer applied to raw string inputs
            default_strategy: Strategy used when ``scrape`` gets none
        """
        if max_concurrent_requests < 1:
            raise ValueError("max_concurrent_requests must be at least 1")

        self.adapters = list(adapters)
        self.priority_table: Dict[IdFormat, List[str]] = {}
        for fmt, names in (priority_table if priority_table is not None else DEFAULT_PRIORITY_TABLE).items():
            self.priority_table[IdFormat.from_value(fmt)] = [n.lower() for n in names]

        self.timeout_seconds = timeout_seconds
        self.max_concurrent_requests = max_concurrent_requests
        self.batch_delay_seconds = batch_delay_seconds
        self.completeness_weights = dict(completeness_weights) if completeness_weights else None
        self.cache = cache
        self.normalizer = normalizer or get_normalizer()
        self.default_strategy = ScrapeStrategy.from_value(default_strategy)

        self.logger = logging.getLogger(__name__)
        self._semaphore: Optional[asyncio.Semaphore] = None

        self.stats = self._empty_stats()
        self.logger.info(f"Initialized ScraperOrchestrator with {len(self.adapters)} adapters")

    def _empty_stats(self) -> Dict[str, Any]:
        return {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'cache_hits': 0,
            'adapter_usage': {a.name: 0 for a in self.adapters},
            'adapter_failures': {a.name: 0 for a in self.adapters},
            'adapter_latency_ms': {a.name: [] for a in self.adapters},
        }

    @property
    def semaphore(self) -> asyncio.Semaphore:
        # Created lazily so it binds to the running loop
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrent_requests)
        return self._semaphore

    def resolve(self, identifier: Union[Identifier, str]) -> Identifier:
        """
        Turn raw input into an Identifier.

        Raises:
            AggregateScrapeError: The input cannot be normalized
        """
        if isinstance(identifier, Identifier):
            return identifier
        result = self.normalizer.normalize(identifier)
        if not result:
            raise AggregateScrapeError(str(identifier), message=f"Cannot scrape {identifier!r}: {result}")
        return result

    def eligible_adapters(self, identifier: Identifier) -> List[SourceAdapter]:
        """
        Adapters able to handle the identifier, in priority order.

        Args:
            identifier: Normalized identifier

        Returns:
            Ordered list of adapters
        """
        candidates = [
            a for a in self.adapters
            if identifier.format in a.supported_formats and a.is_supported(identifier)
        ]
        order = self.priority_table.get(identifier.format, [])
        ranked = sorted(
            (a for a in candidates if a.name.lower() in order),
            key=lambda a: order.index(a.name.lower())
        )
        return ranked + [a for a in candidates if a not in ranked]

    async def scrape(
        self,
        identifier: Union[Identifier, str],
        strategy: Optional[Union[ScrapeStrategy, str]] = None,
        priority: int = 0
    ) -> Record:
        """
        Scrape one identifier.

        Args:
            identifier: Identifier or raw filename
            strategy: Adapter combination strategy
            priority: Rate limiter priority of the requests

        Returns:
            Resulting record

        Raises:
            AggregateScrapeError: No adapter produced a record
        """
        outcome = await self.scrape_detailed(identifier, strategy, priority)
        return outcome.record

    async def scrape_detailed(
        self,
        identifier: Union[Identifier, str],
        strategy: Optional[Union[ScrapeStrategy, str]] = None,
        priority: int = 0
    ) -> ScrapeOutcome:
        """Like ``scrape`` but also returns every adapter attempt."""
        strategy = ScrapeStrategy.from_value(strategy or self.default_strategy)
        self.stats['total_requests'] += 1

        try:
            identifier = self.resolve(identifier)
        except AggregateScrapeError:
            self.stats['failed_requests'] += 1
            raise

        cache_key = (identifier.normalized, strategy.value)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                self.stats['cache_hits'] += 1
                self.logger.debug(f"Cache hit for {identifier} ({strategy.value})")
                return ScrapeOutcome(identifier.normalized, strategy.value, cached, from_cache=True)

        adapters = self.eligible_adapters(identifier)
        if not adapters:
            self.stats['failed_requests'] += 1
            self.logger.warning(f"No eligible adapters for {identifier} ({identifier.format.value})")
            raise AggregateScrapeError(identifier.normalized)

        self.logger.info(
            f"Scraping {identifier} with {strategy.value} over {[a.name for a in adapters]}"
        )

        if strategy == ScrapeStrategy.FALLBACK_CHAIN:
            record, results = await self._fallback_chain(identifier, adapters, priority)
        elif strategy == ScrapeStrategy.PARALLEL_RACE:
            record, results = await self._parallel_race(identifier, adapters, priority)
        elif strategy == ScrapeStrategy.MERGE_ALL:
            record, results = await self._merge_all(identifier, adapters, priority)
        else:
            record, results = await self._smart_best(identifier, adapters, priority)

        errors = {r.source: r.error for r in results if r.error is not None}
        if record is None:
            self.stats['failed_requests'] += 1
            self.logger.warning(f"All adapters failed for {identifier}")
            raise AggregateScrapeError(identifier.normalized, errors)

        for name, error in errors.items():
            self.logger.info(f"Adapter {name} failed for {identifier} but another source succeeded: {error}")

        self.stats['successful_requests'] += 1
        if self.cache is not None:
            self.cache.set(cache_key, record)
        return ScrapeOutcome(identifier.normalized, strategy.value, record, results)

    async def _run_adapter(self, adapter: SourceAdapter, identifier: Identifier, priority: int) -> ScrapeResult:
        """Run one adapter attempt; never raises except on cancellation."""
        async with self.semaphore:
            request = ScrapeRequest.with_timeout(identifier, adapter.name, self.timeout_seconds, priority)
            started = time.monotonic()
            error: Optional[Exception] = None
            record: Optional[Record] = None

            try:
                record = await asyncio.wait_for(adapter.scrape(identifier, request), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                error = WebsiteError(
                    f"Timed out after {self.timeout_seconds:.0f}s", adapter.name, identifier.normalized
                )
            except CrawlerError as e:
                error = e
            except Exception as e:  # noqa: BLE001
                self.logger.exception(f"Unexpected error from {adapter.name} for {identifier}")
                error = OtherError(str(e), adapter.name, identifier.normalized)

            latency = timedelta(seconds=time.monotonic() - started)

        if error is not None:
            self.stats['adapter_failures'][adapter.name] = self.stats['adapter_failures'].get(adapter.name, 0) + 1
            self.logger.warning(f"{adapter.name} failed for {identifier}: {error}")
            return ScrapeResult(adapter.name, None, False, 0.0, latency=latency, error=error)

        self.stats['adapter_usage'][adapter.name] = self.stats['adapter_usage'].get(adapter.name, 0) + 1
        self.stats['adapter_latency_ms'].setdefault(adapter.name, []).append(
            int(latency.total_seconds() * 1000)
        )
        score = completeness_score(record, self.completeness_weights)
        self.logger.debug(f"{adapter.name} completed in {latency.total_seconds():.2f}s with completeness {score}")
        return ScrapeResult(adapter.name, record, True, float(score), latency=latency)

    async def _fallback_chain(
        self, identifier: Identifier, adapters: List[SourceAdapter], priority: int
    ) -> Tuple[Optional[Record], List[ScrapeResult]]:
        results = []
        for adapter in adapters:
            result = await self._run_adapter(adapter, identifier, priority)
            results.append(result)
            if result.has_record:
                return result.record, results
        return None, results

    async def _parallel_race(
        self, identifier: Identifier, adapters: List[SourceAdapter], priority: int
    ) -> Tuple[Optional[Record], List[ScrapeResult]]:
        tasks = [asyncio.ensure_future(self._run_adapter(a, identifier, priority)) for a in adapters]
        results = []
        try:
            for next_done in asyncio.as_completed(tasks):
                result = await next_done
                results.append(result)
                if result.has_record:
                    return result.record, results
        finally:
            pending = [t for t in tasks if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        return None, results

    async def _settle_all(
        self, identifier: Identifier, adapters: List[SourceAdapter], priority: int
    ) -> List[ScrapeResult]:
        # gather keeps adapter priority order regardless of completion order
        return list(await asyncio.gather(*(self._run_adapter(a, identifier, priority) for a in adapters)))

    async def _merge_all(
        self, identifier: Identifier, adapters: List[SourceAdapter], priority: int
    ) -> Tuple[Optional[Record], List[ScrapeResult]]:
        results = await self._settle_all(identifier, adapters, priority)
        records = [r.record for r in results if r.has_record]
        if not records:
            return None, results
        return reduce(lambda left, right: left.merge(right), records), results

    async def _smart_best(
        self, identifier: Identifier, adapters: List[SourceAdapter], priority: int
    ) -> Tuple[Optional[Record], List[ScrapeResult]]:
        results = await self._settle_all(identifier, adapters, priority)
        best: Optional[ScrapeResult] = None
        for result in results:
            # Strict comparison keeps the higher-priority adapter on ties
            if result.has_record and (best is None or result.score > best.score):
                best = result
        return (best.record if best else None), results

    async def scrape_batch(
        self,
        identifiers: Iterable[Union[Identifier, str]],
        strategy: Optional[Union[ScrapeStrategy, str]] = None,
        chunk_size: Optional[int] = None,
        delay: Optional[float] = None
    ) -> BatchResult:
        """
        Scrape many identifiers in chunks.

        Args:
            identifiers: Identifiers or raw filenames
            strategy: Strategy applied to each identifier
            chunk_size: Identifiers per chunk (defaults to the concurrency limit)
            delay: Seconds to wait between chunks

        Returns:
            BatchResult keyed by the input string (normalized form for Identifier inputs)
        """
        items = list(identifiers)
        batch = BatchResult()
        if not items:
            return batch

        chunk_size = chunk_size or self.max_concurrent_requests
        delay = self.batch_delay_seconds if delay is None else delay
        self.logger.info(f"Scraping {len(items)} identifiers in chunks of {chunk_size}")

        for start in range(0, len(items), chunk_size):
            if start and delay > 0:
                await asyncio.sleep(delay)

            chunk = items[start:start + chunk_size]
            outcomes = await asyncio.gather(
                *(self.scrape(item, strategy) for item in chunk), return_exceptions=True
            )
            for item, outcome in zip(chunk, outcomes):
                key = item.normalized if isinstance(item, Identifier) else str(item)
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                if isinstance(outcome, BaseException):
                    self.logger.error(f"Failed to scrape {key}: {outcome}")
                    batch.failures[key] = outcome
                else:
                    batch.records[key] = outcome

        self.logger.info(
            f"Completed batch scraping: {len(batch.records)}/{batch.total} successful"
        )
        return batch

    def get_stats(self) -> Dict[str, Any]:
        """
        Get orchestrator usage statistics.

        Returns:
            Dictionary with statistics
        """
        def _avg(values: List[int]) -> Optional[float]:
            return round(sum(values) / len(values), 2) if values else None

        total = max(1, self.stats['total_requests'])
        stats = {
            'total_requests': self.stats['total_requests'],
            'successful_requests': self.stats['successful_requests'],
            'failed_requests': self.stats['failed_requests'],
            'success_rate': self.stats['successful_requests'] / total * 100,
            'cache_hits': self.stats['cache_hits'],
            'cache_hit_rate': self.stats['cache_hits'] / total * 100,
            'adapter_usage': dict(self.stats['adapter_usage']),
            'adapter_failures': dict(self.stats['adapter_failures']),
            'adapter_latency_avg_ms': {
                name: _avg(latencies)
                for name, latencies in self.stats['adapter_latency_ms'].items()
            },
        }
        if self.cache is not None:
            stats['cache'] = self.cache.get_stats()
        return stats

    def clear_cache(self) -> None:
        """Clear the record cache."""
        if self.cache is not None:
            self.cache.clear()
        self.logger.info("Record cache cleared")

    def reset_stats(self) -> None:
        self.stats = self._empty_stats()
        self.logger.info("Statistics reset")

    async def cleanup(self) -> None:
        """Close the HTTP clients held by the adapters."""
        self.logger.info("Cleaning up adapter resources...")
        closed = set()
        for adapter in self.adapters:
            client = adapter.http_client
            if client is not None and id(client) not in closed:
                closed.add(id(client))
                await client.close()
