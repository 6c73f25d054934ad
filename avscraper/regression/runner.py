"""Re-scrape stored baselines and compare them with fresh results."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .baseline_store import BaselineStore
from .comparator import RegressionComparator
from ..identifiers.normalizer import IdentifierNormalizer, get_normalizer
from ..models.comparison import ComparisonResult
from ..models.scrape_result import ScrapeRequest
from ..scrapers.base_scraper import SourceAdapter
from ..scrapers.orchestrator import ScraperOrchestrator
from ..utils.error_handler import ConfigurationError, ValidationError


BaselineKey = Tuple[str, str]


@dataclass
class RegressionReport:
    """Comparison per (identifier, source) plus the pairs that could not be checked."""

    results: Dict[BaselineKey, ComparisonResult] = field(default_factory=dict)
    errors: Dict[BaselineKey, Exception] = field(default_factory=dict)

    @property
    def passed(self) -> List[BaselineKey]:
        return sorted(k for k, r in self.results.items() if r.is_perfect)

    @property
    def failed(self) -> List[BaselineKey]:
        return sorted(k for k, r in self.results.items() if not r.is_perfect)

    def summary(self) -> Dict[str, Any]:
        total = len(self.results) + len(self.errors)
        rates = [r.match_rate for r in self.results.values()]
        return {
            'total': total,
            'passed': len(self.passed),
            'failed': len(self.failed),
            'errors': len(self.errors),
            'success_rate': round(len(self.passed) * 100 / total, 1) if total else 0.0,
            'average_match_rate': round(sum(rates) / len(rates), 2) if rates else 0.0,
        }


class RegressionRunner:
    """
    Runs regression checks over a BaselineStore.

    Each baseline is re-fetched through the adapter named in its file name,
    so results are compared source by source.
    """

    def __init__(
        self,
        store: BaselineStore,
        adapters: Union[ScraperOrchestrator, Mapping[str, SourceAdapter], Iterable[SourceAdapter]],
        comparator: Optional[RegressionComparator] = None,
        normalizer: Optional[IdentifierNormalizer] = None,
        max_concurrency: int = 3,
        timeout_seconds: float = 60.0
    ):
        self.store = store
        self.comparator = comparator or RegressionComparator()
        self.max_concurrency = max_concurrency
        self.timeout_seconds = timeout_seconds
        self.logger = logging.getLogger(__name__)

        if isinstance(adapters, ScraperOrchestrator):
            self.normalizer = normalizer or adapters.normalizer
            self.timeout_seconds = adapters.timeout_seconds
            adapters = adapters.adapters
        else:
            self.normalizer = normalizer or get_normalizer()

        if isinstance(adapters, Mapping):
            self.adapters = {name.lower(): adapter for name, adapter in adapters.items()}
        else:
            self.adapters = {adapter.name.lower(): adapter for adapter in adapters}

    async def check(self, identifier: str, source: str) -> ComparisonResult:
        """
        Compare one baseline with a fresh scrape.

        Raises:
            ConfigurationError: No adapter for the source
            ValidationError: The identifier cannot be normalized
            CrawlerError: The fresh scrape failed
        """
        adapter = self.adapters.get(source.lower())
        if adapter is None:
            raise ConfigurationError(f"No adapter registered for source '{source}'")

        parsed = self.normalizer.normalize(identifier)
        if not parsed:
            raise ValidationError(f"Baseline identifier cannot be normalized: {parsed}")

        baseline = self.store.load(identifier, source)
        request = ScrapeRequest.with_timeout(parsed, adapter.name, self.timeout_seconds)
        current = await asyncio.wait_for(adapter.scrape(parsed, request), timeout=self.timeout_seconds)
        return self.comparator.compare(baseline, current)

    async def run(
        self,
        identifiers: Optional[Iterable[str]] = None,
        sources: Optional[Iterable[str]] = None
    ) -> RegressionReport:
        """
        Check every stored baseline, optionally filtered.

        Args:
            identifiers: Only check these identifiers
            sources: Only check these sources

        Returns:
            RegressionReport with results and per-pair errors
        """
        wanted_ids = set(identifiers) if identifiers is not None else None
        wanted_sources = {s.lower() for s in sources} if sources is not None else None

        keys = [
            (identifier, source) for identifier, source in self.store.list_baselines()
            if (wanted_ids is None or identifier in wanted_ids)
            and (wanted_sources is None or source.lower() in wanted_sources)
        ]
        self.logger.info(f"Running regression checks for {len(keys)} baselines")

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(key: BaselineKey) -> ComparisonResult:
            async with semaphore:
                return await self.check(*key)

        outcomes = await asyncio.gather(*(_bounded(k) for k in keys), return_exceptions=True)

        report = RegressionReport()
        for key, outcome in zip(keys, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                self.logger.error(f"Regression check failed for {key[0]} ({key[1]}): {outcome}")
                report.errors[key] = outcome
            else:
                report.results[key] = outcome
                if not outcome.is_perfect:
                    fields = ', '.join(r.field for r in outcome.mismatches)
                    self.logger.warning(
                        f"{key[0]} ({key[1]}) drifted: {outcome.match_rate}% match, mismatched {fields}"
                    )

        self.logger.info(f"Regression summary: {report.summary()}")
        return report
