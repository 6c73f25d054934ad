"""Data structures for scraper orchestration."""

import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional

from .identifier import Identifier
from .record import Record


@dataclass
class ScrapeRequest:
    """One adapter attempt for one identifier, bounded by a monotonic deadline."""

    identifier: Identifier
    source_name: str
    priority: int = 0
    deadline: float = field(default_factory=lambda: time.monotonic() + 60.0)

    @classmethod
    def with_timeout(
        cls,
        identifier: Identifier,
        source_name: str,
        timeout_seconds: float,
        priority: int = 0
    ) -> 'ScrapeRequest':
        return cls(identifier, source_name, priority, time.monotonic() + timeout_seconds)

    def remaining(self) -> float:
        """Seconds left before the deadline (never negative)."""
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.deadline


@dataclass
class ScrapeResult:
    """Container describing a single adapter attempt."""

    source: str
    record: Optional[Record]
    success: bool
    score: float = 0.0
    latency: Optional[timedelta] = None
    error: Optional[Exception] = None

    @property
    def has_record(self) -> bool:
        """Returns True when the adapter yielded a usable record."""
        return self.success and self.record is not None


@dataclass
class BatchResult:
    """Outcome of scraping many identifiers; failures never abort the batch."""

    records: Dict[str, Record] = field(default_factory=dict)
    failures: Dict[str, Exception] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.records) + len(self.failures)

    @property
    def success_rate(self) -> float:
        if not self.total:
            return 0.0
        return len(self.records) / self.total * 100


@dataclass
class ScrapeOutcome:
    """Final record for one identifier plus every adapter attempt behind it."""

    identifier: str
    strategy: str
    record: Record
    results: List[ScrapeResult] = field(default_factory=list)
    from_cache: bool = False

    @property
    def errors(self) -> Dict[str, Exception]:
        """Failures of the adapters that did not contribute."""
        return {r.source: r.error for r in self.results if r.error is not None}

    @property
    def sources(self) -> List[str]:
        return [r.source for r in self.results if r.has_record]
