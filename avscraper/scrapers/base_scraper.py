"""Source adapter abstract class and shared parsing helpers."""

import re
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import FrozenSet, Optional

from ..models.identifier import Identifier, IdFormat
from ..models.record import Record
from ..models.response import HttpResponse
from ..models.scrape_result import ScrapeRequest
from ..utils.http_client import HttpClient


def parse_date(date_str: Optional[str]) -> Optional[date]:
    """Parse a release date in any of the formats sources use."""
    if not date_str:
        return None

    date_str = date_str.strip()
    for fmt in ['%Y-%m-%d', '%Y/%m/%d', '%Y.%m.%d', '%Y年%m月%d日']:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    match = re.search(r'(\d{4})[-/.年](\d{1,2})[-/.月](\d{1,2})', date_str)
    if match:
        year, month, day = map(int, match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    return None


def parse_runtime(duration_str: Optional[str]) -> Optional[int]:
    """Parse a duration such as ``120分鐘`` or ``01:58:30`` into minutes."""
    if not duration_str:
        return None

    clock = re.search(r'(\d+):(\d{2})(?::(\d{2}))?', duration_str)
    if clock:
        first, second, third = clock.groups()
        if third is None:
            # mm:ss
            return int(first) + (1 if int(second) >= 30 else 0)
        return int(first) * 60 + int(second)

    match = re.search(r'(\d+)', duration_str)
    if match:
        return int(match.group(1))
    return None


class SourceAdapter(ABC):
    """
    Abstract base class for all metadata sources.

    An adapter turns an identifier into one HTTP fetch and parses the
    response into a Record. The injected HTTP client is the only state an
    adapter shares with the rest of the engine.
    """

    name: str = ""
    supported_formats: FrozenSet[IdFormat] = frozenset()

    def __init__(self, http_client: Optional[HttpClient] = None):
        """Initialize the adapter with the HTTP client used for fetches."""
        self.http_client = http_client or HttpClient()

    def is_supported(self, identifier: Identifier) -> bool:
        """
        Check whether this source can look up the identifier.

        Args:
            identifier: Normalized identifier

        Returns:
            True if the identifier's format is handled by this source
        """
        return identifier.format in self.supported_formats

    @abstractmethod
    async def fetch(self, identifier: Identifier, request: Optional[ScrapeRequest] = None) -> HttpResponse:
        """
        Fetch the source page for an identifier.

        Args:
            identifier: Normalized identifier
            request: Scrape request carrying priority and deadline

        Returns:
            The successful response

        Raises:
            CrawlerError: Classified fetch failure
        """
        pass

    @abstractmethod
    def parse(self, identifier: Identifier, response: HttpResponse) -> Record:
        """
        Parse a fetched page into a Record.

        Raises:
            MovieNotFound: The page holds no entry for the identifier
        """
        pass

    async def scrape(self, identifier: Identifier, request: Optional[ScrapeRequest] = None) -> Record:
        """Fetch and parse in one step."""
        response = await self.fetch(identifier, request)
        return self.parse(identifier, response)

    def __str__(self) -> str:
        """String representation of the adapter."""
        return f"{self.__class__.__name__}(name='{self.name}')"

    def __repr__(self) -> str:
        """Detailed string representation of the adapter."""
        return self.__str__()
