"""Scraped metadata record."""

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional


DEFAULT_COMPLETENESS_WEIGHTS: Dict[str, float] = {
    'title': 20,
    'cover_url': 15,
    'cast': 15,
    'tags': 10,
    'release_date': 10,
    'synopsis': 10,
    'runtime': 5,
    'studio': 5,
    'score': 5,
    'screenshots': 5,
}

LIST_FIELDS = ('cast', 'tags', 'screenshots')

SCALAR_FIELDS = (
    'source_url', 'title', 'synopsis', 'release_date', 'runtime', 'score',
    'rating_votes', 'studio', 'label', 'director', 'series',
    'cover_url', 'poster_url', 'trailer_url', 'source',
)


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, set, dict)):
        return len(value) > 0
    return True


def completeness_score(record: 'Record', weights: Optional[Mapping[str, float]] = None) -> int:
    """
    Weighted presence of the descriptive fields, scaled to 0..100.

    Args:
        record: Record to score
        weights: Field name to weight; defaults to DEFAULT_COMPLETENESS_WEIGHTS

    Returns:
        Integer completeness between 0 and 100
    """
    weights = weights or DEFAULT_COMPLETENESS_WEIGHTS
    total = sum(w for w in weights.values() if w > 0)
    if total <= 0:
        return 0

    present = sum(
        w for name, w in weights.items()
        if w > 0 and _has_value(getattr(record, name, None))
    )
    return int(round(present * 100 / total))


@dataclass
class Record:
    """
    Metadata for one identifier as returned by one or more sources.

    Records are not mutated after construction; ``merge`` returns a new
    instance with scalar fields last-writer-wins and list fields unioned.
    """

    identifier: str
    source: str
    source_url: Optional[str] = None
    title: Optional[str] = None
    synopsis: Optional[str] = None
    release_date: Optional[date] = None
    runtime: Optional[int] = None  # in minutes
    score: Optional[float] = None
    rating_votes: Optional[int] = None
    studio: Optional[str] = None
    label: Optional[str] = None
    director: Optional[str] = None
    series: Optional[str] = None
    cast: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    cover_url: Optional[str] = None
    poster_url: Optional[str] = None
    trailer_url: Optional[str] = None
    screenshots: List[str] = field(default_factory=list)
    source_urls: Dict[str, str] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)
    fetched_at: datetime = field(default_factory=datetime.now)
    completeness: int = field(default=0, compare=False)

    def __post_init__(self) -> None:
        """Validate and normalize the record after initialization."""
        if not self.identifier:
            raise ValueError("identifier cannot be empty")
        if not self.source:
            raise ValueError("source cannot be empty")
        if self.score is not None and not (0 <= self.score <= 10):
            raise ValueError("score must be between 0 and 10")
        if self.runtime is not None and self.runtime < 0:
            raise ValueError("runtime cannot be negative")

        self.title = self._clean_text(self.title)
        self.synopsis = self._clean_text(self.synopsis)
        self.cast = self._normalize_list(self.cast)
        self.tags = self._normalize_list(self.tags)
        self.screenshots = self._normalize_list(self.screenshots)

        if self.source_url and self.source not in self.source_urls:
            self.source_urls = {**self.source_urls, self.source: self.source_url}

        self.completeness = completeness_score(self)

    @staticmethod
    def _clean_text(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @staticmethod
    def _normalize_list(values: Optional[List[str]]) -> List[str]:
        """Strip whitespace and remove duplicates while preserving order."""
        seen = set()
        normalized: List[str] = []
        for value in values or []:
            if not value:
                continue
            cleaned = str(value).strip()
            if cleaned and cleaned not in seen:
                seen.add(cleaned)
                normalized.append(cleaned)
        return normalized

    @staticmethod
    def _merge_lists(left: List[str], right: List[str]) -> List[str]:
        merged = list(left)
        seen = set(left)
        for item in right:
            if item and item not in seen:
                seen.add(item)
                merged.append(item)
        return merged

    def merge(self, other: 'Record') -> 'Record':
        """
        Combine this record with a later one.

        Args:
            other: Record for the same identifier; its non-empty scalars win

        Returns:
            New merged Record

        Raises:
            ValueError: If the records describe different identifiers
        """
        if self.identifier != other.identifier:
            raise ValueError(
                f"Cannot merge records for different identifiers: {self.identifier} != {other.identifier}"
            )

        values: Dict[str, Any] = {'identifier': self.identifier}
        for name in SCALAR_FIELDS:
            theirs = getattr(other, name)
            values[name] = theirs if _has_value(theirs) else getattr(self, name)

        for name in LIST_FIELDS:
            values[name] = self._merge_lists(getattr(self, name), getattr(other, name))

        values['source_urls'] = {**self.source_urls, **other.source_urls}
        values['extra'] = {**self.extra, **other.extra}
        values['fetched_at'] = max(self.fetched_at, other.fetched_at)
        return Record(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Flat key/value document suitable for JSON."""
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, (date, datetime)):
                value = value.isoformat()
            elif isinstance(value, list):
                value = list(value)
            elif isinstance(value, dict):
                value = dict(value)
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Record':
        """Build a record from ``to_dict`` output; unknown keys go to ``extra``."""
        known = {f.name for f in fields(cls)} - {'completeness'}
        values = {k: v for k, v in data.items() if k in known}
        extra = dict(values.pop('extra', None) or {})
        extra.update({k: v for k, v in data.items() if k not in known and k != 'completeness'})
        values['extra'] = extra

        if isinstance(values.get('release_date'), str):
            values['release_date'] = date.fromisoformat(values['release_date'][:10])
        if isinstance(values.get('fetched_at'), str):
            values['fetched_at'] = datetime.fromisoformat(values['fetched_at'])
        elif values.get('fetched_at') is None:
            values.pop('fetched_at', None)
        return cls(**values)
