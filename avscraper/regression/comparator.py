"""Field-aware structural comparison of a baseline record against a fresh one."""

import logging
from datetime import date, datetime
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Union
from urllib.parse import urlparse

from rapidfuzz.distance import Levenshtein

from ..models.comparison import ComparisonResult, FieldCategory, FieldResult
from ..models.record import Record


DEFAULT_FIELD_CATEGORIES: Dict[str, FieldCategory] = {
    'score': FieldCategory.VOLATILE,
    'rating_votes': FieldCategory.VOLATILE,
    'view_count': FieldCategory.VOLATILE,
    'comment_count': FieldCategory.VOLATILE,
    'magnet': FieldCategory.VOLATILE,
    'cover_url': FieldCategory.URL,
    'poster_url': FieldCategory.URL,
    'trailer_url': FieldCategory.URL,
    'source_url': FieldCategory.URL,
    'screenshots': FieldCategory.URL_SET,
    'tags': FieldCategory.SET,
    'cast': FieldCategory.SET,
    'genres': FieldCategory.SET,
    'title': FieldCategory.TEXT,
    'synopsis': FieldCategory.TEXT,
}

# Field names used by other tools' baseline documents
FIELD_ALIASES: Dict[str, str] = {
    'dvdid': 'identifier',
    'avid': 'identifier',
    'code': 'identifier',
    'actress': 'cast',
    'actresses': 'cast',
    'actors': 'cast',
    'genre': 'tags',
    'plot': 'synopsis',
    'description': 'synopsis',
    'cover': 'cover_url',
    'big_cover': 'poster_url',
    'preview_pics': 'screenshots',
    'preview_video': 'trailer_url',
    'publish_date': 'release_date',
    'producer': 'studio',
    'maker': 'studio',
    'publisher': 'label',
    'serial': 'series',
    'duration': 'runtime',
    'url': 'source_url',
}

DEFAULT_IGNORE_FIELDS = ('fetched_at', 'completeness')

Comparable = Union[Record, Mapping[str, Any]]


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, set, frozenset, dict)):
        return len(value) > 0
    return True


def url_path(value: Any) -> str:
    """Path component of a URL; non-URL strings are returned unchanged."""
    text = str(value).strip()
    parsed = urlparse(text)
    if parsed.scheme or parsed.netloc:
        return parsed.path
    return text


class RegressionComparator:
    """
    Compares two records field by field.

    Each field is compared with the rule of its category. The match rate
    is the share of matched fields over the union of keys of both
    records; a key empty on both sides counts as matched.
    """

    def __init__(
        self,
        strict: bool = False,
        similarity_threshold: float = 0.9,
        case_insensitive: bool = True,
        ignore_fields: Iterable[str] = DEFAULT_IGNORE_FIELDS,
        field_categories: Optional[Mapping[str, FieldCategory]] = None
    ):
        """
        Initialize the comparator.

        Args:
            strict: Require exact text equality after whitespace normalization
            similarity_threshold: Minimum edit-distance similarity for text fields in non-strict mode
            case_insensitive: Casefold text before comparing
            ignore_fields: Fields left out of the comparison
            field_categories: Overrides merged over the default categories
        """
        if not 0 <= similarity_threshold <= 1:
            raise ValueError("similarity_threshold must be between 0 and 1")

        self.strict = strict
        self.similarity_threshold = similarity_threshold
        self.case_insensitive = case_insensitive
        self.ignore_fields: FrozenSet[str] = frozenset(ignore_fields)
        self.field_categories = {**DEFAULT_FIELD_CATEGORIES, **(field_categories or {})}
        self.logger = logging.getLogger(__name__)

    def category_for(self, field_name: str) -> FieldCategory:
        return self.field_categories.get(field_name, FieldCategory.EXACT)

    def compare(self, baseline: Comparable, current: Comparable) -> ComparisonResult:
        """
        Compare a baseline against a freshly fetched record.

        Args:
            baseline: Stored record or flat mapping
            current: Fresh record or flat mapping

        Returns:
            ComparisonResult with one FieldResult per field in either input
        """
        left = self._flatten(baseline)
        right = self._flatten(current)

        results = []
        for name in sorted(set(left) | set(right)):
            results.append(self._compare_field(name, left.get(name), right.get(name)))

        if results:
            matched = sum(1 for r in results if r.matched)
            match_rate = round(matched * 100 / len(results), 2)
        else:
            match_rate = 100.0

        result = ComparisonResult(match_rate=match_rate, field_results=tuple(results))
        self.logger.debug(f"Compared {len(results)} fields, match rate {match_rate}%")
        return result

    def _flatten(self, data: Comparable) -> Dict[str, Any]:
        raw = data.to_dict() if isinstance(data, Record) else dict(data or {})
        flat = {}
        for key, value in raw.items():
            name = FIELD_ALIASES.get(key, key)
            if name in self.ignore_fields:
                continue
            # Empty values stand for an absent field; keep the key in the union
            if _present(value):
                flat[name] = value
            else:
                flat.setdefault(name, None)
        return flat

    def _compare_field(self, name: str, baseline: Any, current: Any) -> FieldResult:
        category = self.category_for(name)

        if baseline is None and current is None:
            return FieldResult(name, True, category, "absent in both")

        if baseline is None or current is None:
            side = "baseline" if current is None else "current"
            return FieldResult(name, False, category, f"present only in {side}")

        if category == FieldCategory.VOLATILE:
            return FieldResult(name, True, category, "present in both")

        if category == FieldCategory.URL:
            left, right = url_path(baseline), url_path(current)
            if left == right:
                return FieldResult(name, True, category)
            return FieldResult(name, False, category, f"path {left!r} != {right!r}")

        if category in (FieldCategory.SET, FieldCategory.URL_SET):
            normalize = url_path if category == FieldCategory.URL_SET else (lambda v: str(v).strip())
            left = {normalize(v) for v in self._as_list(baseline)}
            right = {normalize(v) for v in self._as_list(current)}
            left.discard('')
            right.discard('')
            if left == right:
                return FieldResult(name, True, category)
            missing = sorted(left - right)
            added = sorted(right - left)
            return FieldResult(name, False, category, f"missing {missing}, added {added}")

        if category == FieldCategory.TEXT:
            return self._compare_text(name, baseline, current)

        left, right = self._exact_value(name, baseline), self._exact_value(name, current)
        if left == right:
            return FieldResult(name, True, category)
        return FieldResult(name, False, category, f"{self._truncate(left)} != {self._truncate(right)}")

    def _compare_text(self, name: str, baseline: Any, current: Any) -> FieldResult:
        left = self._normalize_text(baseline)
        right = self._normalize_text(current)
        if left == right:
            return FieldResult(name, True, FieldCategory.TEXT)

        similarity = Levenshtein.normalized_similarity(left, right)
        if not self.strict and similarity >= self.similarity_threshold:
            return FieldResult(name, True, FieldCategory.TEXT, f"similar ({similarity:.2f})")
        return FieldResult(name, False, FieldCategory.TEXT, f"similarity {similarity:.2f}")

    def _normalize_text(self, value: Any) -> str:
        text = " ".join(str(value).split())
        return text.casefold() if self.case_insensitive else text

    @staticmethod
    def _as_list(value: Any) -> list:
        if isinstance(value, (list, tuple, set, frozenset)):
            return list(value)
        return [value]

    @staticmethod
    def _exact_value(name: str, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if name.endswith('_date') and isinstance(value, str):
            return value.strip()[:10]
        if isinstance(value, str):
            return value.strip()
        return value

    @staticmethod
    def _truncate(value: Any, max_length: int = 50) -> str:
        text = str(value)
        return text if len(text) <= max_length else text[:max_length] + '...'
