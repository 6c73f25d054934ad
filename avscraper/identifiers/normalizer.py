"""Identifier normalization: raw filenames and ids to canonical identifiers."""

import logging
import re
from typing import Iterable, List, Optional, Union

from .patterns import CONTENT_ID_PATTERNS, DEFAULT_PATTERNS, IdPattern
from .studios import StudioMap, get_studio_map
from ..models.identifier import Identifier, IdFormat, NormalizationError


NormalizeResult = Union[Identifier, NormalizationError]


class IdentifierNormalizer:
    """
    Extracts a canonical identifier from a noisy filename or path.

    Noise tokens are stripped first, then pattern families are tried most
    specific first; unmatched names fall back to ``)(`` repair and then to
    the parent directory names.
    """

    DEFAULT_IGNORE_PATTERNS = [
        r'\w+2048\.COM',
        r'WWW\.[A-Z0-9\-]+\.[A-Z]{2,4}',
        r'[A-Z0-9]{3,10}\.(COM|NET|APP|XYZ)',
        r'^(\[[^\]]*\]|【[^】]*】)+',
        r'(?<![A-Z0-9])(144|240|360|480|540|720|1080|2160)[PI](?![A-Z0-9])',
        r'(?<![A-Z0-9])[248]K(?![A-Z0-9])',
        r'[-_ ]UNCENSORED',
        r'[-_ ](SUB|SUBS|SUBBED|CHS|CHT|CH|ENG)$',
        r'[-_ ](F|U)?HD$',
        r'[-_][CS]$',
    ]

    MEDIA_EXTENSIONS = {
        '.mp4', '.mkv', '.avi', '.wmv', '.mov', '.flv', '.m4v', '.rmvb',
        '.ts', '.m2ts', '.webm', '.iso', '.mpg', '.mpeg', '.rm',
        '.srt', '.ass', '.ssa', '.sub', '.vtt', '.nfo', '.jpg', '.png',
    }

    def __init__(
        self,
        ignore_patterns: Optional[Iterable[str]] = None,
        max_parent_depth: int = 3,
        patterns: Optional[List[IdPattern]] = None,
        studio_map: Optional[StudioMap] = None
    ):
        """
        Initialize the normalizer.

        Args:
            ignore_patterns: Regexes for noise tokens removed before matching
            max_parent_depth: How many parent directories may be consulted
            patterns: Identifier families in priority order
            studio_map: Studio lookup table (bundled table by default)
        """
        self.logger = logging.getLogger(__name__)
        if max_parent_depth < 0:
            raise ValueError("max_parent_depth cannot be negative")

        self.max_parent_depth = max_parent_depth
        self.patterns = [p for p in (patterns or DEFAULT_PATTERNS) if p.enabled]
        self.studio_map = studio_map or get_studio_map()

        raw_ignore = list(ignore_patterns) if ignore_patterns is not None else self.DEFAULT_IGNORE_PATTERNS
        self.ignore_patterns = []
        for pattern in raw_ignore:
            try:
                self.ignore_patterns.append(re.compile(pattern, re.IGNORECASE))
            except re.error as e:
                raise ValueError(f"Invalid ignore pattern '{pattern}': {e}")

    def normalize(self, raw: str) -> NormalizeResult:
        """
        Normalize a raw id, filename or path.

        Args:
            raw: Arbitrary input string

        Returns:
            Identifier on success, NormalizationError otherwise
        """
        if not raw or not raw.strip():
            return NormalizationError(raw=raw or '', reason="empty input")

        parts = [p for p in re.split(r'[\\/]+', raw.strip()) if p.strip()]
        if not parts:
            return NormalizationError(raw=raw)

        candidates = list(reversed(parts))[:self.max_parent_depth + 1]
        for depth, name in enumerate(candidates):
            identifier = self._match_name(raw, name, is_file=(depth == 0))
            if identifier:
                if depth:
                    self.logger.debug(f"Identifier {identifier} taken from parent directory '{name}'")
                return identifier

        self.logger.debug(f"No identifier found in: {raw}")
        return NormalizationError(raw=raw)

    def classify(self, value: Union[Identifier, str]) -> IdFormat:
        """Format of an identifier or canonical string."""
        text = value.normalized if isinstance(value, Identifier) else str(value or '').strip()
        if not text:
            return IdFormat.UNKNOWN

        for pattern in CONTENT_ID_PATTERNS:
            if pattern.regex.fullmatch(text) and text == text.lower():
                return IdFormat.CONTENT_ID

        for pattern in self.patterns:
            if pattern.regex.search(text.upper()):
                return pattern.format
        return IdFormat.UNKNOWN

    def is_valid(self, raw: str) -> bool:
        return isinstance(self.normalize(raw), Identifier)

    def clean(self, name: str) -> str:
        """Strip noise tokens and unify separators."""
        cleaned = name.strip().upper()
        for pattern in self.ignore_patterns:
            cleaned = pattern.sub('', cleaned).strip()

        cleaned = re.sub(r'[\s.@]+', '-', cleaned)
        cleaned = re.sub(r'-{2,}', '-', cleaned)
        return cleaned.strip('-_ ')

    def search_keywords(self, identifier: Identifier) -> List[str]:
        """Lookup variants that sites commonly index an identifier under."""
        keywords = [identifier.normalized]
        if identifier.format == IdFormat.STANDARD and identifier.number.isdigit():
            series, number = identifier.series, identifier.number
            keywords.extend([
                f"{series}{number}",
                f"{series} {number}",
                f"{series.lower()}{number.zfill(5)}",
            ])

        seen = set()
        return [k for k in keywords if not (k in seen or seen.add(k))]

    def _match_name(self, raw: str, name: str, is_file: bool) -> Optional[Identifier]:
        stem = self._strip_extension(name) if is_file else name

        content_id = self._match_content_id(raw, stem)
        if content_id:
            return content_id

        cleaned = self.clean(stem)
        attempts = [cleaned]
        if ')(' in cleaned:
            attempts.append(cleaned.replace(')(', '-'))

        for candidate in attempts:
            for pattern in self.patterns:
                match = pattern.regex.search(candidate)
                if match:
                    return self._build(raw, pattern, match)
        return None

    def _match_content_id(self, raw: str, stem: str) -> Optional[Identifier]:
        # Trailing part markers such as "_1" are not part of a content id
        possible = re.sub(r'[-_]\d$', '', stem.strip())
        if not re.fullmatch(r'[a-z\d_]+', possible):
            return None

        for pattern in CONTENT_ID_PATTERNS:
            match = pattern.regex.fullmatch(possible)
            if match:
                return self._build(raw, pattern, match)
        return None

    def _build(self, raw: str, pattern: IdPattern, match: re.Match) -> Identifier:
        normalized, series, number = pattern.build(match)
        if pattern.family:
            studio = self.studio_map.for_family(pattern.family)
        else:
            studio = self.studio_map.lookup(series)

        return Identifier(
            raw=raw,
            normalized=normalized,
            series=series,
            number=number,
            studio=studio,
            format=pattern.format,
        )

    def _strip_extension(self, name: str) -> str:
        stem, dot, ext = name.rpartition('.')
        if dot and stem and f".{ext.lower()}" in self.MEDIA_EXTENSIONS:
            return stem
        return name


_default_normalizer: Optional[IdentifierNormalizer] = None


def get_normalizer() -> IdentifierNormalizer:
    """Shared normalizer with default settings."""
    global _default_normalizer
    if _default_normalizer is None:
        _default_normalizer = IdentifierNormalizer()
    return _default_normalizer


def normalize(raw: str) -> NormalizeResult:
    return get_normalizer().normalize(raw)


def classify(value: Union[Identifier, str]) -> IdFormat:
    return get_normalizer().classify(value)
