"""Identifier pattern families, ordered most specific first."""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..models.identifier import IdFormat


@dataclass
class IdPattern:
    """
    One identifier family.

    ``template``, ``series`` and ``number`` are ``str.format`` templates over
    the regex groups and produce the canonical form and its decomposition.
    """

    name: str
    pattern: str
    template: str
    series: str
    number: str
    format: IdFormat = IdFormat.STANDARD
    family: Optional[str] = None
    description: str = ""
    enabled: bool = True
    lowercase: bool = False
    _compiled: Optional[re.Pattern] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        """Validate the pattern after initialization."""
        try:
            self._compiled = re.compile(self.pattern, re.IGNORECASE)
        except re.error as e:
            raise ValueError(f"Invalid regex pattern '{self.pattern}': {e}")

    @property
    def regex(self) -> re.Pattern:
        return self._compiled

    def build(self, match: re.Match) -> Tuple[str, str, str]:
        """Return ``(normalized, series, number)`` for a match."""
        groups = [g or '' for g in match.groups()]
        if self.lowercase:
            groups = [g.lower() for g in groups]
        else:
            groups = [g.upper() for g in groups]
        return (
            self.template.format(*groups),
            self.series.format(*groups),
            self.number.format(*groups),
        )


# Content ids are only recognized on the untouched lower-case stem.
CONTENT_ID_PATTERNS: List[IdPattern] = [
    IdPattern(
        name="DMM content id (h_ prefix)",
        pattern=r'^(h_\d{3,4}[a-z]{1,10})(\d{2,5})([a-z\d]{0,8})$',
        template="{0}{1}{2}", series="{0}", number="{1}",
        format=IdFormat.CONTENT_ID, lowercase=True,
    ),
    IdPattern(
        name="DMM content id (numeric label)",
        pattern=r'^(\d{3})_(\d{4,5})$',
        template="{0}_{1}", series="{0}", number="{1}",
        format=IdFormat.CONTENT_ID, lowercase=True,
    ),
    IdPattern(
        name="DMM content id (402 doujin)",
        pattern=r'^(402[a-z]{3,6}\d*)_([a-z]{3,8}\d{5,6})$',
        template="{0}_{1}", series="{0}", number="{1}",
        format=IdFormat.CONTENT_ID, lowercase=True,
    ),
    IdPattern(
        name="DMM content id",
        pattern=r'^(\d{0,4}[a-z]{2,10})(\d{5})([a-z]?)$',
        template="{0}{1}{2}", series="{0}", number="{1}",
        format=IdFormat.CONTENT_ID, lowercase=True,
    ),
]


DEFAULT_PATTERNS: List[IdPattern] = [
    IdPattern(
        name="FC2",
        pattern=r'FC2[^A-Z\d]{0,5}(?:PPV[^A-Z\d]{0,5})?(\d{5,8})',
        template="FC2-PPV-{0}", series="FC2-PPV", number="{0}",
        format=IdFormat.FC2, family="FC2",
        description="FC2 marketplace ids like FC2-PPV-1234567",
    ),
    IdPattern(
        name="HEYDOUGA",
        pattern=r'HEYDOUGA[-_]*(\d{4})[-_]*0?(\d{3,5})',
        template="HEYDOUGA-{0}-{1}", series="HEYDOUGA", number="{0}-{1}",
        family="HEYDOUGA",
    ),
    IdPattern(
        name="HEYZO",
        pattern=r'HEYZO[^A-Z\d]{0,3}(\d{4})',
        template="HEYZO-{0}", series="HEYZO", number="{0}",
        family="HEYZO",
    ),
    IdPattern(
        name="GETCHU",
        pattern=r'GETCHU[-_]*(\d+)',
        template="GETCHU-{0}", series="GETCHU", number="{0}",
        format=IdFormat.DOUJIN, family="GETCHU",
    ),
    IdPattern(
        name="GYUTTO",
        pattern=r'GYUTTO-(\d+)',
        template="GYUTTO-{0}", series="GYUTTO", number="{0}",
        format=IdFormat.DOUJIN, family="GYUTTO",
    ),
    IdPattern(
        name="Amateur series",
        pattern=r'(?<![A-Z\d])(\d{3}[A-Z]{2,6})[-_](\d{3,4})(?!\d)',
        template="{0}-{1}", series="{0}", number="{1}",
        description="Digit-prefixed series like 300MIUM-123 or 259LUXU-123",
    ),
    IdPattern(
        name="MUGEN",
        pattern=r'(MKB?D)[-_]*(S\d{2,3})|(MK3D2DBD|S2M|S2MBD)[-_]*(\d{2,3})',
        template="{0}{2}-{1}{3}", series="{0}{2}", number="{1}{3}",
        family="MUGEN",
    ),
    IdPattern(
        name="IBW",
        pattern=r'(IBW)[-_](\d{2,5}Z)',
        template="{0}-{1}", series="{0}", number="{1}",
        family="IBW",
    ),
    IdPattern(
        name="Generic",
        pattern=r'(?<![A-Z])([A-Z]{2,10})[-_](\d{2,6})(?!\d)',
        template="{0}-{1}", series="{0}", number="{1}",
        description="Standard ids like ABC-123",
    ),
    IdPattern(
        name="Tokyo-Hot series",
        pattern=r'(?<![A-Z])(RED|SKY|EX)(\d{3,4})(?!\d)',
        template="{0}{1}", series="{0}", number="{1}",
        family="TOKYO_HOT",
    ),
    IdPattern(
        name="Generic without separator",
        pattern=r'(?<![A-Z])([A-Z]{2,10})(\d{2,6})(?!\d)',
        template="{0}-{1}", series="{0}", number="{1}",
    ),
    IdPattern(
        name="T28",
        pattern=r'(?<![A-Z])(T[23]8)[-_]?(\d{3})(?!\d)',
        template="{0}-{1}", series="{0}", number="{1}",
    ),
    IdPattern(
        name="R18",
        pattern=r'(?<![A-Z])(R18)[-_]?(\d{3})(?!\d)',
        template="{0}-{1}", series="{0}", number="{1}",
    ),
    IdPattern(
        name="Tokyo-Hot",
        pattern=r'(?<![A-Z])([NK])(\d{4})(?!\d)',
        template="{0}{1}", series="{0}", number="{1}",
        family="TOKYO_HOT",
    ),
    IdPattern(
        name="Date coded",
        pattern=r'(?<!\d)(\d{6})[-_](\d{2,3})(?!\d)',
        template="{0}-{1}", series="{0}", number="{1}",
        description="Uncensored date-coded ids like 012023-001",
    ),
]
