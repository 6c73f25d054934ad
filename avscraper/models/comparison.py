"""Regression comparison results."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple


class FieldCategory(Enum):
    """Comparison rule applied to a field."""
    VOLATILE = "volatile"
    URL = "url"
    URL_SET = "url_set"
    SET = "set"
    TEXT = "text"
    EXACT = "exact"


@dataclass(frozen=True)
class FieldResult:
    field: str
    matched: bool
    category: FieldCategory
    detail: str = ""


@dataclass(frozen=True)
class ComparisonResult:
    """Per-field diff between a baseline record and a current one."""

    match_rate: float
    field_results: Tuple[FieldResult, ...] = ()

    @property
    def mismatches(self) -> Tuple[FieldResult, ...]:
        return tuple(r for r in self.field_results if not r.matched)

    @property
    def is_perfect(self) -> bool:
        return not self.mismatches

    @property
    def severity(self) -> str:
        """Coarse rating of the drift for reports."""
        if self.match_rate >= 100:
            return "none"
        if self.match_rate >= 90:
            return "low"
        if self.match_rate >= 70:
            return "medium"
        return "high"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'match_rate': self.match_rate,
            'severity': self.severity,
            'fields': [
                {
                    'field': r.field,
                    'matched': r.matched,
                    'category': r.category.value,
                    'detail': r.detail,
                }
                for r in self.field_results
            ],
        }
