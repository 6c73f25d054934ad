"""Data models for the scraping engine."""

from .identifier import Identifier, IdFormat, NormalizationError
from .record import Record, completeness_score
from .scrape_result import BatchResult, ScrapeOutcome, ScrapeRequest, ScrapeResult
from .comparison import ComparisonResult, FieldCategory, FieldResult
from .config import EngineConfig

__all__ = [
    'Identifier', 'IdFormat', 'NormalizationError',
    'Record', 'completeness_score',
    'ScrapeRequest', 'ScrapeResult', 'ScrapeOutcome', 'BatchResult',
    'ComparisonResult', 'FieldCategory', 'FieldResult',
    'EngineConfig',
]
