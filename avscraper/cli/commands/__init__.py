"""CLI command implementations."""

from .base_command import BaseCommand
from .compare_command import CompareCommand
from .normalize_command import NormalizeCommand
from .regression_command import RegressionCommand
from .scrape_command import ScrapeCommand

__all__ = [
    'BaseCommand',
    'NormalizeCommand',
    'ScrapeCommand',
    'CompareCommand',
    'RegressionCommand',
]
