"""Regression checks against stored baseline records."""

from .baseline_store import BaselineStore
from .comparator import RegressionComparator
from .runner import RegressionReport, RegressionRunner

__all__ = ['BaselineStore', 'RegressionComparator', 'RegressionReport', 'RegressionRunner']
