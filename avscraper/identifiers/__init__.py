"""Identifier normalization."""

from .normalizer import IdentifierNormalizer, classify, get_normalizer, normalize
from .studios import StudioMap, get_studio_map

__all__ = [
    'IdentifierNormalizer',
    'normalize',
    'classify',
    'get_normalizer',
    'StudioMap',
    'get_studio_map',
]
