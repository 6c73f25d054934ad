"""Studio lookup backed by the bundled studio prefix table."""

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

import yaml


DEFAULT_STUDIO_FILE = Path(__file__).resolve().parent.parent / 'data' / 'studio_prefixes.yaml'


class StudioMap:
    """Maps series prefixes and identifier families to studio names."""

    def __init__(
        self,
        prefixes: Optional[Dict[str, str]] = None,
        families: Optional[Dict[str, str]] = None
    ):
        self.prefixes = {k.upper(): v for k, v in (prefixes or {}).items()}
        self.families = {k.upper(): v for k, v in (families or {}).items()}

    @classmethod
    def from_file(cls, path: Optional[Path] = None) -> 'StudioMap':
        """
        Load the studio table from a YAML file.

        Args:
            path: YAML file with ``prefixes`` and ``families`` mappings

        Returns:
            Loaded StudioMap (empty when the file is missing)
        """
        logger = logging.getLogger(__name__)
        path = Path(path or DEFAULT_STUDIO_FILE)

        if not path.exists():
            logger.warning(f"Studio table not found: {path}")
            return cls()

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        studio_map = cls(data.get('prefixes'), data.get('families'))
        logger.debug(f"Loaded {len(studio_map.prefixes)} studio prefixes from {path}")
        return studio_map

    def lookup(self, series: str) -> Optional[str]:
        """Studio for a series prefix; digit-prefixed amateur series match on their letters."""
        if not series:
            return None
        key = series.upper()
        if key in self.prefixes:
            return self.prefixes[key]
        stripped = re.sub(r'^\d+', '', key)
        return self.prefixes.get(stripped)

    def for_family(self, family: Optional[str]) -> Optional[str]:
        if not family:
            return None
        return self.families.get(family.upper())

    def __len__(self) -> int:
        return len(self.prefixes)


@lru_cache(maxsize=1)
def get_studio_map() -> StudioMap:
    """Shared studio map loaded from the bundled data file."""
    return StudioMap.from_file()
