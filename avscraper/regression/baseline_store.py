"""On-disk store of baseline records, one JSON file per identifier and source."""

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..models.record import Record
from ..utils.error_handler import ValidationError


BASELINE_NAME = re.compile(r'^(?P<identifier>.+) \((?P<source>[^()]+)\)\.json$')


class BaselineStore:
    """
    Directory of baseline documents named ``"<identifier> (<source>).json"``.

    Documents are flat key/value mappings. ``update`` keeps the previous
    version under ``backups/`` before overwriting.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.backup_dir = self.root / "backups"
        self.logger = logging.getLogger(__name__)

    def path_for(self, identifier: str, source: str) -> Path:
        return self.root / f"{identifier} ({source}).json"

    def list_baselines(self) -> List[Tuple[str, str]]:
        """
        List stored baselines.

        Returns:
            Sorted (identifier, source) pairs
        """
        if not self.root.is_dir():
            return []

        entries = []
        for path in self.root.glob("*.json"):
            match = BASELINE_NAME.match(path.name)
            if match:
                entries.append((match.group('identifier'), match.group('source')))
            else:
                self.logger.debug(f"Skipping file with unexpected name: {path.name}")
        return sorted(entries)

    def exists(self, identifier: str, source: str) -> bool:
        return self.path_for(identifier, source).is_file()

    def load(self, identifier: str, source: str) -> Dict[str, Any]:
        """
        Load one baseline document.

        Raises:
            FileNotFoundError: No baseline for the pair
            ValidationError: The file is not a JSON object
        """
        path = self.path_for(identifier, source)
        with open(path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Invalid baseline {path.name}: {e}")

        if not isinstance(data, dict):
            raise ValidationError(f"Baseline {path.name} must contain a JSON object")
        return data

    def load_record(self, identifier: str, source: str) -> Record:
        data = self.load(identifier, source)
        data.setdefault('identifier', identifier)
        data.setdefault('source', source)
        return Record.from_dict(data)

    def save(self, record: Union[Record, Mapping[str, Any]], source: Optional[str] = None) -> Path:
        """
        Write a baseline, overwriting any existing one.

        Args:
            record: Record or flat mapping with an ``identifier`` key
            source: Source name; defaults to the record's ``source``

        Returns:
            Path of the written file
        """
        data = record.to_dict() if isinstance(record, Record) else dict(record)
        identifier = data.get('identifier')
        source = source or data.get('source')
        if not identifier or not source:
            raise ValidationError("Baseline needs an identifier and a source")

        path = self.path_for(identifier, source)
        path.parent.mkdir(parents=True, exist_ok=True)

        # Write to temporary file first
        temp_file = path.with_suffix('.tmp')
        with open(temp_file, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2, sort_keys=True, default=str)
        temp_file.replace(path)

        self.logger.debug(f"Saved baseline {path.name}")
        return path

    def update(self, record: Union[Record, Mapping[str, Any]], source: Optional[str] = None) -> Path:
        """Back up the existing baseline (if any) and save the new one."""
        data = record.to_dict() if isinstance(record, Record) else dict(record)
        source = source or data.get('source')
        identifier = data.get('identifier')

        if identifier and source and self.exists(identifier, source):
            self.backup(identifier, source)
        return self.save(data, source)

    def backup(self, identifier: str, source: str) -> Path:
        current = self.path_for(identifier, source)
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S_%f')
        target = self.backup_dir / f"{current.stem}.{timestamp}.json"
        target.write_bytes(current.read_bytes())
        self.logger.info(f"Backed up baseline {current.name} to {target.name}")
        return target

    def delete(self, identifier: str, source: str) -> bool:
        path = self.path_for(identifier, source)
        if not path.exists():
            return False
        path.unlink()
        return True
