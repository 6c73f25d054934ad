"""Compare command implementation."""

import argparse
import json
from pathlib import Path
from typing import Any, Dict

from .base_command import BaseCommand
from ...regression.comparator import RegressionComparator
from ...utils.error_handler import ValidationError


class CompareCommand(BaseCommand):
    """Compare two JSON record documents."""

    @property
    def name(self) -> str:
        return 'compare'

    @property
    def description(self) -> str:
        return 'Compare a baseline record with a current record'

    def add_parser(self, subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
        parser = self._create_parser(subparsers)
        parser.add_argument('baseline', type=Path, help='Baseline JSON file')
        parser.add_argument('current', type=Path, help='Current JSON file')
        parser.add_argument('--strict', action='store_true', help='Require exact text equality')
        parser.add_argument(
            '--threshold',
            type=float,
            default=0.9,
            help='Text similarity accepted as a match in non-strict mode (default: 0.9)'
        )
        parser.add_argument(
            '--case-sensitive',
            action='store_true',
            help='Do not casefold text before comparing'
        )
        return parser

    async def execute(self, args: argparse.Namespace) -> Dict[str, Any]:
        comparator = RegressionComparator(
            strict=args.strict,
            similarity_threshold=args.threshold,
            case_insensitive=not args.case_sensitive,
        )
        comparison = comparator.compare(self._read(args.baseline), self._read(args.current))

        return self._format_result(
            success=comparison.is_perfect,
            message=f"Match rate {comparison.match_rate}% ({comparison.severity} drift)",
            comparison=comparison.to_dict(),
        )

    @staticmethod
    def _read(path: Path) -> Dict[str, Any]:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValidationError(f"{path} must contain a JSON object")
        return data

    def render(self, result: Dict[str, Any], verbose: bool = False) -> str:
        lines = [result['message']]
        for field_result in result['comparison']['fields']:
            if field_result['matched'] and not verbose:
                continue
            mark = 'ok ' if field_result['matched'] else 'XX '
            detail = f" ({field_result['detail']})" if field_result['detail'] else ''
            lines.append(f"  {mark}{field_result['field']} [{field_result['category']}]{detail}")
        return "\n".join(lines)
