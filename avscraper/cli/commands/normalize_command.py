"""Normalize command implementation."""

import argparse
from typing import Any, Dict

from .base_command import BaseCommand
from ...identifiers.normalizer import IdentifierNormalizer


class NormalizeCommand(BaseCommand):
    """Print the canonical identifier for each path or name."""

    @property
    def name(self) -> str:
        return 'normalize'

    @property
    def description(self) -> str:
        return 'Extract canonical identifiers from filenames or paths'

    def add_parser(self, subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
        parser = self._create_parser(
            subparsers,
            epilog="""
Examples:
  avscraper normalize IPX-177.mp4
  avscraper normalize "/videos/FC2-PPV-1234567/part1.mp4" --json
            """
        )
        parser.add_argument('paths', nargs='+', metavar='PATH', help='Filenames, paths or raw ids')
        parser.add_argument(
            '--max-parent-depth',
            type=int,
            default=3,
            help='Parent directories consulted when the file name has no id (default: 3)'
        )
        return parser

    async def execute(self, args: argparse.Namespace) -> Dict[str, Any]:
        normalizer = IdentifierNormalizer(max_parent_depth=args.max_parent_depth)

        identifiers = {}
        failures = {}
        for path in args.paths:
            result = normalizer.normalize(path)
            if result:
                identifiers[path] = result.to_dict()
            else:
                failures[path] = result.reason

        return self._format_result(
            success=not failures,
            message=f"Normalized {len(identifiers)}/{len(args.paths)} inputs",
            identifiers=identifiers,
            failures=failures,
        )

    def render(self, result: Dict[str, Any], verbose: bool = False) -> str:
        lines = []
        for path, identifier in result['identifiers'].items():
            line = f"{path}\t{identifier['normalized']}"
            if verbose:
                line += f"\t{identifier['format']}\t{identifier['studio'] or '-'}"
            lines.append(line)
        for path, reason in result['failures'].items():
            lines.append(f"{path}\tERROR: {reason}")
        return "\n".join(lines)
