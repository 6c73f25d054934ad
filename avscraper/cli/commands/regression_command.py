"""Regression command implementation."""

import argparse
from pathlib import Path
from typing import Any, Dict

from .base_command import BaseCommand
from ...regression.baseline_store import BaselineStore
from ...regression.comparator import RegressionComparator
from ...regression.runner import RegressionRunner
from ...scrapers.scraper_factory import ScraperFactory


class RegressionCommand(BaseCommand):
    """Re-scrape stored baselines and report drift."""

    @property
    def name(self) -> str:
        return 'regression'

    @property
    def description(self) -> str:
        return 'Check stored baselines against fresh scrapes'

    def add_parser(self, subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
        parser = self._create_parser(subparsers)
        parser.add_argument('baseline_dir', type=Path, help='Directory of "<id> (<source>).json" files')
        parser.add_argument('--source', action='append', dest='sources', help='Only check this source')
        parser.add_argument('--id', action='append', dest='ids', help='Only check this identifier')
        parser.add_argument('--strict', action='store_true', help='Require exact text equality')
        return parser

    async def execute(self, args: argparse.Namespace) -> Dict[str, Any]:
        factory = ScraperFactory(self._load_engine_config(args))
        runner = RegressionRunner(
            BaselineStore(args.baseline_dir),
            factory.create_orchestrator(),
            comparator=RegressionComparator(strict=args.strict),
        )
        factory.start_background_tasks()

        try:
            report = await runner.run(identifiers=args.ids, sources=args.sources)
        finally:
            await factory.shutdown()

        summary = report.summary()
        return self._format_result(
            success=not report.failed and not report.errors,
            message=f"{summary['passed']}/{summary['total']} baselines unchanged",
            summary=summary,
            results={f"{i} ({s})": r.to_dict() for (i, s), r in report.results.items()},
            errors={f"{i} ({s})": str(e) for (i, s), e in report.errors.items()},
        )

    def render(self, result: Dict[str, Any], verbose: bool = False) -> str:
        lines = [result['message']]
        for key, comparison in result['results'].items():
            lines.append(f"  {key}: {comparison['match_rate']}% ({comparison['severity']})")
            if verbose:
                for field_result in comparison['fields']:
                    if not field_result['matched']:
                        lines.append(f"    {field_result['field']}: {field_result['detail']}")
        for key, error in result['errors'].items():
            lines.append(f"  {key}: ERROR {error}")
        return "\n".join(lines)
