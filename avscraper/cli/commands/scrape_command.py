"""Scrape command implementation."""

import argparse
from pathlib import Path
from typing import Any, Dict

from .base_command import BaseCommand
from ...regression.baseline_store import BaselineStore
from ...scrapers.orchestrator import ScrapeStrategy
from ...scrapers.scraper_factory import ScraperFactory


class ScrapeCommand(BaseCommand):
    """Scrape records for one or more identifiers."""

    @property
    def name(self) -> str:
        return 'scrape'

    @property
    def description(self) -> str:
        return 'Fetch metadata records for identifiers'

    def add_parser(self, subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
        parser = self._create_parser(
            subparsers,
            epilog="""
Examples:
  avscraper scrape IPX-177
  avscraper scrape IPX-177 SSIS-001 --strategy merge_all --json
  avscraper scrape IPX-177 --save-baselines tests/baselines
            """
        )
        parser.add_argument('identifiers', nargs='+', metavar='ID', help='Identifiers or filenames')
        parser.add_argument(
            '--strategy',
            choices=[s.value for s in ScrapeStrategy],
            help='Adapter strategy (default: from configuration)'
        )
        parser.add_argument(
            '--adapters',
            help='Comma separated adapter names (default: from configuration)'
        )
        parser.add_argument(
            '--save-baselines',
            type=Path,
            metavar='DIR',
            help='Store each scraped record as a regression baseline'
        )
        return parser

    async def execute(self, args: argparse.Namespace) -> Dict[str, Any]:
        factory = ScraperFactory(self._load_engine_config(args))
        adapter_names = [n.strip() for n in args.adapters.split(',')] if args.adapters else None
        orchestrator = factory.create_orchestrator(adapter_names)
        factory.start_background_tasks()

        try:
            batch = await orchestrator.scrape_batch(args.identifiers, strategy=args.strategy)
        finally:
            await factory.shutdown()

        if args.save_baselines:
            store = BaselineStore(args.save_baselines)
            for record in batch.records.values():
                store.update(record)

        return self._format_result(
            success=not batch.failures,
            message=f"Scraped {len(batch.records)}/{batch.total} identifiers",
            records={key: record.to_dict() for key, record in batch.records.items()},
            failures={key: str(error) for key, error in batch.failures.items()},
            stats=orchestrator.get_stats(),
        )

    def render(self, result: Dict[str, Any], verbose: bool = False) -> str:
        lines = [result['message']]
        for key, record in result['records'].items():
            lines.append(f"\n{key} [{record['source']}] completeness {record['completeness']}")
            for field_name in ('title', 'release_date', 'runtime', 'studio', 'cast', 'tags', 'cover_url'):
                value = record.get(field_name)
                if value:
                    if isinstance(value, list):
                        value = ', '.join(value)
                    lines.append(f"  {field_name}: {value}")
            if verbose and record.get('source_urls'):
                lines.append(f"  sources: {record['source_urls']}")
        for key, error in result['failures'].items():
            lines.append(f"\n{key}: FAILED {error}")
        return "\n".join(lines)
