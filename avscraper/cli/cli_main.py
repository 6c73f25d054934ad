"""Main CLI application class and entry point."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .. import __version__
from ..utils.error_handler import AVScraperError
from ..utils.logging_config import LogLevel, get_logger, setup_application_logging
from .commands import CompareCommand, NormalizeCommand, RegressionCommand, ScrapeCommand


class AVScraperCLI:
    """
    Command Line Interface for the scraping engine.

    Provides commands to normalize identifiers, scrape records and compare
    records against regression baselines.
    """

    def __init__(self):
        """Initialize the CLI application."""
        self.logger = get_logger(__name__)
        self.commands = self._register_commands()

    def _register_commands(self) -> Dict[str, Any]:
        """Register all available CLI commands."""
        commands = [NormalizeCommand(), ScrapeCommand(), CompareCommand(), RegressionCommand()]
        return {command.name: command for command in commands}

    def create_parser(self) -> argparse.ArgumentParser:
        """Create the main argument parser with all commands and options."""
        parser = argparse.ArgumentParser(
            prog='avscraper',
            description='Resilient metadata scraping engine',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  avscraper normalize "[Site] IPX-177-C.mp4"
  avscraper scrape IPX-177 --strategy smart_best --json
  avscraper compare baseline.json current.json
  avscraper regression tests/baselines --source javbus
            """
        )

        # Global options
        parser.add_argument(
            '--config', '-c',
            type=Path,
            help='Path to configuration file (default: config/config.yaml)'
        )

        parser.add_argument(
            '--log-level', '-l',
            choices=[level.value for level in LogLevel],
            default='WARNING',
            help='Set logging level (default: WARNING)'
        )

        parser.add_argument(
            '--quiet', '-q',
            action='store_true',
            help='Suppress log output on the console'
        )

        parser.add_argument(
            '--verbose', '-v',
            action='store_true',
            help='Enable verbose output'
        )

        parser.add_argument(
            '--json',
            action='store_true',
            help='Output results in JSON format'
        )

        parser.add_argument(
            '--version',
            action='version',
            version=f'avscraper {__version__}'
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest='command',
            help='Available commands',
            metavar='COMMAND'
        )

        for command in self.commands.values():
            command.add_parser(subparsers)

        return parser

    async def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run the CLI application.

        Args:
            args: Command line arguments (defaults to sys.argv)

        Returns:
            Exit code (0 for success, 1 for failures, 2 for errors)
        """
        parser = self.create_parser()
        parsed_args = parser.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            parser.print_help()
            return 0

        command = self.commands[parsed_args.command]
        try:
            result = await command.execute(parsed_args)
        except (AVScraperError, OSError, ValueError) as e:
            self.logger.error(f"{parsed_args.command} failed: {e}")
            if parsed_args.json:
                print(json.dumps({'success': False, 'message': str(e)}, indent=2))
            else:
                print(f"Error: {e}", file=sys.stderr)
            return 2

        if parsed_args.json:
            print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
        else:
            print(command.render(result, parsed_args.verbose))

        return 0 if result.get('success', True) else 1

    def _configure_logging(self, args: argparse.Namespace) -> None:
        """Configure logging based on CLI arguments."""
        level = LogLevel.CRITICAL if args.quiet else LogLevel(args.log_level)
        setup_application_logging(log_level=level)


def main() -> int:
    """Main entry point for the CLI application."""
    cli = AVScraperCLI()

    try:
        return asyncio.run(cli.run())
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
