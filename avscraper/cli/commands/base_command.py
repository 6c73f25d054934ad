"""Base command class for CLI commands."""

import argparse
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

from ...config.config_manager import ConfigManager
from ...models.config import EngineConfig


class BaseCommand(ABC):
    """
    Base class for all CLI commands.

    Commands return a result dictionary; ``success`` decides the exit code
    and ``render`` turns the result into console text.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Command name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Command description."""
        pass

    @abstractmethod
    def add_parser(self, subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
        """
        Add command parser to subparsers.

        Args:
            subparsers: Subparsers action from main parser

        Returns:
            Command-specific argument parser
        """
        pass

    @abstractmethod
    async def execute(self, args: argparse.Namespace) -> Dict[str, Any]:
        """
        Execute the command.

        Args:
            args: Parsed command line arguments

        Returns:
            Result dictionary with at least ``success`` and ``message``
        """
        pass

    def render(self, result: Dict[str, Any], verbose: bool = False) -> str:
        """Plain-text rendering of a result."""
        return result.get('message', '')

    def _create_parser(self, subparsers: argparse._SubParsersAction, **kwargs) -> argparse.ArgumentParser:
        """
        Create a parser for this command with common options.

        Args:
            subparsers: Subparsers action from main parser
            **kwargs: Additional arguments for add_parser

        Returns:
            Command parser
        """
        return subparsers.add_parser(
            self.name,
            description=self.description,
            help=self.description,
            formatter_class=argparse.RawDescriptionHelpFormatter,
            **kwargs
        )

    def _load_engine_config(self, args: argparse.Namespace) -> EngineConfig:
        config_file: Optional[str] = str(args.config) if getattr(args, 'config', None) else None
        return ConfigManager(config_file).load_engine_config()

    def _format_result(self, success: bool, message: str, **kwargs) -> Dict[str, Any]:
        """
        Format command result in standard format.

        Args:
            success: Whether the command succeeded
            message: Result message
            **kwargs: Additional result data

        Returns:
            Formatted result dictionary
        """
        result = {
            'success': success,
            'message': message,
            'timestamp': datetime.now().isoformat()
        }
        result.update(kwargs)
        return result
