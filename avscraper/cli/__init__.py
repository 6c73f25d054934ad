"""Command Line Interface package."""

from .cli_main import main, AVScraperCLI

__all__ = ['main', 'AVScraperCLI']
