"""Logging setup for applications embedding the scraping engine."""

import json
import sys
import logging
import logging.handlers
from pathlib import Path
from typing import Optional
from datetime import datetime
from enum import Enum

import colorlog


APPLICATION_LOGGERS = [
    'avscraper.identifiers',
    'avscraper.scrapers',
    'avscraper.regression',
    'avscraper.utils',
    'avscraper.config',
    'avscraper.cli',
]


class LogLevel(Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig:
    """
    Console and file logging for the engine's loggers.

    Console output is colored through colorlog; the optional file handler
    rotates by size and can emit one JSON object per line.
    """

    def __init__(
        self,
        log_level: LogLevel = LogLevel.INFO,
        log_dir: Optional[Path] = None,
        log_filename: str = "avscraper.log",
        max_file_size_mb: int = 10,
        backup_count: int = 5,
        console_logging: bool = True,
        file_logging: bool = False,
        colored_console: bool = True,
        json_format: bool = False
    ):
        """
        Initialize logging configuration.

        Args:
            log_level: Minimum log level to record
            log_dir: Directory for log files (None for ./logs)
            log_filename: Name of the log file
            max_file_size_mb: Maximum size of log file before rotation
            backup_count: Number of backup files to keep
            console_logging: Enable console output
            file_logging: Enable file output
            colored_console: Use colored console output
            json_format: Use JSON lines in the log file
        """
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path.cwd() / "logs"
        self.log_filename = log_filename
        self.max_file_size_bytes = max_file_size_mb * 1024 * 1024
        self.backup_count = backup_count
        self.console_logging = console_logging
        self.file_logging = file_logging
        self.colored_console = colored_console
        self.json_format = json_format

        self._configured_loggers = set()

        if self.file_logging:
            self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def level(self) -> int:
        return getattr(logging, self.log_level.value)

    def setup_logging(self, logger_name: Optional[str] = None) -> logging.Logger:
        """
        Attach handlers to a logger.

        Args:
            logger_name: Name of the logger (None for root logger)

        Returns:
            Configured logger instance
        """
        logger = logging.getLogger(logger_name)
        key = logger_name or "root"
        if key in self._configured_loggers:
            return logger

        logger.handlers.clear()
        logger.setLevel(self.level)
        # Root keeps propagation semantics; package loggers stop here to avoid duplicates
        logger.propagate = logger_name is None

        if self.console_logging:
            logger.addHandler(self._create_console_handler())
        if self.file_logging:
            logger.addHandler(self._create_file_handler())

        self._configured_loggers.add(key)
        return logger

    def _create_console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(self.level)
        if self.colored_console:
            handler.setFormatter(self._create_colored_formatter())
        else:
            handler.setFormatter(self._create_standard_formatter())
        return handler

    def _create_file_handler(self) -> logging.Handler:
        """Create file logging handler with rotation."""
        handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / self.log_filename,
            maxBytes=self.max_file_size_bytes,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        handler.setLevel(self.level)
        if self.json_format:
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(self._create_standard_formatter())
        return handler

    @staticmethod
    def _create_standard_formatter() -> logging.Formatter:
        return logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    @staticmethod
    def _create_colored_formatter() -> logging.Formatter:
        return colorlog.ColoredFormatter(
            fmt='%(log_color)s%(asctime)s - %(name)s - %(levelname)s - %(message)s%(reset)s',
            datefmt='%Y-%m-%d %H:%M:%S',
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            }
        )

    def get_log_file_path(self) -> Optional[Path]:
        if not self.file_logging:
            return None
        return self.log_dir / self.log_filename


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    RESERVED = {
        'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
        'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
        'thread', 'threadName', 'processName', 'process', 'exc_info', 'exc_text',
        'stack_info', 'taskName',
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage()
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        # Fields passed through ``extra=``
        for key, value in record.__dict__.items():
            if key not in self.RESERVED and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_application_logging(
    log_level: LogLevel = LogLevel.INFO,
    log_dir: Optional[Path] = None,
    console_logging: bool = True,
    file_logging: bool = False,
    colored_console: bool = True,
    json_format: bool = False
) -> LoggingConfig:
    """
    Set up logging for the engine's package loggers.

    Args:
        log_level: Minimum log level
        log_dir: Directory for log files
        console_logging: Enable console output
        file_logging: Enable file output
        colored_console: Use colored console output
        json_format: Use JSON lines in the log file

    Returns:
        Configured LoggingConfig instance
    """
    config = LoggingConfig(
        log_level=log_level,
        log_dir=log_dir,
        console_logging=console_logging,
        file_logging=file_logging,
        colored_console=colored_console,
        json_format=json_format
    )

    for logger_name in APPLICATION_LOGGERS:
        config.setup_logging(logger_name)

    return config


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
