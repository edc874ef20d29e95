"""
Logging utilities for PhotoTune
Provides structured logging and run statistics
"""

import logging
import sys
from typing import Optional, Dict, Any
from datetime import datetime
import json

import colorlog

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StructuredLogger:
    """Provides structured logging with metadata"""

    def __init__(self, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Initialize structured logger

        Args:
            name: Logger name
            metadata: Default metadata to include in all logs
        """
        self.logger = logging.getLogger(name)
        self.metadata = metadata or {}

    def bind(self, **kwargs) -> 'StructuredLogger':
        """New logger with extra default metadata"""
        return StructuredLogger(self.logger.name, {**self.metadata, **kwargs})

    def _format_message(self, message: str, **kwargs) -> str:
        data = {**self.metadata, **kwargs}
        if data:
            return f"{message} | {json.dumps(data, default=str, sort_keys=True)}"
        return message

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_message(message, **kwargs))


class RunStats:
    """Tracks enhancement run statistics"""

    def __init__(self):
        self.start_time = datetime.now()
        self.total_runs = 0
        self.succeeded = 0
        self.failed = 0
        self.fallbacks = 0
        self.persistence_errors = 0
        self.errors = []
        self.processing_times = []

    def add_result(self, processing_time: Optional[float] = None,
                   used_fallback: bool = False, persistence_error: bool = False):
        """
        Record a successful run

        Args:
            processing_time: Seconds spent in the run
            used_fallback: Whether the fallback configuration was applied
            persistence_error: Whether saving the session failed
        """
        self.total_runs += 1
        self.succeeded += 1
        if used_fallback:
            self.fallbacks += 1
        if persistence_error:
            self.persistence_errors += 1
        if processing_time is not None:
            self.processing_times.append(processing_time)

    def add_error(self, source: str, error: str):
        """Record a failed run"""
        self.total_runs += 1
        self.failed += 1
        self.errors.append({
            'source': source,
            'error': error,
            'time': datetime.now()
        })

    def get_elapsed_time(self) -> float:
        return (datetime.now() - self.start_time).total_seconds()

    def get_average_processing_time(self) -> float:
        if not self.processing_times:
            return 0.0
        return sum(self.processing_times) / len(self.processing_times)

    def get_summary(self) -> Dict[str, Any]:
        """Get run summary"""
        return {
            'total_runs': self.total_runs,
            'succeeded': self.succeeded,
            'failed': self.failed,
            'fallbacks': self.fallbacks,
            'persistence_errors': self.persistence_errors,
            'success_rate': (self.succeeded / self.total_runs * 100)
                            if self.total_runs > 0 else 0,
            'elapsed_time': self.get_elapsed_time(),
            'average_processing_time': self.get_average_processing_time(),
        }

    def print_summary(self):
        """Print run summary to console"""
        summary = self.get_summary()

        print("\n" + "=" * 60)
        print("ENHANCEMENT SUMMARY")
        print("=" * 60)
        print(f"Runs:             {summary['total_runs']}")
        print(f"Succeeded:        {summary['succeeded']} ({summary['success_rate']:.1f}%)")
        print(f"Failed:           {summary['failed']}")
        print(f"Fallbacks used:   {summary['fallbacks']}")
        print(f"Unsaved sessions: {summary['persistence_errors']}")
        print(f"Avg time/run:     {summary['average_processing_time']:.3f}s")
        print("=" * 60)

        if self.errors:
            print("\nERRORS:")
            for error in self.errors[:10]:
                print(f"  - {error['source']}: {error['error']}")
            if len(self.errors) > 10:
                print(f"  ... and {len(self.errors) - 10} more errors")


def setup_console_logging(level: str = "INFO", color: bool = True,
                          fmt: str = DEFAULT_FORMAT):
    """
    Setup console logging with optional color support

    Args:
        level: Logging level
        color: Whether to use colored output (only on a TTY)
        fmt: Log format for the plain formatter
    """
    console_handler = logging.StreamHandler(sys.stdout)

    if color and sys.stdout.isatty():
        formatter = colorlog.ColoredFormatter(
            '%(log_color)s%(asctime)s - %(name)s - %(levelname)s%(reset)s - %(message)s',
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            }
        )
    else:
        formatter = logging.Formatter(fmt)

    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        if getattr(handler, '_phototune_console', False):
            root_logger.removeHandler(handler)
    console_handler._phototune_console = True
    root_logger.addHandler(console_handler)


def setup_logging_from_config(config: Dict[str, Any]):
    """Configure console logging from the ``logging`` config section"""
    section = config.get('logging', {}) or {}
    setup_console_logging(
        level=section.get('level', 'INFO'),
        color=section.get('color', True),
        fmt=section.get('format', DEFAULT_FORMAT),
    )
