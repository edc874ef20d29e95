"""
PhotoTune utilities module.

Provides logging helpers and run statistics.
"""

from .logging import (
    StructuredLogger,
    RunStats,
    setup_console_logging,
    setup_logging_from_config
)

__all__ = [
    'StructuredLogger',
    'RunStats',
    'setup_console_logging',
    'setup_logging_from_config'
]
