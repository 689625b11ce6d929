"""
Utility Functions

Common utilities for logging, configuration and shared constants
across the crash reporter.
"""

from .logger import get_logger, StructuredLogger
from .config import Settings, get_settings, settings

__all__ = [
    'get_logger',
    'StructuredLogger',
    'Settings',
    'get_settings',
    'settings',
]
