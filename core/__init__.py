"""
Core Backtrace Components

Extraction of Squash backtrace data from exceptions and the crash
entry document built around it.
"""

from .backtrace import (
    BacktraceExtractor,
    NestedError,
    StackFrame,
    ThreadBacktrace,
    capture_backtraces,
    capture_fields,
    capture_frames,
    collect_cause_chain,
)
from .crash_entry import CrashEntry

__all__ = [
    'BacktraceExtractor',
    'NestedError',
    'StackFrame',
    'ThreadBacktrace',
    'capture_backtraces',
    'capture_fields',
    'capture_frames',
    'collect_cause_chain',
    'CrashEntry',
]
