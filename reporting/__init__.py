"""
Crash Reporting

Assembly of Squash crash entries from raised exceptions.
"""

from .error_handler import ErrorHandler

__all__ = ['ErrorHandler']
