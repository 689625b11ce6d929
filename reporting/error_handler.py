"""
Error Handler

Error capture for crash reporting: turns a raised exception and an
optional log message into a Squash crash entry carrying the configured
client metadata.
"""

from typing import Optional

from core.backtrace import BacktraceExtractor
from core.crash_entry import CrashEntry
from utils.config import Settings, settings as default_settings
from utils.logger import get_logger


class ErrorHandler:
    """Handles error capture and crash entry assembly."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.logger = get_logger("error_handler", self.settings.log_level)
        self.extractor = BacktraceExtractor({
            **self.settings.extractor_config(),
            'log_level': self.settings.log_level,
        })

    def capture_error(self, exception: Optional[BaseException],
                      log_message: Optional[str] = None) -> CrashEntry:
        """Capture a crash entry for an exception (or a bare log message)."""
        entry = CrashEntry.from_error(
            log_message,
            exception,
            metadata=self.settings.client_metadata(),
            extractor=self.extractor,
        )

        self.logger.info(
            f"Captured crash entry: {entry.class_name or 'no exception'}",
            class_name=entry.class_name,
            nested_errors=len(entry.parent_exceptions),
            environment=entry.environment,
        )
        return entry

    def capture_error_json(self, exception: Optional[BaseException],
                           log_message: Optional[str] = None) -> str:
        """Capture a crash entry and serialize it to the Squash wire format."""
        return self.capture_error(exception, log_message).to_json()
