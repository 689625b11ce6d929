"""
Crash Entry

The document posted to a Squash server for one occurrence: client
metadata, the log message, and the backtrace data of the error
(including its cause chain) in the Squash wire format.
"""

import json
import platform
import socket
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.backtrace import (
    BacktraceExtractor,
    NestedError,
    ThreadBacktrace,
    backtraces_from_wire,
    backtraces_to_wire,
    error_message,
    fields_to_wire,
    get_extractor,
    qualified_class_name,
)
from utils.constants import NO_MESSAGE


METADATA_FIELDS = frozenset([
    'api_key', 'client', 'environment', 'revision', 'build', 'version',
    'device_id', 'user_id', 'hostname', 'operating_system', 'os_version',
    'occurred_at',
])


@dataclass
class CrashEntry:
    """Squash crash entry"""
    # Client metadata
    api_key: Optional[str] = None
    client: Optional[str] = None
    environment: Optional[str] = None
    revision: Optional[str] = None
    build: Optional[str] = None
    version: Optional[str] = None

    # Origin
    device_id: Optional[str] = None
    user_id: Optional[str] = None
    hostname: Optional[str] = None
    operating_system: Optional[str] = None
    os_version: Optional[str] = None
    occurred_at: Optional[str] = None

    # Error
    log_message: Optional[str] = None
    message: str = NO_MESSAGE
    class_name: Optional[str] = None
    backtraces: Optional[List[ThreadBacktrace]] = None
    ivars: Optional[Dict[str, Any]] = None
    parent_exceptions: List[NestedError] = field(default_factory=list)

    @classmethod
    def from_error(cls, log_message: Optional[str], error: Optional[BaseException],
                   metadata: Optional[Dict[str, Any]] = None,
                   extractor: Optional[BacktraceExtractor] = None) -> "CrashEntry":
        """
        Build an entry for an error

        Args:
            log_message: Message logged alongside the error, possibly None
            error: The raised exception, possibly None
            metadata: Client and origin metadata. Only the keys in
                METADATA_FIELDS are used; any other key is ignored.
            extractor: Extractor to use; the shared default when omitted

        Returns:
            A new entry. Its message is the error's message, else the log
            message, else the literal "No message".
        """
        extractor = extractor or get_extractor()

        message = error_message(error) if error is not None else None
        if message is None:
            message = log_message if log_message is not None else NO_MESSAGE

        parent_exceptions: List[NestedError] = []
        extractor.collect_cause_chain(parent_exceptions, error)

        origin = {
            'hostname': socket.gethostname(),
            'operating_system': platform.system(),
            'os_version': platform.release(),
            'occurred_at': datetime.now(timezone.utc).isoformat(timespec='seconds'),
        }
        # Caller metadata wins over detected origin values
        origin.update(
            (key, value) for key, value in (metadata or {}).items() if key in METADATA_FIELDS
        )

        return cls(
            **origin,
            log_message=log_message,
            message=message,
            class_name=qualified_class_name(error) if error is not None else None,
            backtraces=extractor.capture_backtraces(error),
            ivars=extractor.capture_fields(error),
            parent_exceptions=parent_exceptions,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'api_key': self.api_key,
            'client': self.client,
            'environment': self.environment,
            'revision': self.revision,
            'build': self.build,
            'version': self.version,
            'device_id': self.device_id,
            'user_id': self.user_id,
            'hostname': self.hostname,
            'operating_system': self.operating_system,
            'os_version': self.os_version,
            'occurred_at': self.occurred_at,
            'log_message': self.log_message,
            'message': self.message,
            'class_name': self.class_name,
            'backtraces': backtraces_to_wire(self.backtraces),
            'ivars': fields_to_wire(self.ivars),
            'parent_exceptions': [nested.to_dict() for nested in self.parent_exceptions],
        }

    def to_json(self, **kwargs) -> str:
        """Serialize to the Squash wire format; non-JSON ivar values become strings"""
        return json.dumps(self.to_dict(), default=str, **kwargs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrashEntry":
        return cls(
            api_key=data.get('api_key'),
            client=data.get('client'),
            environment=data.get('environment'),
            revision=data.get('revision'),
            build=data.get('build'),
            version=data.get('version'),
            device_id=data.get('device_id'),
            user_id=data.get('user_id'),
            hostname=data.get('hostname'),
            operating_system=data.get('operating_system'),
            os_version=data.get('os_version'),
            occurred_at=data.get('occurred_at'),
            log_message=data.get('log_message'),
            message=data.get('message', NO_MESSAGE),
            class_name=data.get('class_name'),
            backtraces=backtraces_from_wire(data.get('backtraces')),
            ivars=data.get('ivars'),
            parent_exceptions=[
                NestedError.from_dict(item) for item in data.get('parent_exceptions') or []
            ],
        )

    @classmethod
    def from_json(cls, document: str) -> "CrashEntry":
        return cls.from_dict(json.loads(document))
