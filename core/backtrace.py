"""
Backtrace Extraction

This module turns a raised exception into the Squash backtrace format:
per-thread stack captures, the exception's instance fields ("ivars"),
and the chain of exceptions that caused it.

Features:
- Stack frames read from the traceback recorded at raise time
- Reflective capture of instance fields with an exclusion policy
- Cause-chain traversal (explicit and implicit chaining) with cycle protection
- Wire-format conversion for every record (``to_dict`` / ``from_dict``)
"""

import threading
import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from utils.constants import (
    DEFAULT_EXCLUDED_PREFIXES,
    FIELD_ACCESS_ERROR_PREFIX,
    FOLLOW_CONTEXT,
    FRAME_TYPE_OBFUSCATED,
    UNKNOWN_LINE,
)
from utils.logger import get_logger


@dataclass(frozen=True)
class StackFrame:
    """One call site of a captured backtrace"""
    class_name: str
    file: Optional[str]
    line: int
    symbol: str
    frame_kind: str = FRAME_TYPE_OBFUSCATED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.frame_kind,
            'file': self.file,
            'line': self.line,
            'symbol': self.symbol,
            'class_name': self.class_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StackFrame":
        return cls(
            class_name=data['class_name'],
            file=data.get('file'),
            line=data['line'],
            symbol=data['symbol'],
            frame_kind=data.get('type', FRAME_TYPE_OBFUSCATED),
        )


@dataclass(frozen=True)
class ThreadBacktrace:
    """Stack capture of a single thread, innermost frame first"""
    thread_name: str
    is_faulting: bool
    frames: List[StackFrame] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.thread_name,
            'faulted': self.is_faulting,
            'backtrace': [frame.to_dict() for frame in self.frames],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThreadBacktrace":
        return cls(
            thread_name=data['name'],
            is_faulting=data['faulted'],
            frames=[StackFrame.from_dict(frame) for frame in data.get('backtrace') or []],
        )


@dataclass(frozen=True)
class NestedError:
    """One link of a cause chain"""
    class_name: str
    message: Optional[str]
    backtraces: Optional[List[ThreadBacktrace]]
    fields: Optional[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'class_name': self.class_name,
            'message': self.message,
            'backtraces': backtraces_to_wire(self.backtraces),
            'ivars': fields_to_wire(self.fields),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NestedError":
        return cls(
            class_name=data['class_name'],
            message=data.get('message'),
            backtraces=backtraces_from_wire(data.get('backtraces')),
            fields=data.get('ivars'),
        )


_JSON_SCALARS = (str, int, float, bool, type(None))


def fields_to_wire(fields: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """JSON-safe copy of captured fields; anything JSON cannot encode becomes its str()"""
    if fields is None:
        return None
    return _to_wire_value(fields, set())


def _to_wire_value(value: Any, path: Set[int]) -> Any:
    if isinstance(value, _JSON_SCALARS):
        return value
    if not isinstance(value, (dict, list, tuple)):
        return str(value)
    # Container already on the current path: a self-reference
    if id(value) in path:
        return str(value)

    path.add(id(value))
    try:
        if isinstance(value, dict):
            return {
                key if isinstance(key, _JSON_SCALARS) else str(key): _to_wire_value(item, path)
                for key, item in value.items()
            }
        return [_to_wire_value(item, path) for item in value]
    finally:
        path.discard(id(value))


def backtraces_to_wire(backtraces: Optional[List[ThreadBacktrace]]) -> Optional[List[Dict[str, Any]]]:
    if backtraces is None:
        return None
    return [backtrace.to_dict() for backtrace in backtraces]


def backtraces_from_wire(data: Optional[List[Dict[str, Any]]]) -> Optional[List[ThreadBacktrace]]:
    if data is None:
        return None
    return [ThreadBacktrace.from_dict(item) for item in data]


def qualified_class_name(error: BaseException) -> str:
    """Fully qualified name of the error's concrete type"""
    error_type = type(error)
    return f"{error_type.__module__}.{error_type.__qualname__}"


def error_message(error: BaseException) -> Optional[str]:
    """
    Message carried by an exception, or None when it has none

    An exception raised without arguments (or with a single None argument)
    has no message. A ``__str__`` that itself fails is reported the way the
    interpreter reports it when printing a traceback.
    """
    if len(error.args) == 1 and error.args[0] is None:
        return None
    try:
        message = str(error)
    except Exception:
        return f"<unprintable {type(error).__name__} object>"
    return message or None


def error_cause(error: BaseException, follow_context: bool = FOLLOW_CONTEXT) -> Optional[BaseException]:
    """Explicit cause of an exception, falling back to its implicit context"""
    cause = error.__cause__
    if cause is None and follow_context and not error.__suppress_context__:
        cause = error.__context__
    return cause


def _owner_class_name(module: str, qualname: str) -> str:
    owner = qualname.rpartition('.')[0]
    return f"{module}.{owner}" if owner else module


class BacktraceExtractor:
    """
    Stateless extractor of Squash backtrace data from exceptions

    The extractor only holds immutable options, so a single instance may be
    shared freely between threads. Every call reads the supplied exception
    and never mutates it.
    """

    def __init__(self, config: Optional[Dict] = None):
        """Initialize backtrace extractor"""
        self.config = config or {}
        self.logger = get_logger("backtrace_extractor", self.config.get('log_level', "INFO"))

        prefixes = self.config.get('excluded_prefixes', DEFAULT_EXCLUDED_PREFIXES)
        if isinstance(prefixes, str):
            prefixes = (prefixes,)
        self.excluded_prefixes: Tuple[str, ...] = tuple(prefixes)
        self.follow_context: bool = self.config.get('follow_context', FOLLOW_CONTEXT)

    def capture_backtraces(self, error: Optional[BaseException]) -> Optional[List[ThreadBacktrace]]:
        """
        Capture the backtraces of an exception

        Args:
            error: Exception to inspect, possibly None

        Returns:
            None for a None error, otherwise a single faulting backtrace named
            after the thread performing the extraction
        """
        if error is None:
            return None
        current_thread = ThreadBacktrace(
            thread_name=threading.current_thread().name,
            is_faulting=True,
            frames=self.capture_frames(error),
        )
        return [current_thread]

    def capture_frames(self, error: BaseException) -> List[StackFrame]:
        """Frames of the traceback recorded when the error was raised, innermost first"""
        frames: List[StackFrame] = []
        for frame, lineno in traceback.walk_tb(error.__traceback__):
            code = frame.f_code
            module = frame.f_globals.get('__name__', '<unknown>')
            class_name = _owner_class_name(module, getattr(code, 'co_qualname', code.co_name))
            frames.append(StackFrame(
                class_name=class_name,
                file=code.co_filename,
                line=lineno if lineno is not None else UNKNOWN_LINE,
                symbol=code.co_name,
            ))
        frames.reverse()
        return frames

    def capture_fields(self, error: Optional[BaseException]) -> Optional[Dict[str, Any]]:
        """
        Capture the instance fields of an exception

        Only instance storage is enumerated: the instance ``__dict__`` and the
        slots declared by the error's own class. Class attributes, names with
        an excluded prefix and interpreter-managed dunder names are skipped.
        A field that cannot be read is recorded with a diagnostic string.
        """
        if error is None:
            return None

        ivars: Dict[str, Any] = {}
        for name, read in self._instance_fields(error):
            if name.startswith(self.excluded_prefixes):
                continue
            if name.startswith('__') and name.endswith('__'):
                continue
            try:
                ivars[name] = read()
            except Exception as e:
                self.logger.warning(
                    f"Failed to read field {name} of {qualified_class_name(error)}: {e!r}"
                )
                ivars[name] = f"{FIELD_ACCESS_ERROR_PREFIX}{e!r}"
        return ivars

    def _instance_fields(self, error: BaseException) -> Iterable[Tuple[str, Any]]:
        instance_dict = getattr(error, '__dict__', None) or {}
        for name in list(instance_dict):
            yield name, lambda name=name: instance_dict[name]

        error_type = type(error)
        slots = error_type.__dict__.get('__slots__', ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name in ('__dict__', '__weakref__'):
                continue
            if name.startswith('__') and not name.endswith('__'):
                name = f"_{error_type.__name__.lstrip('_')}{name}"
            descriptor = error_type.__dict__.get(name)
            if descriptor is None:
                continue
            yield name, lambda descriptor=descriptor: descriptor.__get__(error, error_type)

    def collect_cause_chain(self, nested_errors: List[NestedError], error: Optional[BaseException]) -> None:
        """
        Append one NestedError per cause of an exception, nearest cause first

        Traversal stops at a missing cause or at the first cause that was
        already visited, which covers an error that is its own cause as well
        as longer cycles.
        """
        if error is None:
            return

        seen = {id(error)}
        cause = error_cause(error, self.follow_context)
        while cause is not None and id(cause) not in seen:
            seen.add(id(cause))
            nested_errors.append(NestedError(
                class_name=qualified_class_name(cause),
                message=error_message(cause),
                backtraces=self.capture_backtraces(cause),
                fields=self.capture_fields(cause),
            ))
            error = cause
            cause = error_cause(error, self.follow_context)

        if cause is not None:
            self.logger.debug(
                f"Cause chain of {qualified_class_name(error)} loops back to "
                f"{qualified_class_name(cause)}; stopping",
                depth=len(nested_errors),
            )


_default_extractor: Optional[BacktraceExtractor] = None


def get_extractor() -> BacktraceExtractor:
    """Get the shared extractor with default options"""
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = BacktraceExtractor()
    return _default_extractor


# Convenience functions
def capture_backtraces(error: Optional[BaseException]) -> Optional[List[ThreadBacktrace]]:
    return get_extractor().capture_backtraces(error)


def capture_frames(error: BaseException) -> List[StackFrame]:
    return get_extractor().capture_frames(error)


def capture_fields(error: Optional[BaseException]) -> Optional[Dict[str, Any]]:
    return get_extractor().capture_fields(error)


def collect_cause_chain(nested_errors: List[NestedError], error: Optional[BaseException]) -> None:
    get_extractor().collect_cause_chain(nested_errors, error)
