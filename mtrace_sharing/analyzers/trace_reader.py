"""
Decoding of JSON-lines trace files.

Each non-blank line is one JSON object whose ``type`` selects the event::

    {"type": "enable", "cpu": 0, "enabled": true, "mode": "ascope"}
    {"type": "scope_enter", "cpu": 0, "name": "sys_open"}
    {"type": "variable_access", "cpu": 0, "name": "fd_table", "write": true}
    {"type": "access", "cpu": 0, "addr": "0x1000", "kind": "store", "pc": "0x4010"}
    {"type": "scope_exit", "cpu": 0}
    {"type": "fcall", "cpu": 0, "tag": 7, "state": "start"}

Addresses and program counters may be integers or numeric strings.
"""

import json
from typing import Any, Callable, Dict, IO, Iterator

from ..core.data_models import (
    AccessKind, CallState, EnableEvent, FunctionCallEvent, MemoryAccessEvent,
    ScopeEnterEvent, ScopeExitEvent, TraceEvent, VariableAccessEvent,
)
from ..core.errors import TraceFormatError, UnknownAccessKindError
from .symbols import parse_int


def _flag(record: Dict[str, Any], key: str, required: bool = True) -> bool:
    """Read a JSON boolean; strings such as ``"false"`` are rejected."""
    value = record[key] if required else record.get(key, False)
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r} must be true or false, got {value!r}")
    return value


def _enable(record: Dict[str, Any], cpu: int) -> TraceEvent:
    return EnableEvent(cpu, _flag(record, 'enabled'), str(record.get('mode', 'ascope')))


def _scope_enter(record: Dict[str, Any], cpu: int) -> TraceEvent:
    return ScopeEnterEvent(cpu, str(record['name']))


def _scope_exit(record: Dict[str, Any], cpu: int) -> TraceEvent:
    return ScopeExitEvent(cpu)


def _variable_access(record: Dict[str, Any], cpu: int) -> TraceEvent:
    return VariableAccessEvent(cpu, str(record['name']), _flag(record, 'write', required=False))


def _access(record: Dict[str, Any], cpu: int) -> TraceEvent:
    kind = record['kind']
    try:
        access_kind = AccessKind(kind)
    except ValueError:
        raise UnknownAccessKindError(kind) from None
    return MemoryAccessEvent(cpu, parse_int(record['addr']), access_kind,
                             parse_int(record.get('pc', 0)))


def _fcall(record: Dict[str, Any], cpu: int) -> TraceEvent:
    return FunctionCallEvent(cpu, parse_int(record['tag']), CallState(record['state']))


DECODERS: Dict[str, Callable[[Dict[str, Any], int], TraceEvent]] = {
    'enable': _enable,
    'scope_enter': _scope_enter,
    'scope_exit': _scope_exit,
    'variable_access': _variable_access,
    'access': _access,
    'fcall': _fcall,
}


def decode_event(record: Dict[str, Any], line_number: int = 0) -> TraceEvent:
    """Convert one decoded JSON object into a trace event."""
    if not isinstance(record, dict):
        raise TraceFormatError("trace record must be a JSON object", line_number)

    event_type = record.get('type')
    decoder = DECODERS.get(event_type) if isinstance(event_type, str) else None
    if decoder is None:
        raise TraceFormatError(f"unknown event type {event_type!r}", line_number)

    try:
        cpu = parse_int(record['cpu'])
        return decoder(record, cpu)
    except KeyError as e:
        raise TraceFormatError(f"missing field {e.args[0]!r}", line_number) from e
    except (TypeError, ValueError) as e:
        raise TraceFormatError(str(e), line_number) from e


def read_events(stream: IO[str]) -> Iterator[TraceEvent]:
    """Yield events from a JSON-lines stream, in file order."""
    line_number = 0
    lines = iter(stream)
    while True:
        try:
            line = next(lines)
        except StopIteration:
            return
        except UnicodeDecodeError as e:
            raise TraceFormatError(f"invalid UTF-8: {e.reason}", line_number + 1) from e
        line_number += 1
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            raise TraceFormatError(f"invalid JSON: {e.msg}", line_number) from e
        yield decode_event(record, line_number)
