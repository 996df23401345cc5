"""
Replay of a trace through the call stack tracker, followed by detection.

The replayer routes each event to the stack of the context that produced it,
enforces the recording-mode precondition, and once the trace is exhausted
flushes every stack, runs the sharing detector over the frozen registry and
hands the results to the report aggregator.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..core.config import Config
from ..core.data_models import (
    CompletedScope, EnableEvent, FunctionCallEvent, MemoryAccessEvent,
    ScopeEnterEvent, ScopeExitEvent, TraceEvent, VariableAccessEvent,
)
from ..core.errors import TraceModeError
from ..display.report_aggregator import ReportAggregator
from .call_stack_tracker import PerContextCallStacks
from .sharing_detector import SharingDetector
from .symbols import AddressOnlyResolver


logger = logging.getLogger(__name__)


class TraceReplayer:
    """Drives the two-phase analysis: replay, then detection."""

    def __init__(self, config: Optional[Config] = None, resolver=None):
        self.config = config or Config()
        self.resolver = resolver or AddressOnlyResolver()
        self.scopes: List[CompletedScope] = []
        self.callstacks = PerContextCallStacks(self.scopes, self.config.address_mask)
        self.recording_enabled: bool = True
        self.events_processed: int = 0
        self.finished: bool = False

    def handle(self, event: TraceEvent) -> None:
        """Process one trace event."""
        if self.finished:
            raise RuntimeError("Trace replay already finished")
        self.events_processed += 1

        if isinstance(event, FunctionCallEvent):
            # Stack lifecycle is tracked whether or not recording is on
            self.callstacks.handle_call(event)
            return

        if isinstance(event, EnableEvent):
            required = self.config.trace.required_mode
            if event.enabled and event.mode != required:
                raise TraceModeError(event.mode, required)
            self.recording_enabled = event.enabled
            return

        if not self.recording_enabled:
            return

        if isinstance(event, ScopeEnterEvent):
            self.callstacks.enter(event.name, event.context)
        elif isinstance(event, ScopeExitEvent):
            self.callstacks.exit(event.context)
        elif isinstance(event, VariableAccessEvent):
            self.callstacks.record_variable_access(event.name, event.is_write, event.context)
        elif isinstance(event, MemoryAccessEvent):
            self.callstacks.record_physical_access(
                event.address, event.access_kind, event.program_counter,
                self.resolver.resolve, event.context)
        else:
            raise TypeError(f"Unsupported trace event: {event!r}")

    def replay(self, events: Iterable[TraceEvent]) -> 'TraceReplayer':
        for event in events:
            self.handle(event)
        return self

    def finish(self) -> List[CompletedScope]:
        """Close all scopes still open at the end of the trace."""
        if not self.finished:
            self.callstacks.flush()
            self.finished = True
            logger.info("Replayed %d events into %d completed scopes",
                        self.events_processed, len(self.scopes))
        return self.scopes

    def report(self) -> Dict[str, Any]:
        """Finish replay, detect sharing and build the report."""
        scopes = self.finish()
        detector = SharingDetector(scopes)
        aggregator = ReportAggregator(self.resolver, self.config.report)
        return aggregator.build(scopes, detector.pairs())


def analyze(events: Iterable[TraceEvent], config: Optional[Config] = None,
            resolver=None) -> Dict[str, Any]:
    """Replay ``events`` and return the sharing report."""
    return TraceReplayer(config, resolver).replay(events).report()
