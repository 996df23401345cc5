"""
Call stack tracking for abstract scopes.

Each execution context (CPU) owns an independent stack of ``ScopeFrame``
objects. Scope events push and pop frames, declared variable accesses update
the innermost frame, and physical accesses are attributed to every frame on
the stack so each scope captures everything done on its behalf. Interrupts
run on their own stacks, so attribution never crosses an asynchronous
boundary.

When a frame exits it is frozen into a ``CompletedScope`` and appended to the
registry, unless it declared no variable accesses at all.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from ..core.data_models import (
    ADDRESS_MASK, AccessKind, CallState, CompletedScope, FunctionCallEvent,
    PhysicalAccess, ScopeFrame,
)
from ..core.errors import UnknownAccessKindError


logger = logging.getLogger(__name__)

SymbolLookup = Callable[[int], Optional[Tuple[str, int]]]


def _no_symbols(address: int) -> Optional[Tuple[str, int]]:
    return None


class CallStackTracker:
    """Stack of active scopes for a single execution context."""

    def __init__(self, registry: List[CompletedScope], address_mask: int = ADDRESS_MASK):
        self.registry = registry
        self.address_mask = address_mask
        self.frames: List[ScopeFrame] = []

    def __len__(self) -> int:
        return len(self.frames)

    @property
    def top(self) -> Optional[ScopeFrame]:
        return self.frames[-1] if self.frames else None

    def enter(self, name: str, context: int) -> ScopeFrame:
        frame = ScopeFrame(name, context)
        self.frames.append(frame)
        return frame

    def exit(self) -> Optional[CompletedScope]:
        """
        Pop the innermost frame and promote it to the registry.

        Returns the completed scope, or None if the frame was discarded for
        declaring nothing or there was no frame to pop.
        """
        if not self.frames:
            # Without the matching enter there is nothing to recover
            logger.debug("Scope exit on an empty call stack ignored")
            return None

        frame = self.frames.pop()
        if frame.is_empty:
            return None

        completed = frame.snapshot()
        self.registry.append(completed)
        return completed

    def flush(self) -> None:
        """Exit every active frame, innermost first."""
        while self.frames:
            self.exit()

    def record_variable_access(self, name: str, is_write: bool) -> bool:
        """
        Record a declared access in the innermost frame.

        Returns False when there is no enclosing scope and the access was
        dropped.
        """
        frame = self.top
        if frame is None:
            logger.warning("Variable access without enclosing scope: %s", name)
            return False

        if is_write:
            frame.abstract_write.add(name)
            frame.abstract_read.discard(name)
        elif name not in frame.abstract_write:
            frame.abstract_read.add(name)
        return True

    def record_physical_access(self, address: int, access_kind: AccessKind,
                               program_counter: int,
                               symbol_lookup: SymbolLookup = _no_symbols) -> None:
        """Attribute a physical access to every active frame."""
        if not isinstance(access_kind, AccessKind):
            raise UnknownAccessKindError(access_kind)
        if not self.frames:
            return

        address &= self.address_mask
        resolved = symbol_lookup(address)
        if resolved is not None:
            symbolic_type, base_offset = resolved
        else:
            symbolic_type, base_offset = None, 0
        access = PhysicalAccess(symbolic_type, base_offset, address, program_counter)

        for frame in self.frames:
            if access_kind.is_write:
                if address not in frame.concrete_write:
                    frame.concrete_write[address] = access
                frame.concrete_read.pop(address, None)
            elif address not in frame.concrete_write and address not in frame.concrete_read:
                frame.concrete_read[address] = access


class PerContextCallStacks:
    """
    Independent call stacks keyed by execution context.

    A context is normally served by a stack created lazily on its first
    event. Function-call events can additionally bind tagged stacks to a
    context, park them while the call is paused, and retire them when the
    call ends.
    """

    def __init__(self, registry: Optional[List[CompletedScope]] = None,
                 address_mask: int = ADDRESS_MASK):
        self.registry: List[CompletedScope] = registry if registry is not None else []
        self.address_mask = address_mask
        self._bound: Dict[int, CallStackTracker] = {}
        self._tagged: Dict[int, CallStackTracker] = {}
        self._tag_of: Dict[int, int] = {}

    def _new_stack(self) -> CallStackTracker:
        return CallStackTracker(self.registry, self.address_mask)

    def current(self, context: int) -> CallStackTracker:
        """The stack bound to ``context``, created on first use."""
        stack = self._bound.get(context)
        if stack is None:
            stack = self._new_stack()
            self._bound[context] = stack
        return stack

    @property
    def contexts(self) -> List[int]:
        return sorted(self._bound)

    def handle_call(self, event: FunctionCallEvent) -> None:
        """Apply a function-call lifecycle event."""
        context, tag = event.context, event.tag
        if event.state is CallState.START:
            self._retire(tag)
            stack = self._new_stack()
            self._tagged[tag] = stack
            self._bind(context, tag, stack)
        elif event.state is CallState.RESUME:
            stack = self._tagged.get(tag)
            if stack is None:
                stack = self._new_stack()
                self._tagged[tag] = stack
            self._bind(context, tag, stack)
        elif event.state is CallState.PAUSE:
            if self._tag_of.get(context) == tag:
                del self._bound[context]
                del self._tag_of[context]
        elif event.state is CallState.END:
            self._retire(tag)
        else:
            raise ValueError(f"Unknown call state: {event.state!r}")

    def _retire(self, tag: int) -> None:
        """Unbind the stack for ``tag`` everywhere and close its scopes."""
        stack = self._tagged.pop(tag, None)
        if stack is None:
            return
        for context in [c for c, bound in self._bound.items() if bound is stack]:
            del self._bound[context]
            self._tag_of.pop(context, None)
        stack.flush()

    def _bind(self, context: int, tag: int, stack: CallStackTracker) -> None:
        previous = self._bound.get(context)
        if previous is not None and context not in self._tag_of:
            # A lazily created stack being replaced has no tag to come back to
            previous.flush()
        self._bound[context] = stack
        self._tag_of[context] = tag

    def enter(self, name: str, context: int) -> ScopeFrame:
        return self.current(context).enter(name, context)

    def exit(self, context: int) -> Optional[CompletedScope]:
        return self.current(context).exit()

    def record_variable_access(self, name: str, is_write: bool, context: int) -> bool:
        return self.current(context).record_variable_access(name, is_write)

    def record_physical_access(self, address: int, access_kind: AccessKind,
                               program_counter: int, symbol_lookup: SymbolLookup,
                               context: int) -> None:
        self.current(context).record_physical_access(
            address, access_kind, program_counter, symbol_lookup)

    def flush(self) -> None:
        """Close every active scope on every stack, bound or parked."""
        seen = set()
        for stack in list(self._bound.values()) + list(self._tagged.values()):
            if id(stack) not in seen:
                seen.add(id(stack))
                stack.flush()
