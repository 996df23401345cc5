# tests/conftest.py
"""Shared fixtures for the sharing analysis tests."""

import pytest

from mtrace_sharing.analyzers.call_stack_tracker import PerContextCallStacks
from mtrace_sharing.analyzers.trace_replayer import TraceReplayer
from mtrace_sharing.core.data_models import (
    AccessKind, CompletedScope, MemoryAccessEvent, PhysicalAccess,
    ScopeEnterEvent, ScopeExitEvent, VariableAccessEvent,
)


class FakeResolver:
    """Resolver with a fixed object map and PC names for report assertions."""

    def __init__(self, objects=None, functions=None):
        self.objects = objects or {}
        self.functions = functions or {}

    def resolve(self, address):
        for (start, size), name in self.objects.items():
            if start <= address < start + size:
                return name, start
        return None

    def describe(self, program_counter):
        return self.functions.get(program_counter, f"0x{program_counter:x}")


def enter(cpu, name):
    return ScopeEnterEvent(cpu, name)


def leave(cpu):
    return ScopeExitEvent(cpu)


def avar(cpu, name, write=False):
    return VariableAccessEvent(cpu, name, write)


def store(cpu, addr, pc=0):
    return MemoryAccessEvent(cpu, addr, AccessKind.STORE, pc)


def load(cpu, addr, pc=0):
    return MemoryAccessEvent(cpu, addr, AccessKind.LOAD, pc)


def make_scope(name, cpu, aread=(), awrite=(), read=(), write=(), pc=0):
    """Build a completed scope directly from names and addresses."""
    return CompletedScope(
        name=name,
        origin_context=cpu,
        abstract_read=tuple(sorted(aread)),
        abstract_write=tuple(sorted(awrite)),
        concrete_read=tuple(PhysicalAccess(None, 0, a, pc) for a in sorted(read)),
        concrete_write=tuple(PhysicalAccess(None, 0, a, pc) for a in sorted(write)),
    )


@pytest.fixture
def registry():
    return []


@pytest.fixture
def callstacks(registry):
    return PerContextCallStacks(registry)


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def replayer(resolver):
    return TraceReplayer(resolver=resolver)


@pytest.fixture
def events():
    """Event constructors, bundled so tests can build traces inline."""
    class Events:
        pass
    bundle = Events()
    bundle.enter = enter
    bundle.leave = leave
    bundle.avar = avar
    bundle.store = store
    bundle.load = load
    bundle.scope = make_scope
    return bundle
