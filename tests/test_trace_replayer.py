# tests/test_trace_replayer.py
"""End-to-end replay scenarios."""

import pytest

from mtrace_sharing.analyzers.trace_replayer import TraceReplayer, analyze
from mtrace_sharing.core.config import Config
from mtrace_sharing.core.data_models import (
    CallState, EnableEvent, FunctionCallEvent,
)
from mtrace_sharing.core.errors import TraceModeError


class TestScenarios:

    def test_unexpected_sharing_across_cpus(self, replayer, events):
        e = events
        replayer.replay([
            e.enter(0, "foo"), e.avar(0, "x", write=True), e.store(0, 0x1000, pc=0x10),
            e.enter(1, "bar"), e.avar(1, "y", write=True), e.store(1, 0x1000, pc=0x20),
            e.leave(0), e.leave(1),
        ])

        report = replayer.report()

        summary = report['scope-summary']
        assert summary['total_scopes'] == 2
        assert summary['compared_scopes'] == 1
        assert summary['logically_unshared_physically_shared'] == 1
        assert report['unexpected-sharing'] == [{
            's1': 'foo',
            's2': 'bar',
            'shared': [{'addr': '0x1000', 'pc1': '0x10', 'pc2': '0x20'}],
        }]

    def test_same_cpu_scopes_not_compared(self, replayer, events):
        e = events
        replayer.replay([
            e.enter(0, "foo"), e.avar(0, "x", write=True), e.store(0, 0x1000), e.leave(0),
            e.enter(0, "bar"), e.avar(0, "y", write=True), e.store(0, 0x1000), e.leave(0),
        ])

        report = replayer.report()

        assert report['scope-summary']['total_scopes'] == 2
        assert report['scope-summary']['compared_scopes'] == 0
        assert report['unexpected-sharing'] == []

    def test_nested_scopes_both_see_load(self, replayer, events):
        e = events
        replayer.replay([
            e.enter(0, "A"), e.avar(0, "a"),
            e.enter(0, "B"), e.avar(0, "b"),
            e.load(0, 0x2000),
            e.leave(0), e.leave(0),
        ])

        scopes = {s.name: s for s in replayer.finish()}

        assert scopes["A"].read_addresses == (0x2000,)
        assert scopes["B"].read_addresses == (0x2000,)

    def test_write_then_read_of_variable(self, replayer, events):
        e = events
        replayer.replay([e.enter(0, "s"), e.avar(0, "v", write=True), e.avar(0, "v")])

        (scope,) = replayer.finish()

        assert scope.abstract_write == ("v",)
        assert scope.abstract_read == ()

    def test_open_scopes_flushed_at_end(self, replayer, events):
        e = events
        replayer.replay([e.enter(0, "open"), e.avar(0, "v")])

        report = replayer.report()

        assert report['scope-summary']['total_scopes'] == 1


class TestRecordingMode:

    def test_wrong_mode_is_fatal(self, replayer):
        with pytest.raises(TraceModeError, match="ascope"):
            replayer.handle(EnableEvent(0, True, "access"))

    def test_disabled_mode_mismatch_is_tolerated(self, replayer):
        replayer.handle(EnableEvent(0, False, "access"))
        assert replayer.recording_enabled is False

    def test_events_ignored_while_disabled(self, replayer, events):
        e = events
        replayer.replay([
            EnableEvent(0, False),
            e.enter(0, "hidden"), e.avar(0, "x"), e.leave(0),
            EnableEvent(0, True),
            e.enter(0, "seen"), e.avar(0, "x"), e.leave(0),
        ])

        assert [s.name for s in replayer.finish()] == ["seen"]

    def test_function_calls_handled_while_disabled(self, replayer, events):
        e = events
        replayer.replay([
            EnableEvent(0, False),
            FunctionCallEvent(0, 3, CallState.START),
            EnableEvent(0, True),
            e.enter(0, "s"), e.avar(0, "x"),
            FunctionCallEvent(0, 3, CallState.END),
        ])

        assert [s.name for s in replayer.scopes] == ["s"]


class TestReplayLifecycle:

    def test_events_rejected_after_finish(self, replayer, events):
        replayer.finish()
        with pytest.raises(RuntimeError):
            replayer.handle(events.enter(0, "late"))

    def test_unsupported_event_type(self, replayer):
        with pytest.raises(TypeError):
            replayer.handle(object())

    def test_analyze_helper_honours_config(self, events):
        config = Config()
        config.report.emit_abstract_scopes = True
        config.report.emit_unexpected_sharing = False

        report = analyze([events.enter(0, "s"), events.avar(0, "x")], config)

        assert [s['name'] for s in report['abstract-scopes']] == ["s"]
        assert 'unexpected-sharing' not in report

    def test_symbols_annotate_report(self, events, resolver):
        resolver.objects = {(0x1000, 0x40): "struct file"}
        resolver.functions = {0x10: "sys_read+0x10"}
        e = events
        report = analyze([
            e.enter(0, "r"), e.avar(0, "a"), e.store(0, 0x1009, pc=0x10), e.leave(0),
            e.enter(1, "w"), e.avar(1, "b"), e.load(1, 0x1008, pc=0x10), e.leave(1),
        ], resolver=resolver)

        assert report['unexpected-sharing'][0]['shared'] == [
            {'addr': 'struct file+0x8', 'pc': 'sys_read+0x10'},
        ]
