# tests/test_config.py
"""Tests for configuration defaults and validation."""

import logging

from mtrace_sharing.core.config import (
    Config, ReportConfig, TraceConfig, VerbosityLevel, create_default_config,
)


def test_defaults():
    config = create_default_config()
    assert config.report.emit_abstract_scopes is False
    assert config.report.emit_unexpected_sharing is True
    assert config.trace.required_mode == "ascope"
    assert config.address_mask == ~3


def test_invalid_granularity_falls_back_to_four_bytes():
    config = Config(trace=TraceConfig(address_granularity=6))
    assert config.trace.address_granularity == 4


def test_custom_granularity_mask():
    config = Config(trace=TraceConfig(address_granularity=8))
    assert 0x100f & config.address_mask == 0x1008


def test_negative_indent_clamped():
    config = Config(report=ReportConfig(indent=-1))
    assert config.report.indent == 0


def test_update_from_args():
    config = Config()
    config.update_from_args({
        'abstract_scopes': True,
        'no_unexpected': True,
        'verbose': 2,
        'symbol_file': 'syms.json',
    })

    assert config.report.emit_abstract_scopes is True
    assert config.report.emit_unexpected_sharing is False
    assert config.verbosity is VerbosityLevel.DEBUG
    assert config.symbol_file == 'syms.json'


def test_verbosity_log_levels():
    assert VerbosityLevel.QUIET.log_level == logging.ERROR
    assert VerbosityLevel.NORMAL.log_level == logging.WARNING
    assert VerbosityLevel.DEBUG.log_level == logging.DEBUG
