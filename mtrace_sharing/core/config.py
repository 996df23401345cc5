
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from enum import Enum
import logging


class VerbosityLevel(Enum):
    """Verbosity levels for diagnostic output."""
    QUIET = "quiet"
    NORMAL = "normal"
    DETAILED = "detailed"
    DEBUG = "debug"

    @property
    def log_level(self) -> int:
        return {
            VerbosityLevel.QUIET: logging.ERROR,
            VerbosityLevel.NORMAL: logging.WARNING,
            VerbosityLevel.DETAILED: logging.INFO,
            VerbosityLevel.DEBUG: logging.DEBUG,
        }[self]


@dataclass
class ReportConfig:
    """Configuration for the optional report sections."""
    emit_abstract_scopes: bool = False
    emit_unexpected_sharing: bool = True

    # JSON formatting
    indent: int = 2


@dataclass
class TraceConfig:
    """Requirements the input trace must satisfy."""
    required_mode: str = "ascope"
    address_granularity: int = 4


@dataclass
class Config:
    """Main configuration class that combines all settings."""

    # Sub-configurations
    report: ReportConfig = field(default_factory=ReportConfig)
    trace: TraceConfig = field(default_factory=TraceConfig)

    # General settings
    verbosity: VerbosityLevel = VerbosityLevel.NORMAL

    # Input/Output settings
    input_file: Optional[str] = None
    output_file: Optional[str] = None
    symbol_file: Optional[str] = None

    def __post_init__(self):
        """Post-initialization validation."""
        self._validate_settings()

    def _validate_settings(self):
        """Validate configuration settings and apply constraints."""
        if self.report.indent < 0:
            self.report.indent = 0

        # Granularity is applied as a bit mask, so it must be a power of two
        granularity = self.trace.address_granularity
        if granularity < 1 or granularity & (granularity - 1):
            self.trace.address_granularity = 4

    @property
    def address_mask(self) -> int:
        return ~(self.trace.address_granularity - 1)

    def update_from_args(self, args: Dict[str, Any]):
        """Update configuration from command-line arguments."""
        if args.get('quiet'):
            self.verbosity = VerbosityLevel.QUIET
        elif args.get('verbose'):
            if args['verbose'] == 1:
                self.verbosity = VerbosityLevel.DETAILED
            elif args['verbose'] >= 2:
                self.verbosity = VerbosityLevel.DEBUG

        if args.get('abstract_scopes'):
            self.report.emit_abstract_scopes = True

        if args.get('no_unexpected'):
            self.report.emit_unexpected_sharing = False

        if args.get('indent') is not None:
            self.report.indent = args['indent']

        for key in ('input_file', 'output_file', 'symbol_file'):
            if args.get(key) is not None:
                setattr(self, key, args[key])

        self._validate_settings()


def create_default_config() -> Config:
    """Create a default configuration instance."""
    return Config()
