"""
Exception hierarchy for the sharing analysis.

Every condition that aborts a run derives from ``SharingAnalysisError`` so the
CLI can report it with a single handler. Conditions the tracker can recover
from are logged where they happen and never raised.
"""


class SharingAnalysisError(Exception):
    """Base class for fatal analysis errors."""


class TraceModeError(SharingAnalysisError):
    """The trace was not recorded in the mode the analysis requires."""

    def __init__(self, mode: str, required: str):
        self.mode = mode
        self.required = required
        super().__init__(
            f"Abstract sharing analysis requires '{required}' recording mode, "
            f"trace was recorded in '{mode}' mode"
        )


class UnknownAccessKindError(SharingAnalysisError):
    """A physical access carried a kind outside the known enumeration."""

    def __init__(self, kind):
        self.kind = kind
        super().__init__(f"Unknown access kind: {kind!r}")


class SymbolDataError(SharingAnalysisError):
    """Backing symbol data could not be loaded."""


class TraceFormatError(SharingAnalysisError):
    """A trace record could not be decoded."""

    def __init__(self, message: str, line_number: int = 0):
        self.line_number = line_number
        if line_number:
            message = f"line {line_number}: {message}"
        super().__init__(message)
