"""Abstract versus concrete sharing analysis for memory-access traces."""

__version__ = "0.1.0"
