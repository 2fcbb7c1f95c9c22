# src/__init__.py — v1
"""ArsTraverse — community meta-graphs and versioned stories over knowledge graphs."""

from arstraverse.version import __version__

__all__ = ["__version__"]
