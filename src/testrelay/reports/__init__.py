"""Report dialect detection and parsing.

This module turns raw JSON and HTML test reports into the canonical
``ParsedReport`` consumed by the run orchestrator.
"""

from .base import ReportInput, ReportParser
from .registry import ParserRegistry, get_default_registry

__all__ = [
    "ParserRegistry",
    "ReportInput",
    "ReportParser",
    "get_default_registry",
]
