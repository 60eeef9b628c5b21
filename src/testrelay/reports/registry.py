"""Parser registry for detecting report dialects."""

from __future__ import annotations

from collections.abc import Callable

from testrelay.core.exceptions import FormatUnrecognized
from testrelay.core.models import ParsedReport
from testrelay.logging import get_logger

from .base import ReportInput, ReportParser

logger = get_logger(__name__)

Predicate = Callable[[ReportInput], bool]


class ParserRegistry:
    """Ordered registry of report parsers.

    Entries are evaluated in registration order and the first matching
    predicate selects the parser. Once a parser is selected its outcome is
    final; no other dialect is tried.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._entries: list[tuple[Predicate, ReportParser]] = []

    @property
    def parsers(self) -> list[ReportParser]:
        """Return the registered parsers in priority order."""
        return [parser for _, parser in self._entries]

    def register(self, parser: ReportParser, predicate: Predicate | None = None) -> None:
        """Register a parser with the registry.

        Args:
            parser: The parser to register.
            predicate: Detection predicate; defaults to ``parser.can_parse``.
        """
        self._entries.append((predicate or parser.can_parse, parser))

    def identify(self, report: ReportInput) -> ReportParser | None:
        """Return the first parser whose predicate accepts the report, or None."""
        for predicate, parser in self._entries:
            if predicate(report):
                return parser
        return None

    def parse(self, report: ReportInput) -> ParsedReport:
        """Detect the dialect and parse.

        Raises:
            FormatUnrecognized: If no parser accepts the report.
        """
        parser = self.identify(report)
        if parser is None:
            raise FormatUnrecognized(
                f"{report.filename or 'content'} is not a supported JSON or HTML report"
            )
        logger.info("report_format_detected", dialect=parser.name, filename=report.filename)
        return parser.parse(report)


def get_default_registry() -> ParserRegistry:
    """Create a registry with all default parsers in detection priority order."""
    from .handlers.extent_html import ExtentHtmlParser
    from .handlers.generic_html import GenericHtmlParser
    from .handlers.minimal_json import MinimalJsonParser
    from .handlers.rich_json import RichJsonParser
    from .handlers.testng_html import TestNGHtmlParser

    registry = ParserRegistry()
    registry.register(RichJsonParser())
    registry.register(MinimalJsonParser())
    registry.register(ExtentHtmlParser())
    registry.register(TestNGHtmlParser())
    registry.register(GenericHtmlParser())
    return registry
