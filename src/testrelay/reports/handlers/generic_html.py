"""Fallback parser for table-based HTML reports."""

from __future__ import annotations

from dataclasses import dataclass

from bs4 import Tag

from testrelay.core.models import NormalizedResult, ParsedReport
from testrelay.logging import get_logger
from testrelay.normalize import normalize_duration, normalize_status

from ..base import ReportInput, ReportParser
from .common import DURATION_TOKEN, QUALIFIED_NAME, STATUS_WORDS, html_header, text_of

logger = get_logger(__name__)

SOURCE = "HTML Report"

ROW_KEYWORDS = ("test", *STATUS_WORDS)
MIN_CELLS = 2


@dataclass
class _RowRoles:
    name: str | None = None
    status: str | None = None
    duration: str | None = None
    class_name: str | None = None


def sniff_cells(cells: list[str]) -> _RowRoles:
    """Assign column roles by content, left to right.

    A cell fills at most one role and each role takes the first cell that
    qualifies for it.
    """
    roles = _RowRoles()
    for text in cells:
        lower = text.lower()
        if roles.name is None and "test" in lower:
            roles.name = text
        elif roles.status is None and any(word in lower for word in STATUS_WORDS):
            roles.status = text
        elif roles.duration is None and DURATION_TOKEN.search(text):
            roles.duration = text
        elif roles.class_name is None and ("class" in lower or QUALIFIED_NAME.match(text)):
            roles.class_name = text
    return roles


class GenericHtmlParser(ReportParser):
    """Best-effort parser for any HTML document with result tables."""

    @property
    def name(self) -> str:
        return "generic-html"

    def can_parse(self, report: ReportInput) -> bool:
        return report.kind == "html"

    def parse(self, report: ReportInput) -> ParsedReport:
        results: list[NormalizedResult] = []
        for table in report.soup.find_all("table"):
            for row in table.find_all("tr"):
                if row.find_parent("table") is not table:
                    continue  # belongs to a nested table
                result = self._parse_row(row)
                if result is not None:
                    results.append(result)
        logger.debug("generic_rows_parsed", count=len(results))
        return ParsedReport(dialect=self.name, header=html_header(report, SOURCE), results=results)

    def _parse_row(self, row: Tag) -> NormalizedResult | None:
        cells = row.find_all(["td", "th"], recursive=False)
        if len(cells) < MIN_CELLS:
            return None
        if all(cell.name == "th" for cell in cells):
            return None

        row_text = text_of(row).lower()
        if not any(keyword in row_text for keyword in ROW_KEYWORDS):
            return None

        roles = sniff_cells([text_of(cell) for cell in cells])
        return NormalizedResult.build(
            name=roles.name,
            status=normalize_status(roles.status),
            class_name=roles.class_name,
            duration_seconds=normalize_duration(roles.duration),
        )
