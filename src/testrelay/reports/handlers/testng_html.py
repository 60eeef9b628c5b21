"""TestNG HTML report parser."""

from __future__ import annotations

from testrelay.core.models import NormalizedResult, ParsedReport
from testrelay.logging import get_logger
from testrelay.normalize import normalize_duration, normalize_status

from ..base import ReportInput, ReportParser
from .common import html_header, text_of

logger = get_logger(__name__)

SOURCE = "TestNG HTML Report"

SUITE_TABLES = "table#suites, table.suiteTable"
SUITE_ROWS = "table#suites tr, table.suiteTable tr"
MIN_CELLS = 3


class TestNGHtmlParser(ReportParser):
    """Parser for TestNG HTML reports.

    Result rows live in the suite tables with the columns
    method | class | status | duration (optional).
    """

    __test__ = False

    @property
    def name(self) -> str:
        return "testng-html"

    def can_parse(self, report: ReportInput) -> bool:
        if report.kind != "html":
            return False
        if report.soup.select_one(SUITE_TABLES) is not None:
            return True
        return "testng" in (report.title or "").lower()

    def parse(self, report: ReportInput) -> ParsedReport:
        results: list[NormalizedResult] = []
        for row in report.soup.select(SUITE_ROWS):
            cells = row.find_all("td", recursive=False)
            if len(cells) < MIN_CELLS:
                continue
            result = NormalizedResult.build(
                name=text_of(cells[0]),
                class_name=text_of(cells[1]),
                status=normalize_status(text_of(cells[2])),
                duration_seconds=normalize_duration(text_of(cells[3])) if len(cells) > 3 else None,
            )
            if result is not None:
                results.append(result)
        logger.debug("testng_rows_parsed", count=len(results))
        return ParsedReport(dialect=self.name, header=html_header(report, SOURCE), results=results)
