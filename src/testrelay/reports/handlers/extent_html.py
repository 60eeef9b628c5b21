"""ExtentReports HTML parser."""

from __future__ import annotations

from bs4 import Tag

from testrelay.core.models import NormalizedResult, ParsedReport
from testrelay.logging import get_logger
from testrelay.normalize import normalize_duration, normalize_status

from ..base import ReportInput, ReportParser
from .common import STATUS_WORDS, class_tokens, html_header, text_of

logger = get_logger(__name__)

SOURCE = "ExtentReports HTML"

DETECTION_SELECTOR = ".test, .test-name, .test-status"
CONTAINER_SELECTORS = (".test", ".test-item")
NAME_SELECTOR = ".test-name, .name"
STATUS_SELECTOR = ".status, .test-status, [class*=status]"
DURATION_SELECTOR = ".duration, .time, [class*=duration]"
CLASS_NAME_SELECTOR = ".class-name, [class*=class]"
ERROR_SELECTOR = ".exception, .test-error, pre"

# Class fragments that mark a child field rather than a test container
_FIELD_MARKERS = ("name", "status", "duration", "time", "class", "error", "exception")


class ExtentHtmlParser(ReportParser):
    """Parser for ExtentReports HTML output.

    Each test is a container element (``.test`` or ``.test-item``) with
    child elements for name, status, duration, class and exception.
    """

    @property
    def name(self) -> str:
        return "extent-html"

    def can_parse(self, report: ReportInput) -> bool:
        if report.kind != "html":
            return False
        soup = report.soup
        if soup.select_one(DETECTION_SELECTOR) is not None:
            return True
        if any("extent" in (script.string or "").lower() for script in soup.find_all("script")):
            return True
        return "extent" in (report.title or "").lower()

    def parse(self, report: ReportInput) -> ParsedReport:
        results: list[NormalizedResult] = []
        for container in self._containers(report):
            result = self._parse_container(container)
            if result is not None:
                results.append(result)
        logger.debug("extent_tests_parsed", count=len(results))
        return ParsedReport(dialect=self.name, header=html_header(report, SOURCE), results=results)

    def _containers(self, report: ReportInput) -> list[Tag]:
        soup = report.soup
        for selector in CONTAINER_SELECTORS:
            found = soup.select(selector)
            if found:
                return self._outermost(found)

        candidates = [
            element
            for element in soup.find_all(class_=True)
            if any("test" in token for token in class_tokens(element))
            and not any(
                marker in token for token in class_tokens(element) for marker in _FIELD_MARKERS
            )
        ]
        return self._outermost(candidates)

    @staticmethod
    def _outermost(elements: list[Tag]) -> list[Tag]:
        """Drop elements nested inside another selected container."""
        selected = {id(element) for element in elements}
        return [
            element
            for element in elements
            if not any(id(parent) in selected for parent in element.parents)
        ]

    def _parse_container(self, container: Tag) -> NormalizedResult | None:
        name_element = container.select_one(NAME_SELECTOR) or self._name_like(container)
        name = text_of(name_element) if name_element is not None else text_of(container)

        error_text = text_of_block(container.select_one(ERROR_SELECTOR))
        error_message = error_text.splitlines()[0] if error_text else None

        return NormalizedResult.build(
            name=name,
            status=normalize_status(self._status_text(container)),
            class_name=text_of(container.select_one(CLASS_NAME_SELECTOR)),
            duration_seconds=normalize_duration(text_of(container.select_one(DURATION_SELECTOR))),
            error_message=error_message,
            stack_trace=error_text or None,
        )

    @staticmethod
    def _name_like(container: Tag) -> Tag | None:
        for element in container.select("[class*=name]"):
            if not any("class" in token for token in class_tokens(element)):
                return element
        return None

    @staticmethod
    def _status_text(container: Tag) -> str | None:
        status_text = text_of(container.select_one(STATUS_SELECTOR))
        if status_text:
            return status_text
        attribute = container.get("status")
        if isinstance(attribute, str) and attribute.strip():
            return attribute
        for token in class_tokens(container):
            for word in STATUS_WORDS:
                if word in token:
                    return word
        return None


def text_of_block(element: Tag | None) -> str:
    """Text of a preformatted block with line breaks preserved."""
    if element is None:
        return ""
    return element.get_text().strip()
