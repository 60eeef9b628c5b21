"""Minimal automation report parser.

This is the schema accepted as-is by the registry's one-call import endpoint::

    {
      "testRunName": "Nightly",
      "environment": "staging",
      "description": "optional",
      "results": [{"testCaseId": "TC-1", "status": "PASSED", "duration": 3}]
    }
"""

from __future__ import annotations

from typing import Any

from testrelay.core.exceptions import MissingRequiredField
from testrelay.core.models import NormalizedResult, ParsedReport, ReportHeader, clean_text
from testrelay.logging import get_logger
from testrelay.normalize import normalize_status
from testrelay.registry.schemas import AutomationReport, AutomationResult

from ..base import ReportInput, ReportParser

logger = get_logger(__name__)

REQUIRED_FIELDS = ("testRunName", "environment")


def _whole_seconds(value: Any) -> int | None:
    """Duration field is already seconds; coerce numbers and numeric strings."""
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = int(float(value))
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


class MinimalJsonParser(ReportParser):
    """Parser for the minimal camelCase automation report."""

    @property
    def name(self) -> str:
        return "minimal-json"

    def can_parse(self, report: ReportInput) -> bool:
        data = report.json_object
        if data is None:
            return False
        if "testRunName" in data or "environment" in data:
            return True
        results = data.get("results")
        return isinstance(results, list) and any(
            isinstance(item, dict) and "testCaseId" in item for item in results
        )

    def parse(self, report: ReportInput) -> ParsedReport:
        data = report.json_object or {}

        required: dict[str, str] = {}
        for field_name in REQUIRED_FIELDS:
            value = data.get(field_name)
            text = clean_text(value) if isinstance(value, str) else None
            if text is None:
                raise MissingRequiredField(field_name, dialect=self.name)
            required[field_name] = text
        description = clean_text(data.get("description"))

        results: list[NormalizedResult] = []
        wire_results: list[AutomationResult] = []
        raw_results = data.get("results")
        for index, raw in enumerate(raw_results if isinstance(raw_results, list) else []):
            if not isinstance(raw, dict):
                logger.warning("malformed_result_skipped", dialect=self.name, index=index)
                continue
            test_case_id = clean_text(raw.get("testCaseId"))
            if test_case_id is None:
                logger.warning("result_without_test_case_id", dialect=self.name, index=index)
                continue

            result = NormalizedResult.build(
                name=test_case_id,
                status=normalize_status(raw.get("status")),
                local_id=test_case_id,
                duration_seconds=_whole_seconds(raw.get("duration")),
                error_message=raw.get("errorMessage"),
                stack_trace=raw.get("stackTrace"),
                comment=raw.get("comment"),
            )
            if result is None:
                continue
            results.append(result)
            wire_results.append(
                AutomationResult(
                    test_case_id=test_case_id,
                    status=result.status.value,
                    duration=result.duration_seconds,
                    comment=result.comment,
                    error_message=result.error_message,
                    stack_trace=result.stack_trace,
                )
            )

        header = ReportHeader(
            source="Automation report",
            environment=required["environment"],
            run_name=required["testRunName"],
            description=description,
        )
        automation_report = AutomationReport(
            test_run_name=required["testRunName"],
            environment=required["environment"],
            description=description,
            results=wire_results,
        )
        return ParsedReport(
            dialect=self.name,
            header=header,
            results=results,
            automation_report=automation_report,
        )
