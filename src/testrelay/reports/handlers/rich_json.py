"""Rich JSON report parser.

The rich schema is written by test-runner listeners::

    {
      "report_meta": {"project_name": ..., "report_source": ..., "environment": {...},
                      "user_config": {"build_id": ..., "triggered_by": ...}},
      "summary": {"total_tests": 3, "start_time": ...},
      "results": [{"test_id": ..., "test_name": ..., "status": "PASS", "duration_ms": 1200}]
    }
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from testrelay.core.models import NormalizedResult, ParsedReport, ReportHeader
from testrelay.logging import get_logger
from testrelay.normalize import ms_to_seconds, normalize_status, parse_duration_ms

from ..base import ReportInput, ReportParser

logger = get_logger(__name__)

# Markers of the minimal camelCase dialect, which also carries a results array.
_MINIMAL_KEYS = ("testRunName", "environment")
_CAMEL_CASE_ITEM_KEYS = ("testCaseId", "errorMessage", "stackTrace")


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class RichEnvironment(_Lenient):
    os: str | None = None
    java_version: str | None = None
    browser: str | None = None
    environment_url: str | None = None


class RichUserConfig(_Lenient):
    triggered_by: str | None = None
    build_id: str | None = None
    execution_profile: str | None = None


class RichReportMeta(_Lenient):
    project_name: str | None = None
    generated_at: str | None = None
    report_source: str | None = None
    environment: RichEnvironment | None = None
    user_config: RichUserConfig | None = None


class RichSummary(_Lenient):
    total_tests: int | None = None
    passed: int | None = None
    failed: int | None = None
    skipped: int | None = None
    total_duration_ms: int | None = None
    start_time: str | None = None
    end_time: str | None = None


class RichResult(_Lenient):
    test_id: str | None = None
    test_name: str | None = None
    class_name: str | None = None
    status: str | None = None
    duration_ms: str | None = None
    tags: list[str] = Field(default_factory=list)
    error_message: str | None = None
    stack_trace: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return value.split(",")
        return value


class RichJsonParser(ReportParser):
    """Parser for the rich snake_case JSON report."""

    @property
    def name(self) -> str:
        return "rich-json"

    def can_parse(self, report: ReportInput) -> bool:
        data = report.json_object
        if data is None or not isinstance(data.get("results"), list):
            return False
        if "report_meta" in data or "summary" in data:
            return True
        if any(key in data for key in _MINIMAL_KEYS):
            return False
        return not any(
            isinstance(item, dict) and any(key in item for key in _CAMEL_CASE_ITEM_KEYS)
            for item in data["results"]
        )

    def parse(self, report: ReportInput) -> ParsedReport:
        data = report.json_object or {}
        header = self._parse_header(data.get("report_meta"), data.get("summary"))

        results: list[NormalizedResult] = []
        for index, raw in enumerate(data.get("results") or []):
            try:
                item = RichResult.model_validate(raw)
            except ValidationError as e:
                logger.warning(
                    "malformed_result_skipped", dialect=self.name, index=index, error=str(e)
                )
                continue
            result = NormalizedResult.build(
                name=item.test_name,
                status=normalize_status(item.status),
                local_id=item.test_id,
                class_name=item.class_name,
                duration_seconds=ms_to_seconds(
                    parse_duration_ms(item.duration_ms, default_unit="ms")
                ),
                tags=item.tags,
                error_message=item.error_message,
                stack_trace=item.stack_trace,
            )
            if result is None:
                logger.debug("result_without_name_skipped", dialect=self.name, index=index)
                continue
            results.append(result)

        return ParsedReport(dialect=self.name, header=header, results=results)

    def _parse_header(self, raw_meta: Any, raw_summary: Any) -> ReportHeader:
        meta = self._validate(RichReportMeta, raw_meta)
        summary = self._validate(RichSummary, raw_summary)
        environment = meta.environment or RichEnvironment()
        user_config = meta.user_config or RichUserConfig()
        return ReportHeader(
            source=meta.report_source,
            project_name=meta.project_name,
            generated_at=meta.generated_at,
            started_at=summary.start_time,
            os=environment.os,
            browser=environment.browser,
            environment_url=environment.environment_url,
            build_id=user_config.build_id,
            triggered_by=user_config.triggered_by,
            execution_profile=user_config.execution_profile,
        )

    def _validate(self, model: type[_Lenient], raw: Any) -> Any:
        if not isinstance(raw, dict):
            return model()
        try:
            return model.model_validate(raw)
        except ValidationError as e:
            logger.warning(
                "malformed_report_section",
                dialect=self.name,
                section=model.__name__,
                error=str(e),
            )
            return model()
