"""Test data factories for testrelay tests.

This module provides factory functions for creating test data objects and
report documents. Use these instead of defining fixtures locally in each
test file.

Usage:
    from tests.factories import make_result, minimal_report_json

    def test_something():
        result = make_result(status=CanonicalStatus.FAILED)
        text = minimal_report_json(results=[{"testCaseId": "tc1", "status": "PASSED"}])
"""

from __future__ import annotations

import json
from typing import Any

from testrelay.config import Settings
from testrelay.core.models import (
    CanonicalStatus,
    NormalizedResult,
    ParsedReport,
    Priority,
    ReportHeader,
    TestDescriptor,
)


def make_settings(
    server_url: str = "https://registry.example.test",
    api_key: str = "test-key",
    project_id: str = "proj-1",
    **overrides: Any,
) -> Settings:
    """Create Settings without reading the environment."""
    return Settings(
        server_url=server_url,
        api_key=api_key,
        project_id=project_id,
        _env_file=None,
        **overrides,
    )


def make_result(
    name: str = "Login works",
    status: CanonicalStatus = CanonicalStatus.PASSED,
    local_id: str | None = None,
    class_name: str | None = None,
    duration_seconds: int | None = 2,
    tags: list[str] | None = None,
    error_message: str | None = None,
    stack_trace: str | None = None,
    comment: str | None = None,
) -> NormalizedResult:
    """Create a NormalizedResult for testing."""
    result = NormalizedResult.build(
        name=name,
        status=status,
        local_id=local_id,
        class_name=class_name,
        duration_seconds=duration_seconds,
        tags=tags,
        error_message=error_message,
        stack_trace=stack_trace,
        comment=comment,
    )
    assert result is not None
    return result


def make_header(**fields: Any) -> ReportHeader:
    """Create a ReportHeader; defaults to a rich-JSON style header."""
    defaults: dict[str, Any] = {
        "source": "Selenium Java SDK",
        "project_name": "Web Shop",
    }
    defaults.update(fields)
    return ReportHeader(**defaults)


def make_parsed_report(
    results: list[NormalizedResult] | None = None,
    header: ReportHeader | None = None,
    dialect: str = "rich-json",
) -> ParsedReport:
    """Create a ParsedReport for testing."""
    return ParsedReport(
        dialect=dialect,
        header=header or make_header(),
        results=results if results is not None else [make_result()],
    )


def make_descriptor(
    test_case_id: str | None = None,
    title: str | None = "Checkout completes",
    description: str | None = None,
    priority: Priority = Priority.MEDIUM,
    project_id: str | None = None,
) -> TestDescriptor:
    """Create a TestDescriptor for testing."""
    return TestDescriptor(
        test_case_id=test_case_id,
        title=title,
        description=description,
        priority=priority,
        project_id=project_id,
    )


def minimal_report_json(
    test_run_name: str | None = "Nightly",
    environment: str | None = "QA",
    results: list[dict[str, Any]] | None = None,
    **extra: Any,
) -> str:
    """Serialize a minimal automation report. None omits a field."""
    data: dict[str, Any] = {}
    if test_run_name is not None:
        data["testRunName"] = test_run_name
    if environment is not None:
        data["environment"] = environment
    data.update(extra)
    data["results"] = (
        results
        if results is not None
        else [{"testCaseId": "tc1", "status": "PASSED", "duration": 42}]
    )
    return json.dumps(data)


def rich_report_json(
    results: list[dict[str, Any]] | None = None,
    report_meta: dict[str, Any] | None = None,
    summary: dict[str, Any] | None = None,
) -> str:
    """Serialize a rich snake_case report with two results by default."""
    if results is None:
        results = [
            {
                "test_id": "LOGIN-1",
                "test_name": "Login with valid user",
                "class_name": "com.shop.LoginTest",
                "status": "FAIL",
                "duration_ms": 3500,
                "tags": ["smoke", "critical"],
                "error_message": "Expected dashboard",
                "stack_trace": "AssertionError: Expected dashboard\n\tat LoginTest.java:42",
            },
            {
                "test_id": "LOGIN-2",
                "test_name": "Logout",
                "class_name": "com.shop.LoginTest",
                "status": "PASS",
                "duration_ms": 1200,
                "tags": ["smoke"],
            },
        ]
    data = {
        "report_meta": report_meta
        if report_meta is not None
        else {
            "project_name": "Web Shop",
            "generated_at": "2026-03-01T10:05:00Z",
            "report_source": "Selenium Java SDK",
            "environment": {"os": "Linux", "browser": "Chrome", "environment_url": "https://qa"},
            "user_config": {
                "triggered_by": "ci-bot",
                "build_id": "b-77",
                "execution_profile": "nightly",
            },
        },
        "summary": summary
        if summary is not None
        else {"total_tests": len(results), "start_time": "2026-03-01T10:00:00Z"},
        "results": results,
    }
    return json.dumps(data)


def html_table_report(rows: list[str], title: str = "Test Results") -> str:
    """Wrap table rows in a plain HTML document."""
    body = "\n".join(rows)
    return (
        "<!DOCTYPE html><html><head>"
        f"<title>{title}</title></head><body>"
        f"<table>{body}</table>"
        "</body></html>"
    )
