"""Pydantic schemas for the registry REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from testrelay.core.models import RemoteTestCase, TestCaseDraft

# ============================================================================
# Base
# ============================================================================


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python; unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_payload(self) -> dict[str, Any]:
        """Serialize for a request body, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ============================================================================
# Request Schemas
# ============================================================================


class CreateTestCaseRequest(WireModel):
    """Body of POST /projects/{id}/testcases."""

    title: str
    description: str | None = None
    priority: str | None = None
    status: str | None = None

    @classmethod
    def from_draft(cls, draft: TestCaseDraft) -> CreateTestCaseRequest:
        return cls(
            title=draft.title,
            description=draft.description,
            priority=draft.priority.value,
            status=draft.status.value,
        )


class CreateTestRunRequest(WireModel):
    """Body of POST /projects/{id}/testruns."""

    name: str
    description: str | None = None
    environment: str | None = None
    test_case_ids: list[str] = Field(default_factory=list)


class RecordResultRequest(WireModel):
    """Body of POST /testruns/{id}/results."""

    test_case_id: str
    status: str
    duration: int | None = Field(None, ge=0, description="Duration in whole seconds")
    comment: str | None = None
    error_message: str | None = None
    stack_trace: str | None = None


class UpdateTestCaseRequest(WireModel):
    """Body of PUT /testcases/{id}. Only set fields are sent."""

    title: str | None = None
    description: str | None = None
    priority: str | None = None
    status: str | None = None
    estimated_time: int | None = None
    preconditions: str | None = None
    postconditions: str | None = None
    expected_result: str | None = None
    test_data: str | None = None
    module_id: str | None = None
    suite_id: str | None = None


class UpdateTestRunRequest(WireModel):
    """Body of PATCH /testruns/{id}."""

    name: str | None = None
    description: str | None = None
    status: str | None = None
    assigned_to_id: str | None = None
    environment: str | None = None


class AutomationResult(WireModel):
    """One result of the minimal automation report."""

    test_case_id: str
    status: str
    duration: int | None = None
    comment: str | None = None
    error_message: str | None = None
    stack_trace: str | None = None


class AutomationReport(WireModel):
    """Minimal automation report, accepted as-is by the one-call endpoint."""

    test_run_name: str
    environment: str
    description: str | None = None
    results: list[AutomationResult] = Field(default_factory=list)


# ============================================================================
# Response Schemas
# ============================================================================


class TestCaseResponse(WireModel):
    """Test case as returned by the registry."""

    __test__ = False

    id: str
    tc_id: str | None = None
    title: str = ""
    description: str | None = None
    priority: str | None = None
    status: str | None = None

    def to_remote(self) -> RemoteTestCase:
        return RemoteTestCase(
            registry_id=self.id,
            title=self.title,
            display_id=self.tc_id,
            description=self.description,
            priority=self.priority,
            status=self.status,
        )


class TestRunResponse(WireModel):
    """Test run as returned by the registry."""

    __test__ = False

    id: str
    name: str | None = None
    status: str | None = None
    environment: str | None = None
    started_at: str | None = None
    completed_at: str | None = None


class ExecutedBy(WireModel):
    id: str | None = None
    name: str | None = None
    email: str | None = None


class HistoryRun(WireModel):
    id: str | None = None
    name: str | None = None
    environment: str | None = None
    status: str | None = None


class TestCaseHistoryEntry(WireModel):
    """One historical execution of a test case."""

    __test__ = False

    id: str
    test_case_id: str | None = None
    test_run_id: str | None = None
    status: str | None = None
    duration: int | None = None
    comment: str | None = None
    error_message: str | None = None
    stack_trace: str | None = None
    executed_at: datetime | None = None
    executed_by: ExecutedBy | None = None
    test_run: HistoryRun | None = None


class ProcessedResult(WireModel):
    test_case_id: str | None = None
    status: str | None = None
    result_id: str | None = None


class AutomationError(WireModel):
    test_case_id: str | None = None
    error: str | None = None


class AutomationReportResponse(WireModel):
    """Response of the one-call automation-report endpoint."""

    test_run_id: str
    test_run_name: str | None = None
    environment: str | None = None
    processed_count: int = 0
    error_count: int = 0
    results: list[ProcessedResult] = Field(default_factory=list)
    errors: list[AutomationError] | None = None
