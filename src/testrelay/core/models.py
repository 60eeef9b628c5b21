"""Canonical data model shared by parsers, resolver and orchestrator.

Every report dialect is reduced to a ``ReportHeader`` plus a list of
``NormalizedResult`` records. The resolver maps results onto
``RemoteTestCase`` identities and the orchestrator drives a ``TestRun``
through its lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from testrelay.core.exceptions import InvalidRunTransition

if TYPE_CHECKING:
    from testrelay.registry.schemas import AutomationReport


class CanonicalStatus(Enum):
    """Engine-internal execution outcome."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    BLOCKED = "BLOCKED"
    RETEST = "RETEST"


class Priority(Enum):
    """Priority assigned to test cases created on a miss."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class TestCaseStatus(Enum):
    """Lifecycle status of a registry test case."""

    __test__ = False

    ACTIVE = "ACTIVE"


class RunState(Enum):
    """Lifecycle state of a test run. Transitions only move forward."""

    CREATED = "CREATED"
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"


_RUN_STATE_ORDER = {RunState.CREATED: 0, RunState.STARTED: 1, RunState.COMPLETED: 2}


def clean_text(value: Any) -> str | None:
    """Return stripped text, or None for missing/blank values."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class ReportHeader:
    """Provenance metadata of a parsed report."""

    source: str | None = None
    project_name: str | None = None
    generated_at: str | None = None
    started_at: str | None = None
    os: str | None = None
    browser: str | None = None
    environment_url: str | None = None
    environment: str | None = None
    build_id: str | None = None
    triggered_by: str | None = None
    execution_profile: str | None = None
    run_name: str | None = None
    description: str | None = None

    @property
    def environment_label(self) -> str | None:
        """Run environment: explicit label, else ``browser - url``."""
        if clean_text(self.environment):
            return clean_text(self.environment)
        parts = [p for p in (clean_text(self.browser), clean_text(self.environment_url)) if p]
        return " - ".join(parts) if parts else None

    @property
    def environment_summary(self) -> str | None:
        """Human summary used in test case descriptions (``browser on os``)."""
        browser = clean_text(self.browser)
        os_name = clean_text(self.os)
        if browser and os_name:
            return f"{browser} on {os_name}"
        return browser or os_name


@dataclass(frozen=True)
class NormalizedResult:
    """One test execution in canonical form."""

    name: str
    status: CanonicalStatus
    local_id: str | None = None
    class_name: str | None = None
    duration_seconds: int | None = None
    tags: tuple[str, ...] = ()
    error_message: str | None = None
    stack_trace: str | None = None
    comment: str | None = None

    @classmethod
    def build(
        cls,
        name: Any,
        status: CanonicalStatus,
        local_id: Any = None,
        class_name: Any = None,
        duration_seconds: int | None = None,
        tags: list[str] | tuple[str, ...] | None = None,
        error_message: Any = None,
        stack_trace: Any = None,
        comment: Any = None,
    ) -> NormalizedResult | None:
        """Build a result, or return None when the row has no usable name.

        Reports routinely contain decorative rows, so a blank name is a
        discard rather than an error.
        """
        clean_name = clean_text(name)
        if clean_name is None:
            return None

        if duration_seconds is not None and duration_seconds < 0:
            duration_seconds = None

        unique_tags: list[str] = []
        for tag in tags or ():
            tag_text = clean_text(tag)
            if tag_text and tag_text not in unique_tags:
                unique_tags.append(tag_text)

        failed = status is CanonicalStatus.FAILED
        return cls(
            name=clean_name,
            status=status,
            local_id=clean_text(local_id),
            class_name=clean_text(class_name),
            duration_seconds=duration_seconds,
            tags=tuple(unique_tags),
            error_message=clean_text(error_message) if failed else None,
            stack_trace=clean_text(stack_trace) if failed else None,
            comment=clean_text(comment),
        )

    @property
    def creation_title(self) -> str:
        """Title used when the registry has to create this test case."""
        if self.local_id and self.local_id != self.name:
            return f"{self.local_id} - {self.name}"
        return self.name


@dataclass
class ParsedReport:
    """Output of a report parser."""

    dialect: str
    header: ReportHeader = field(default_factory=ReportHeader)
    results: list[NormalizedResult] = field(default_factory=list)
    automation_report: AutomationReport | None = None

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return self._count(CanonicalStatus.PASSED)

    @property
    def failed(self) -> int:
        return self._count(CanonicalStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(CanonicalStatus.SKIPPED)

    def _count(self, status: CanonicalStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "dialect": self.dialect,
            "header": {k: v for k, v in vars(self.header).items() if v is not None},
            "summary": {
                "total": self.total,
                "passed": self.passed,
                "failed": self.failed,
                "skipped": self.skipped,
            },
            "results": [
                {
                    "local_id": r.local_id,
                    "name": r.name,
                    "class_name": r.class_name,
                    "status": r.status.value,
                    "duration_seconds": r.duration_seconds,
                    "tags": list(r.tags),
                    "error_message": r.error_message,
                }
                for r in self.results
            ],
        }


@dataclass(frozen=True)
class RemoteTestCase:
    """Test case identity as known by the registry."""

    registry_id: str
    title: str = ""
    display_id: str | None = None
    description: str | None = None
    priority: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class TestCaseDraft:
    """Content of a test case the registry is asked to create."""

    __test__ = False

    title: str
    description: str | None = None
    priority: Priority = Priority.MEDIUM
    status: TestCaseStatus = TestCaseStatus.ACTIVE


@dataclass
class TestRun:
    """A single import session against the registry."""

    __test__ = False

    registry_id: str
    name: str
    description: str | None = None
    environment: str | None = None
    test_case_ids: list[str] = field(default_factory=list)
    state: RunState = RunState.CREATED

    def advance(self, state: RunState) -> None:
        """Move the run forward. Reopening or repeating a state is rejected."""
        if _RUN_STATE_ORDER[state] <= _RUN_STATE_ORDER[self.state]:
            raise InvalidRunTransition(self.state.value, state.value)
        self.state = state


@dataclass(frozen=True)
class TestDescriptor:
    """Per-test metadata supplied by a test-runner integration."""

    __test__ = False

    test_case_id: str | None = None
    title: str | None = None
    description: str | None = None
    priority: Priority = Priority.MEDIUM
    project_id: str | None = None
