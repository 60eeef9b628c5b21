"""Test run lifecycle orchestration.

Replays a parsed report against the registry:

    resolve test cases -> create run -> start -> record each result -> complete

Registry calls return ``Ok | RegistryError``; ``FailurePolicy`` is the single
place that decides whether a failed step aborts the import. Only run creation
aborts. Once a run exists, every later failure is logged and the run id is
still returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from testrelay.core.exceptions import NoResolvableTestCases, PartialRecordFailure, TransportFailure
from testrelay.core.models import (
    CanonicalStatus,
    NormalizedResult,
    ParsedReport,
    ReportHeader,
    RunState,
    TestRun,
    clean_text,
)
from testrelay.logging import bind_import_context, get_logger
from testrelay.registry.schemas import CreateTestRunRequest, RecordResultRequest
from testrelay.resolver import TestCaseResolver

if TYPE_CHECKING:
    from testrelay.core.result import Result
    from testrelay.registry.client import RegistryClient

logger = get_logger(__name__)

DEFAULT_RUN_NAME = "Automated Test Run"
DEFAULT_ENVIRONMENT = "AUTOMATION"
DEFAULT_SOURCE = "external report"


class RunStep(Enum):
    """Registry-facing steps of one import."""

    RESOLVE = "resolve"
    CREATE_RUN = "create_run"
    START = "start"
    RECORD = "record"
    COMPLETE = "complete"


class FailurePolicy:
    """Map a failed registry call to continue or abort."""

    abort_steps: frozenset[RunStep] = frozenset({RunStep.CREATE_RUN})

    def check(self, step: RunStep, result: Result, **context: object) -> bool:
        """Return True when the call succeeded, False when the import continues.

        Raises:
            TransportFailure: If the step cannot be recovered from.
        """
        if result.ok:
            return True
        if step in self.abort_steps:
            logger.error("run_step_aborted", step=step.value, error=str(result), **context)
            raise TransportFailure(step.value, result)
        logger.warning(
            "run_step_failed",
            step=step.value,
            kind=result.kind.value,
            status_code=result.status_code,
            error=result.message,
            **context,
        )
        return False


@dataclass
class RunOutcome:
    """What happened to one test run."""

    run: TestRun
    recorded: list[str] = field(default_factory=list)
    failed_records: list[str] = field(default_factory=list)
    skipped_results: int = 0
    started: bool = False
    completed: bool = False
    partial_failure: PartialRecordFailure | None = None

    @property
    def run_id(self) -> str:
        return self.run.registry_id


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def build_run_name(header: ReportHeader, now: str | None = None) -> str:
    """Test run name for a parsed report.

    An explicit run name is used verbatim. Otherwise ``build - profile``, else
    the project name, else a default name; a timestamp is appended when known
    and the default name always gets one.
    """
    explicit = clean_text(header.run_name)
    if explicit:
        return explicit

    build_id = clean_text(header.build_id)
    profile = clean_text(header.execution_profile)
    if build_id or profile:
        base = " - ".join(part for part in (build_id, profile) if part)
        is_default = False
    elif clean_text(header.project_name):
        base = clean_text(header.project_name)
        is_default = False
    else:
        base = DEFAULT_RUN_NAME
        is_default = True

    stamp = clean_text(header.started_at) or clean_text(header.generated_at)
    if stamp is None and is_default:
        stamp = now or _utc_now_iso()
    return f"{base} - {stamp}" if stamp else base


def build_run_description(header: ReportHeader) -> str:
    """Description for a run: the explicit one, else the import provenance."""
    description = clean_text(header.description)
    if description is None:
        source = clean_text(header.source) or DEFAULT_SOURCE
        description = f"Automated test execution imported from {source}"
    triggered_by = clean_text(header.triggered_by)
    if triggered_by:
        description += f"\nTriggered by: {triggered_by}"
    return description


def build_record_request(result: NormalizedResult, test_case_id: str) -> RecordResultRequest:
    """Record request for one result. Error fields are sent only for failures."""
    comment = result.comment
    if comment is None and result.tags:
        comment = f"Tags: {', '.join(result.tags)}"
    failed = result.status is CanonicalStatus.FAILED
    return RecordResultRequest(
        test_case_id=test_case_id,
        status=result.status.value,
        duration=result.duration_seconds,
        comment=comment,
        error_message=result.error_message if failed else None,
        stack_trace=result.stack_trace if failed else None,
    )


class RunOrchestrator:
    """Drive one test run through its lifecycle for a parsed report."""

    def __init__(
        self,
        client: RegistryClient,
        resolver: TestCaseResolver | None = None,
        policy: FailurePolicy | None = None,
        default_environment: str = DEFAULT_ENVIRONMENT,
    ):
        if client is None:
            raise ValueError("Registry client cannot be None")
        self.client = client
        self.resolver = resolver or TestCaseResolver(client)
        self.policy = policy or FailurePolicy()
        self.default_environment = default_environment

    def execute(self, report: ParsedReport) -> RunOutcome:
        """Replay ``report`` as a test run.

        Raises:
            NoResolvableTestCases: If no result maps to a registry test case.
            TransportFailure: If the run could not be created.
        """
        header = report.header

        resolved: list[str | None] = []
        test_case_ids: list[str] = []
        for result in report.results:
            test_case_id = self.resolver.resolve_result(result, header)
            resolved.append(test_case_id)
            if test_case_id is None:
                logger.warning(
                    "result_unresolved",
                    step=RunStep.RESOLVE.value,
                    test_name=result.name,
                    local_id=result.local_id,
                )
            elif test_case_id not in test_case_ids:
                test_case_ids.append(test_case_id)

        if not test_case_ids:
            raise NoResolvableTestCases(len(report.results))

        request = CreateTestRunRequest(
            name=build_run_name(header),
            description=build_run_description(header),
            environment=header.environment_label or self.default_environment,
            test_case_ids=test_case_ids,
        )
        created = self.client.create_test_run(request)
        self.policy.check(RunStep.CREATE_RUN, created, name=request.name)

        run = TestRun(
            registry_id=created.value,
            name=request.name,
            description=request.description,
            environment=request.environment,
            test_case_ids=test_case_ids,
        )
        bind_import_context(run_id=run.registry_id)
        outcome = RunOutcome(run=run)

        started = self.client.start_test_run(run.registry_id)
        if self.policy.check(RunStep.START, started, run_id=run.registry_id):
            run.advance(RunState.STARTED)
            outcome.started = True

        for result, test_case_id in zip(report.results, resolved):
            if test_case_id is None:
                outcome.skipped_results += 1
                continue
            recorded = self.client.record_result(
                run.registry_id, build_record_request(result, test_case_id)
            )
            if self.policy.check(RunStep.RECORD, recorded, test_case_id=test_case_id):
                outcome.recorded.append(test_case_id)
            else:
                outcome.failed_records.append(test_case_id)

        completed = self.client.complete_test_run(run.registry_id)
        if self.policy.check(RunStep.COMPLETE, completed, run_id=run.registry_id):
            run.advance(RunState.COMPLETED)
            outcome.completed = True

        if outcome.failed_records and outcome.recorded:
            total = len(outcome.recorded) + len(outcome.failed_records)
            outcome.partial_failure = PartialRecordFailure(outcome.failed_records, total)

        logger.info(
            "test_run_imported",
            run_id=run.registry_id,
            recorded=len(outcome.recorded),
            failed=len(outcome.failed_records),
            skipped=outcome.skipped_results,
            completed=outcome.completed,
        )
        return outcome
