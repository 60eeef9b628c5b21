"""Live recording of test results from a test-runner integration.

A runner plugin calls the recorder as tests execute::

    recorder = SuiteRecorder(SessionRegistry(settings))
    recorder.start_suite()
    recorder.test_started("tests/test_login.py::test_ok", descriptor)
    recorder.test_finished("tests/test_login.py::test_ok", descriptor, CanonicalStatus.PASSED)
    recorder.finish_suite()

One test run is created lazily per project the first time a test of that
project starts or finishes, and every run is completed when the suite ends.
"""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from testrelay.core.models import CanonicalStatus, RunState, TestDescriptor, TestRun, clean_text
from testrelay.logging import get_logger
from testrelay.orchestrator import DEFAULT_ENVIRONMENT, FailurePolicy, RunStep
from testrelay.registry.schemas import CreateTestRunRequest, RecordResultRequest
from testrelay.resolver import TestCaseResolver

if TYPE_CHECKING:
    from testrelay.registry.client import RegistryClient
    from testrelay.sessions import SessionRegistry

logger = get_logger(__name__)

RUN_DESCRIPTION = "Automated test execution recorded live from the test runner"
RESULT_COMMENT = "Automated test execution recorded by testrelay"


class SuiteRecorder:
    """Record per-test outcomes into one registry test run per project."""

    def __init__(
        self,
        sessions: SessionRegistry,
        environment: str | None = None,
        suite_name: str = "suite",
    ):
        self.sessions = sessions
        self.environment = (
            clean_text(environment)
            or clean_text(sessions.settings.environment)
            or DEFAULT_ENVIRONMENT
        )
        self.suite_name = suite_name
        self.policy = FailurePolicy()

        self._lock = threading.Lock()
        self._project_locks: dict[str, threading.Lock] = {}
        self._failed_projects: set[str] = set()
        self._runs: dict[str, TestRun] = {}
        self._resolvers: dict[str, TestCaseResolver] = {}
        self._start_times: dict[str, float] = {}
        self._case_ids: dict[str, str] = {}
        self._processed: set[str] = set()

    # ------------------------------------------------------------------
    # Suite lifecycle
    # ------------------------------------------------------------------

    def start_suite(self) -> None:
        """Create and start the run for the default project."""
        self._run_for(self.sessions.default_project_id)

    def finish_suite(self) -> None:
        """Complete every run, close all sessions and reset bookkeeping."""
        try:
            with self._lock:
                runs = list(self._runs.items())
            for project_id, run in runs:
                if run.state is RunState.COMPLETED:
                    continue
                client = self.sessions.get(project_id)
                completed = client.complete_test_run(run.registry_id)
                if self.policy.check(RunStep.COMPLETE, completed, run_id=run.registry_id):
                    run.advance(RunState.COMPLETED)
                    logger.info("test_run_completed", run_id=run.registry_id, project_id=project_id)
        finally:
            self.sessions.close_all()
            with self._lock:
                self._runs.clear()
                self._project_locks.clear()
                self._failed_projects.clear()
                self._resolvers.clear()
                self._start_times.clear()
                self._case_ids.clear()
                self._processed.clear()

    @property
    def runs(self) -> dict[str, TestRun]:
        """Runs created so far, keyed by project id."""
        with self._lock:
            return dict(self._runs)

    # ------------------------------------------------------------------
    # Per-test events
    # ------------------------------------------------------------------

    def test_started(self, key: str, descriptor: TestDescriptor | None) -> None:
        """Remember the start time and resolve the test case early."""
        if descriptor is None:
            return
        with self._lock:
            self._start_times[key] = time.monotonic()
        if self._run_for(descriptor.project_id) is None:
            return
        self._case_id_for(key, descriptor)

    def test_finished(
        self,
        key: str,
        descriptor: TestDescriptor | None,
        status: CanonicalStatus,
        error_message: str | None = None,
        stack_trace: str | None = None,
    ) -> None:
        """Record the outcome of a test. A second report for the same key is ignored."""
        if descriptor is None:
            logger.debug("test_without_descriptor_skipped", key=key)
            return
        with self._lock:
            if key in self._processed:
                return
            self._processed.add(key)
            started_at = self._start_times.get(key)

        run = self._run_for(descriptor.project_id)
        if run is None:
            return
        test_case_id = self._case_id_for(key, descriptor)
        if test_case_id is None:
            logger.warning("test_case_unresolved", key=key)
            return

        duration = int(time.monotonic() - started_at) if started_at is not None else None
        failed = status is CanonicalStatus.FAILED
        request = RecordResultRequest(
            test_case_id=test_case_id,
            status=status.value,
            duration=duration,
            comment=RESULT_COMMENT,
            error_message=clean_text(error_message) if failed else None,
            stack_trace=clean_text(stack_trace) if failed else None,
        )
        client = self.sessions.get(descriptor.project_id)
        recorded = client.record_result(run.registry_id, request)
        self.policy.check(RunStep.RECORD, recorded, test_case_id=test_case_id, key=key)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _project_key(self, project_id: str | None) -> str:
        return clean_text(project_id) or self.sessions.default_project_id

    def _run_for(self, project_id: str | None) -> TestRun | None:
        """Return the project's run, creating and starting it on first use.

        Creation is attempted once per project. After a failed attempt the
        project's tests are not recorded. Registry calls happen under the
        project's own lock, so other projects keep recording meanwhile.
        """
        project = self._project_key(project_id)
        with self._lock:
            if project in self._runs or project in self._failed_projects:
                return self._runs.get(project)
            project_lock = self._project_locks.setdefault(project, threading.Lock())

        with project_lock:
            with self._lock:
                if project in self._runs or project in self._failed_projects:
                    return self._runs.get(project)

            client = self.sessions.get(project)
            run = self._create_run(project, client)
            with self._lock:
                if run is None:
                    self._failed_projects.add(project)
                else:
                    self._runs[project] = run
                    self._resolvers[project] = TestCaseResolver(client)
            return run

    def _create_run(self, project: str, client: RegistryClient) -> TestRun | None:
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        request = CreateTestRunRequest(
            name=f"Automated Test Run - {self.suite_name} - {stamp}",
            description=RUN_DESCRIPTION,
            environment=self.environment,
        )
        created = client.create_test_run(request)
        if not created.ok:
            logger.error("test_run_create_failed", project_id=project, error=str(created))
            return None

        run = TestRun(
            registry_id=created.value,
            name=request.name,
            description=request.description,
            environment=request.environment,
        )
        started = client.start_test_run(run.registry_id)
        if self.policy.check(RunStep.START, started, run_id=run.registry_id):
            run.advance(RunState.STARTED)
        logger.info("test_run_started", run_id=run.registry_id, project_id=project)
        return run

    def _case_id_for(self, key: str, descriptor: TestDescriptor) -> str | None:
        with self._lock:
            cached = self._case_ids.get(key)
            resolver = self._resolvers.get(self._project_key(descriptor.project_id))
        if cached is not None:
            return cached
        if resolver is None:
            return None

        test_case_id = resolver.resolve_descriptor(descriptor, test_name=key)
        if test_case_id is not None:
            with self._lock:
                self._case_ids.setdefault(key, test_case_id)
                test_case_id = self._case_ids[key]
                run = self._runs.get(self._project_key(descriptor.project_id))
                if run is not None and test_case_id not in run.test_case_ids:
                    run.test_case_ids.append(test_case_id)
        return test_case_id
