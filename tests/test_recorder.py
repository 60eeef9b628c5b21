"""Tests for live recording from a test runner."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from testrelay.config import Settings
from testrelay.core.models import CanonicalStatus, RunState
from testrelay.recorder import RESULT_COMMENT, SuiteRecorder
from testrelay.sessions import SessionRegistry
from tests.factories import make_descriptor
from tests.fakes import FakeRegistryClient


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clients() -> dict[str, FakeRegistryClient]:
    """Fake registry per project id, filled as sessions are created."""
    return {}


@pytest.fixture
def sessions(settings: Settings, clients: dict[str, FakeRegistryClient]) -> SessionRegistry:
    def factory(project_settings: Settings) -> FakeRegistryClient:
        client = clients.setdefault(project_settings.project_id, FakeRegistryClient())
        return client

    return SessionRegistry(settings, client_factory=factory)


@pytest.fixture
def recorder(sessions: SessionRegistry) -> SuiteRecorder:
    return SuiteRecorder(sessions, suite_name="checkout-suite")


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    fake = FakeClock()
    monkeypatch.setattr("testrelay.recorder.time.monotonic", fake)
    return fake


class TestSuiteLifecycle:
    """Run creation and completion."""

    def test_start_suite_creates_started_run(
        self, recorder: SuiteRecorder, clients: dict[str, FakeRegistryClient]
    ) -> None:
        recorder.start_suite()

        fake = clients["proj-1"]
        (run,) = fake.runs.values()
        assert run.status == "IN_PROGRESS"
        assert run.request.name.startswith("Automated Test Run - checkout-suite - ")
        assert run.request.environment == "AUTOMATION"
        assert recorder.runs["proj-1"].state is RunState.STARTED

    def test_explicit_environment(
        self, sessions: SessionRegistry, clients: dict[str, FakeRegistryClient]
    ) -> None:
        SuiteRecorder(sessions, environment="staging").start_suite()

        (run,) = clients["proj-1"].runs.values()
        assert run.request.environment == "staging"

    def test_finish_suite_completes_and_closes(
        self, recorder: SuiteRecorder, clients: dict[str, FakeRegistryClient]
    ) -> None:
        recorder.start_suite()
        recorder.test_finished("t1", make_descriptor(project_id="proj-2"), CanonicalStatus.PASSED)

        recorder.finish_suite()

        assert clients["proj-1"].runs["run-1"].status == "COMPLETED"
        assert clients["proj-2"].runs["run-1"].status == "COMPLETED"
        assert clients["proj-1"].closed
        assert clients["proj-2"].closed
        assert recorder.runs == {}

    def test_complete_failure_still_closes(
        self, recorder: SuiteRecorder, clients: dict[str, FakeRegistryClient]
    ) -> None:
        recorder.start_suite()
        clients["proj-1"].fail("complete_test_run")

        recorder.finish_suite()

        assert clients["proj-1"].closed

    def test_run_creation_failure_is_logged_not_raised(
        self, recorder: SuiteRecorder, sessions: SessionRegistry
    ) -> None:
        sessions.get().fail("create_test_run")

        recorder.test_finished("t1", make_descriptor(), CanonicalStatus.PASSED)

        assert recorder.runs == {}

    def test_failed_run_creation_is_not_retried(
        self, recorder: SuiteRecorder, sessions: SessionRegistry
    ) -> None:
        # Given
        fake = sessions.get()
        fake.fail("create_test_run")

        # When
        recorder.start_suite()
        for index in range(3):
            descriptor = make_descriptor()
            recorder.test_started(f"t{index}", descriptor)
            recorder.test_finished(f"t{index}", descriptor, CanonicalStatus.PASSED)

        # Then
        assert fake.calls["create_test_run"] == 1
        assert fake.calls["record_result"] == 0
        assert fake.calls["search_test_cases"] == 0

    def test_failed_project_does_not_block_others(
        self, recorder: SuiteRecorder, sessions: SessionRegistry
    ) -> None:
        sessions.get().fail("create_test_run")
        other = sessions.get("proj-2")

        recorder.start_suite()
        recorder.test_finished("t1", make_descriptor(project_id="proj-2"), CanonicalStatus.PASSED)

        assert list(recorder.runs) == ["proj-2"]
        assert len(other.recorded("run-1")) == 1

    def test_run_creation_happens_outside_recorder_lock(
        self, recorder: SuiteRecorder, sessions: SessionRegistry
    ) -> None:
        """Other threads can read recorder state while a run is being created."""
        fake = sessions.get()
        observed: list[bool] = []
        original_create = fake.create_test_run

        def create_test_run(request):
            reader = threading.Thread(target=lambda: recorder.runs)
            reader.start()
            reader.join(timeout=2)
            observed.append(not reader.is_alive())
            return original_create(request)

        fake.create_test_run = create_test_run

        recorder.start_suite()

        assert observed == [True]
        assert "proj-1" in recorder.runs


class TestRecording:
    """Per-test result recording."""

    def test_records_duration_and_comment(
        self, recorder: SuiteRecorder, clients: dict[str, FakeRegistryClient], clock: FakeClock
    ) -> None:
        descriptor = make_descriptor()

        recorder.test_started("t1", descriptor)
        clock.now += 7.9
        recorder.test_finished("t1", descriptor, CanonicalStatus.PASSED, error_message="ignored")

        (record,) = clients["proj-1"].recorded("run-1")
        assert record.status == "PASSED"
        assert record.duration == 7
        assert record.comment == RESULT_COMMENT
        assert record.error_message is None

    def test_failure_carries_error(
        self, recorder: SuiteRecorder, clients: dict[str, FakeRegistryClient]
    ) -> None:
        recorder.test_finished(
            "t1",
            make_descriptor(),
            CanonicalStatus.FAILED,
            error_message="expected 3 items",
            stack_trace="Traceback ...",
        )

        (record,) = clients["proj-1"].recorded("run-1")
        assert record.error_message == "expected 3 items"
        assert record.stack_trace == "Traceback ..."
        assert record.duration is None

    def test_second_report_for_key_is_ignored(
        self, recorder: SuiteRecorder, clients: dict[str, FakeRegistryClient]
    ) -> None:
        descriptor = make_descriptor()

        recorder.test_finished("t1", descriptor, CanonicalStatus.FAILED)
        recorder.test_finished("t1", descriptor, CanonicalStatus.PASSED)

        (record,) = clients["proj-1"].recorded("run-1")
        assert record.status == "FAILED"

    def test_test_without_descriptor_is_skipped(
        self, recorder: SuiteRecorder, clients: dict[str, FakeRegistryClient]
    ) -> None:
        recorder.test_started("t1", None)
        recorder.test_finished("t1", None, CanonicalStatus.PASSED)

        assert clients == {}

    def test_existing_test_case_is_reused(
        self, recorder: SuiteRecorder, sessions: SessionRegistry
    ) -> None:
        fake = sessions.get()
        case = fake.add_case("Checkout completes")

        recorder.test_finished("t1", make_descriptor(), CanonicalStatus.PASSED)

        (record,) = fake.recorded("run-1")
        assert record.test_case_id == case.registry_id
        assert fake.calls["create_test_case"] == 0
        assert recorder.runs["proj-1"].test_case_ids == [case.registry_id]

    def test_unresolvable_test_is_dropped(
        self, recorder: SuiteRecorder, sessions: SessionRegistry
    ) -> None:
        fake = sessions.get()
        fake.fail("search_test_cases", "create_test_case")

        recorder.test_finished("t1", make_descriptor(), CanonicalStatus.PASSED)

        assert fake.recorded("run-1") == []

    def test_concurrent_tests_share_one_run(
        self, recorder: SuiteRecorder, sessions: SessionRegistry
    ) -> None:
        fake = sessions.get()
        for index in range(20):
            fake.add_case(f"Case {index}", registry_id=f"case-{index}")

        def run_test(index: int) -> None:
            descriptor = make_descriptor(test_case_id=f"case-{index}")
            recorder.test_started(f"t{index}", descriptor)
            recorder.test_finished(f"t{index}", descriptor, CanonicalStatus.PASSED)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(run_test, range(20)))

        assert list(fake.runs) == ["run-1"]
        recorded = {record.test_case_id for record in fake.recorded("run-1")}
        assert recorded == {f"case-{index}" for index in range(20)}
