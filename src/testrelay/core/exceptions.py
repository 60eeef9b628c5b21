"""Shared exceptions for the testrelay package."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from testrelay.core.result import RegistryError


class TestRelayError(Exception):
    """Base class for import failures surfaced to callers."""

    __test__ = False


class ReportFileError(TestRelayError):
    """Report file is missing, unreadable or not UTF-8 text."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read report file {path}: {reason}")


class FormatUnrecognized(TestRelayError):
    """No registered parser accepted the input."""

    def __init__(self, detail: str = "no parser accepted the input") -> None:
        super().__init__(f"Unrecognized report format: {detail}")


class MissingRequiredField(TestRelayError):
    """A schema-required field is missing or blank."""

    def __init__(self, field: str, dialect: str = "minimal-json") -> None:
        self.field = field
        self.dialect = dialect
        super().__init__(f"Required field '{field}' is missing or empty ({dialect} report)")


class EmptyReport(TestRelayError):
    """The matched dialect extracted zero results."""

    def __init__(self, dialect: str) -> None:
        self.dialect = dialect
        super().__init__(f"No test results found in {dialect} report")


class NoResolvableTestCases(TestRelayError):
    """Every result failed identity resolution, so no run was created."""

    def __init__(self, result_count: int) -> None:
        self.result_count = result_count
        super().__init__(
            f"None of the {result_count} results could be mapped to a registry test case"
        )


class TransportFailure(TestRelayError):
    """A registry call failed at a step where the import cannot continue."""

    def __init__(self, step: str, error: RegistryError) -> None:
        self.step = step
        self.error = error
        super().__init__(f"Registry call '{step}' failed: {error}")


class PartialRecordFailure(TestRelayError):
    """Some, but not all, result-record calls failed.

    Informational: carried on the outcome next to a valid run id.
    """

    def __init__(self, failed_test_case_ids: list[str], total: int) -> None:
        self.failed_test_case_ids = list(failed_test_case_ids)
        self.total = total
        super().__init__(
            f"{len(self.failed_test_case_ids)} of {total} results could not be recorded"
        )


class InvalidRunTransition(TestRelayError, ValueError):
    """A test run was asked to move backwards or repeat a state."""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move test run from {current} to {requested}")
