"""Import facade: report file in, registry test run out.

Usage:
    with HttpRegistryClient(settings) as client:
        outcome = ReportImporter(client).import_file("target/report.json")
        if outcome.ok:
            print(outcome.run_id)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from testrelay.core.exceptions import (
    EmptyReport,
    FormatUnrecognized,
    PartialRecordFailure,
    ReportFileError,
    TestRelayError,
    TransportFailure,
)
from testrelay.logging import bind_import_context, get_logger, import_context
from testrelay.orchestrator import DEFAULT_ENVIRONMENT, RunOrchestrator, RunOutcome
from testrelay.reports import ParserRegistry, ReportInput, get_default_registry

if TYPE_CHECKING:
    from testrelay.core.models import ParsedReport
    from testrelay.registry.client import RegistryClient
    from testrelay.registry.schemas import AutomationReportResponse

logger = get_logger(__name__)

DIRECT_DIALECT = "minimal-json"


@dataclass
class ImportOutcome:
    """Result of one import.

    ``run_id`` is set whenever a run was created, even if some results could
    not be recorded. ``error`` holds the typed failure when no run exists.
    """

    run_id: str | None = None
    dialect: str | None = None
    error: TestRelayError | None = None
    run_outcome: RunOutcome | None = None
    direct_response: AutomationReportResponse | None = None

    @property
    def ok(self) -> bool:
        return self.run_id is not None

    @property
    def partial_failure(self) -> PartialRecordFailure | None:
        """Records that could not be written to an otherwise created run."""
        return self.run_outcome.partial_failure if self.run_outcome else None

    def raise_for_error(self) -> None:
        """Raise the recorded failure, if any."""
        if self.error is not None:
            raise self.error


def read_report_file(path: str | Path) -> str:
    """Read a report as UTF-8 text.

    Raises:
        ReportFileError: If the file is missing, unreadable or not UTF-8.
    """
    report_path = Path(path)
    if not report_path.is_file():
        raise ReportFileError(str(path), "file does not exist")
    try:
        return report_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ReportFileError(str(path), f"not valid UTF-8 ({e.reason})") from e
    except OSError as e:
        raise ReportFileError(str(path), e.strerror or str(e)) from e


class ReportImporter:
    """Parse reports and replay them against the registry."""

    def __init__(
        self,
        client: RegistryClient,
        parsers: ParserRegistry | None = None,
        orchestrator: RunOrchestrator | None = None,
        default_environment: str = DEFAULT_ENVIRONMENT,
    ):
        """Initialize the importer.

        Args:
            client: Registry client.
            parsers: Dialect registry (defaults to all built-in dialects).
            orchestrator: Run orchestrator (defaults to one over ``client``).
            default_environment: Run environment when the report names none.

        Raises:
            ValueError: If client is None.
        """
        if client is None:
            raise ValueError("Registry client cannot be None")
        self.client = client
        self.parsers = parsers or get_default_registry()
        self.orchestrator = orchestrator or RunOrchestrator(
            client, default_environment=default_environment
        )

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse_file(self, path: str | Path) -> ParsedReport:
        """Read and parse a report file."""
        text = read_report_file(path)
        return self.parse_content(text, filename=Path(path).name)

    def parse_content(self, text: str, filename: str | None = None) -> ParsedReport:
        """Detect the dialect and parse report text.

        Raises:
            FormatUnrecognized: If no dialect matches.
            MissingRequiredField: If the minimal schema lacks a required field.
            EmptyReport: If the matched dialect yields no results.
        """
        if not text or not text.strip():
            raise FormatUnrecognized("report is empty")
        report = self.parsers.parse(ReportInput(text, filename))
        if not report.results:
            raise EmptyReport(report.dialect)
        logger.info(
            "report_parsed",
            dialect=report.dialect,
            total=report.total,
            passed=report.passed,
            failed=report.failed,
            skipped=report.skipped,
        )
        return report

    # ------------------------------------------------------------------
    # Local reconciliation
    # ------------------------------------------------------------------

    def import_file(self, path: str | Path) -> ImportOutcome:
        """Import a report file. Never raises for ordinary failures."""
        with import_context(source=str(path)):
            try:
                text = read_report_file(path)
            except ReportFileError as e:
                return self._failed(e)
            return self._import(text, Path(path).name)

    def import_content(self, text: str, filename: str | None = None) -> ImportOutcome:
        """Import report text. Never raises for ordinary failures."""
        with import_context(source=filename or "<content>"):
            return self._import(text, filename)

    def _import(self, text: str, filename: str | None) -> ImportOutcome:
        try:
            report = self.parse_content(text, filename)
        except TestRelayError as e:
            return self._failed(e)

        bind_import_context(dialect=report.dialect)
        try:
            run_outcome = self.orchestrator.execute(report)
        except TestRelayError as e:
            return self._failed(e, dialect=report.dialect)

        logger.info("import_completed", run_id=run_outcome.run_id, dialect=report.dialect)
        return ImportOutcome(
            run_id=run_outcome.run_id,
            dialect=report.dialect,
            run_outcome=run_outcome,
        )

    # ------------------------------------------------------------------
    # One-call remote import
    # ------------------------------------------------------------------

    def import_direct_file(self, path: str | Path) -> ImportOutcome:
        """Import a minimal-schema report file through the one-call endpoint."""
        with import_context(source=str(path), mode="direct"):
            try:
                text = read_report_file(path)
            except ReportFileError as e:
                return self._failed(e)
            return self._import_direct(text, Path(path).name)

    def import_direct(self, text: str, filename: str | None = None) -> ImportOutcome:
        """Import minimal-schema report text through the one-call endpoint.

        The registry resolves test cases and records results itself, so the
        local resolver and orchestrator are bypassed.
        """
        with import_context(source=filename or "<content>", mode="direct"):
            return self._import_direct(text, filename)

    def _import_direct(self, text: str, filename: str | None) -> ImportOutcome:
        try:
            report = self.parse_content(text, filename)
            if report.dialect != DIRECT_DIALECT or report.automation_report is None:
                raise FormatUnrecognized(
                    f"direct import requires a {DIRECT_DIALECT} report, got {report.dialect}"
                )
        except TestRelayError as e:
            return self._failed(e)

        result = self.client.import_automation_report(report.automation_report)
        if not result.ok:
            return self._failed(
                TransportFailure("import_automation_report", result), dialect=report.dialect
            )

        response = result.value
        logger.info(
            "direct_import_completed",
            run_id=response.test_run_id,
            processed=response.processed_count,
            errors=response.error_count,
        )
        return ImportOutcome(
            run_id=response.test_run_id,
            dialect=report.dialect,
            direct_response=response,
        )

    def _failed(self, error: TestRelayError, dialect: str | None = None) -> ImportOutcome:
        logger.error("import_failed", error_type=type(error).__name__, error=str(error))
        return ImportOutcome(dialect=dialect, error=error)
