"""Tests for the import facade."""

from __future__ import annotations

from pathlib import Path

import pytest

from testrelay.core.exceptions import (
    EmptyReport,
    FormatUnrecognized,
    MissingRequiredField,
    NoResolvableTestCases,
    ReportFileError,
    TransportFailure,
)
from testrelay.importer import ReportImporter, read_report_file
from tests.factories import minimal_report_json, rich_report_json
from tests.fakes import FakeRegistryClient


@pytest.fixture
def importer(fake_client: FakeRegistryClient) -> ReportImporter:
    return ReportImporter(fake_client)


class TestReadReportFile:
    """Tests for read_report_file."""

    def test_reads_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "report.json"
        path.write_text('{"name": "Zażółć"}', encoding="utf-8")
        assert "Zażółć" in read_report_file(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ReportFileError) as exc_info:
            read_report_file(tmp_path / "nope.json")
        assert "does not exist" in exc_info.value.reason

    def test_directory_is_not_a_report(self, tmp_path: Path) -> None:
        with pytest.raises(ReportFileError):
            read_report_file(tmp_path)

    def test_not_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "report.html"
        path.write_bytes(b"<html>\xff\xfe\xfa</html>")
        with pytest.raises(ReportFileError) as exc_info:
            read_report_file(path)
        assert "UTF-8" in exc_info.value.reason


class TestParseContent:
    """Parsing errors surfaced by the facade."""

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty_input(self, importer: ReportImporter, text: str) -> None:
        with pytest.raises(FormatUnrecognized):
            importer.parse_content(text)

    def test_no_results(self, importer: ReportImporter) -> None:
        with pytest.raises(EmptyReport) as exc_info:
            importer.parse_content(minimal_report_json(results=[]))
        assert exc_info.value.dialect == "minimal-json"

    def test_parse_file(self, importer: ReportImporter, tmp_path: Path) -> None:
        path = tmp_path / "rich.json"
        path.write_text(rich_report_json(), encoding="utf-8")

        report = importer.parse_file(path)

        assert report.dialect == "rich-json"
        assert report.total == 2


class TestImport:
    """Tests for import_file and import_content."""

    def test_import_file(
        self, importer: ReportImporter, fake_client: FakeRegistryClient, tmp_path: Path
    ) -> None:
        path = tmp_path / "report.json"
        path.write_text(minimal_report_json(), encoding="utf-8")

        outcome = importer.import_file(path)

        assert outcome.ok
        assert outcome.run_id == "run-1"
        assert outcome.dialect == "minimal-json"
        assert outcome.error is None
        assert outcome.partial_failure is None
        assert len(fake_client.recorded("run-1")) == 1

    def test_missing_file_is_an_outcome(self, importer: ReportImporter, tmp_path: Path) -> None:
        outcome = importer.import_file(tmp_path / "missing.json")

        assert not outcome.ok
        assert isinstance(outcome.error, ReportFileError)
        with pytest.raises(ReportFileError):
            outcome.raise_for_error()

    @pytest.mark.parametrize(
        "text,error_type",
        [
            ("just some words", FormatUnrecognized),
            (minimal_report_json(environment=None), MissingRequiredField),
            (minimal_report_json(results=[]), EmptyReport),
        ],
    )
    def test_parse_failures(self, importer: ReportImporter, text: str, error_type: type) -> None:
        outcome = importer.import_content(text, "report.txt")

        assert outcome.run_id is None
        assert isinstance(outcome.error, error_type)

    def test_nothing_resolvable(
        self, importer: ReportImporter, fake_client: FakeRegistryClient
    ) -> None:
        fake_client.fail("get_test_case", "search_test_cases", "create_test_case")

        outcome = importer.import_content(minimal_report_json(), "report.json")

        assert outcome.run_id is None
        assert outcome.dialect == "minimal-json"
        assert isinstance(outcome.error, NoResolvableTestCases)

    def test_partial_failure_keeps_run_id(
        self, importer: ReportImporter, fake_client: FakeRegistryClient
    ) -> None:
        fake_client.failing_records.add("case-2")

        outcome = importer.import_content(rich_report_json(), "report.json")

        assert outcome.ok
        assert outcome.error is None
        assert outcome.partial_failure.failed_test_case_ids == ["case-2"]
        outcome.raise_for_error()

    def test_client_required(self) -> None:
        with pytest.raises(ValueError):
            ReportImporter(None)


class TestDirectImport:
    """Tests for the one-call import path."""

    def test_minimal_report(
        self, importer: ReportImporter, fake_client: FakeRegistryClient
    ) -> None:
        fake_client.add_case("Login", registry_id="tc1")

        outcome = importer.import_direct(minimal_report_json(), "report.json")

        assert outcome.run_id == "direct-run-1"
        assert outcome.direct_response.processed_count == 1
        (report,) = fake_client.direct_reports
        assert report.test_run_name == "Nightly"
        assert fake_client.calls["create_test_run"] == 0

    def test_rich_report_rejected(
        self, importer: ReportImporter, fake_client: FakeRegistryClient
    ) -> None:
        outcome = importer.import_direct(rich_report_json(), "report.json")

        assert isinstance(outcome.error, FormatUnrecognized)
        assert fake_client.calls["import_automation_report"] == 0

    def test_transport_failure(
        self, importer: ReportImporter, fake_client: FakeRegistryClient
    ) -> None:
        fake_client.fail("import_automation_report")

        outcome = importer.import_direct(minimal_report_json(), "report.json")

        assert isinstance(outcome.error, TransportFailure)
        assert outcome.error.step == "import_automation_report"

    def test_direct_file(
        self, importer: ReportImporter, fake_client: FakeRegistryClient, tmp_path: Path
    ) -> None:
        path = tmp_path / "report.json"
        path.write_text(minimal_report_json(), encoding="utf-8")

        outcome = importer.import_direct_file(path)

        assert outcome.ok
        assert outcome.direct_response.error_count == 1
