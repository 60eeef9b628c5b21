"""Output formatters for the testrelay CLI."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from testrelay.core.models import ParsedReport
    from testrelay.importer import ImportOutcome


def outcome_to_dict(outcome: ImportOutcome) -> dict[str, Any]:
    """Convert an import outcome to a JSON-ready dictionary."""
    data: dict[str, Any] = {
        "ok": outcome.ok,
        "run_id": outcome.run_id,
        "dialect": outcome.dialect,
        "error": str(outcome.error) if outcome.error else None,
        "error_type": type(outcome.error).__name__ if outcome.error else None,
    }
    run = outcome.run_outcome
    if run is not None:
        data["run"] = {
            "name": run.run.name,
            "environment": run.run.environment,
            "state": run.run.state.value,
            "recorded": len(run.recorded),
            "failed_records": run.failed_records,
            "skipped_results": run.skipped_results,
        }
    direct = outcome.direct_response
    if direct is not None:
        data["direct"] = {
            "test_run_name": direct.test_run_name,
            "processed_count": direct.processed_count,
            "error_count": direct.error_count,
            "errors": [e.model_dump() for e in direct.errors or []],
        }
    return data


def format_outcome_json(outcome: ImportOutcome) -> str:
    return json.dumps(outcome_to_dict(outcome), indent=2)


def format_outcome_text(outcome: ImportOutcome) -> str:
    """Format an import outcome for a terminal."""
    if not outcome.ok:
        return f"Import failed: {outcome.error}"

    lines = [f"Test run: {outcome.run_id}"]
    if outcome.dialect:
        lines.append(f"Format: {outcome.dialect}")

    run = outcome.run_outcome
    if run is not None:
        lines.append(f"Name: {run.run.name}")
        lines.append(f"State: {run.run.state.value}")
        lines.append(f"Recorded: {len(run.recorded)}")
        if run.failed_records:
            lines.append(f"Failed to record: {len(run.failed_records)}")
        if run.skipped_results:
            lines.append(f"Unresolved results: {run.skipped_results}")

    direct = outcome.direct_response
    if direct is not None:
        lines.append(f"Processed: {direct.processed_count}")
        if direct.error_count:
            lines.append(f"Errors: {direct.error_count}")
            for error in direct.errors or []:
                lines.append(f"  - {error.test_case_id}: {error.error}")
    return "\n".join(lines)


def format_report_json(report: ParsedReport) -> str:
    return json.dumps(report.to_dict(), indent=2)


def format_report_text(report: ParsedReport) -> str:
    """Format a parsed report for a terminal."""
    header = report.header
    lines = [
        f"Format: {report.dialect}",
        f"Source: {header.source or '-'}",
    ]
    if header.project_name:
        lines.append(f"Project: {header.project_name}")
    if header.environment_label:
        lines.append(f"Environment: {header.environment_label}")
    lines.append(
        f"Results: {report.total} total, {report.passed} passed, "
        f"{report.failed} failed, {report.skipped} skipped"
    )
    lines.append("")
    for result in report.results:
        duration = f" ({result.duration_seconds}s)" if result.duration_seconds is not None else ""
        lines.append(f"  [{result.status.value}] {result.name}{duration}")
        if result.error_message:
            lines.append(f"      {result.error_message}")
    return "\n".join(lines)
