"""testrelay - Import automated test reports into a test-management registry."""

__version__ = "0.4.0"

from testrelay.core.models import (
    CanonicalStatus,
    NormalizedResult,
    ParsedReport,
    Priority,
    ReportHeader,
    TestDescriptor,
    TestRun,
)
from testrelay.importer import ImportOutcome, ReportImporter
from testrelay.orchestrator import FailurePolicy, RunOrchestrator, RunOutcome, RunStep
from testrelay.recorder import SuiteRecorder
from testrelay.resolver import TestCaseResolver
from testrelay.sessions import SessionRegistry

__all__ = [
    "CanonicalStatus",
    "NormalizedResult",
    "ParsedReport",
    "Priority",
    "ReportHeader",
    "TestDescriptor",
    "TestRun",
    "ImportOutcome",
    "ReportImporter",
    "FailurePolicy",
    "RunOrchestrator",
    "RunOutcome",
    "RunStep",
    "SuiteRecorder",
    "TestCaseResolver",
    "SessionRegistry",
]
