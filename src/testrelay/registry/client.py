"""HTTP client for the test-management registry.

Every public method returns ``Ok(value)`` or a ``RegistryError``. Network
errors, timeouts and non-2xx responses are logged with status and body and
never raised to the caller.

Usage:
    with HttpRegistryClient(settings) as client:
        result = client.search_test_cases("Login")
        if result.ok:
            cases = result.value
"""

from __future__ import annotations

import json
import urllib.parse
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from testrelay.core.models import RemoteTestCase, TestCaseDraft
from testrelay.core.result import ErrorKind, Ok, RegistryError, Result
from testrelay.logging import get_logger
from testrelay.registry.schemas import (
    AutomationReport,
    AutomationReportResponse,
    CreateTestCaseRequest,
    CreateTestRunRequest,
    RecordResultRequest,
    TestCaseHistoryEntry,
    TestCaseResponse,
    TestRunResponse,
    UpdateTestCaseRequest,
    UpdateTestRunRequest,
    WireModel,
)

if TYPE_CHECKING:
    from testrelay.config import Settings

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

SEARCH_LIMIT = 100
BODY_LOG_LIMIT = 500


def _segment(value: str) -> str:
    """Percent-encode an id for use as a single URL path segment."""
    return urllib.parse.quote(str(value), safe="")


class RegistryClient(Protocol):
    """Operations the reconciliation engine needs from the registry."""

    def get_test_case(self, test_case_id: str) -> Result[RemoteTestCase]: ...

    def search_test_cases(self, term: str) -> Result[list[RemoteTestCase]]: ...

    def create_test_case(self, draft: TestCaseDraft) -> Result[str]: ...

    def create_test_run(self, request: CreateTestRunRequest) -> Result[str]: ...

    def start_test_run(self, run_id: str) -> Result[None]: ...

    def record_result(self, run_id: str, request: RecordResultRequest) -> Result[None]: ...

    def complete_test_run(self, run_id: str) -> Result[None]: ...

    def update_test_case(
        self, test_case_id: str, request: UpdateTestCaseRequest
    ) -> Result[RemoteTestCase]: ...

    def update_test_run(
        self, run_id: str, request: UpdateTestRunRequest
    ) -> Result[TestRunResponse]: ...

    def get_test_case_history(self, test_case_id: str) -> Result[list[TestCaseHistoryEntry]]: ...

    def import_automation_report(
        self, report: AutomationReport
    ) -> Result[AutomationReportResponse]: ...

    def close(self) -> None: ...


class HttpRegistryClient:
    """Registry client over a synchronous httpx session."""

    def __init__(self, settings: Settings, transport: httpx.BaseTransport | None = None):
        """Initialize the client.

        Args:
            settings: Connection settings (server, API key, project, timeouts).
            transport: Optional httpx transport, used by tests.

        Raises:
            ValueError: If settings is None.
        """
        if settings is None:
            raise ValueError("Registry settings are required")
        self.settings = settings
        self.project_id = settings.project_id
        self._client = httpx.Client(
            base_url=settings.api_base_url,
            headers={
                "Authorization": f"Bearer {settings.api_key}",
                "Accept": "application/json",
            },
            timeout=httpx.Timeout(settings.read_timeout, connect=settings.connect_timeout),
            transport=transport,
        )

    def __enter__(self) -> HttpRegistryClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self._client.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        body: WireModel | None = None,
        params: dict[str, Any] | None = None,
    ) -> Result[Any]:
        """Send a request and unwrap the ``data`` member of the envelope."""
        kwargs: dict[str, Any] = {"params": params}
        if body is not None:
            kwargs["json"] = body.to_payload()

        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            return self._fail(operation, ErrorKind.TIMEOUT, f"Request timed out: {e}")
        except httpx.HTTPError as e:
            return self._fail(operation, ErrorKind.CONNECTION, f"Request failed: {e}")

        text = response.text
        if response.status_code == 404:
            logger.debug("registry_not_found", operation=operation, path=path)
            return RegistryError(ErrorKind.NOT_FOUND, "Not found", 404, text)
        if not response.is_success:
            return self._fail(
                operation,
                ErrorKind.HTTP_STATUS,
                f"Unexpected status {response.status_code}",
                response.status_code,
                text,
            )

        if not text.strip():
            return Ok(None)
        if text.lstrip().startswith("<"):
            # Login redirects and proxy error pages come back as HTML with 2xx
            return self._fail(
                operation,
                ErrorKind.INVALID_RESPONSE,
                "Server returned HTML instead of JSON",
                response.status_code,
                text,
            )
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return self._fail(
                operation,
                ErrorKind.INVALID_RESPONSE,
                "Response is not valid JSON",
                response.status_code,
                text,
            )

        if isinstance(payload, dict) and "data" in payload:
            return Ok(payload["data"])
        return Ok(payload)

    def _fail(
        self,
        operation: str,
        kind: ErrorKind,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> RegistryError:
        logger.warning(
            "registry_call_failed",
            operation=operation,
            kind=kind.value,
            status_code=status_code,
            body=body[:BODY_LOG_LIMIT] if body else None,
            error=message,
        )
        return RegistryError(kind, message, status_code, body)

    def _decode(self, operation: str, data: Any, model: type[M]) -> Result[M]:
        if data is None:
            return self._fail(operation, ErrorKind.INVALID_RESPONSE, "Response has no data")
        try:
            return Ok(model.model_validate(data))
        except ValidationError as e:
            return self._fail(operation, ErrorKind.INVALID_RESPONSE, f"Unexpected payload: {e}")

    def _decode_list(self, operation: str, data: Any, model: type[M]) -> Result[list[M]]:
        if data is None:
            return Ok([])
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            data = data["data"]  # paginated list response
        if not isinstance(data, list):
            return self._fail(operation, ErrorKind.INVALID_RESPONSE, "Expected a list")
        items: list[M] = []
        for raw in data:
            try:
                items.append(model.model_validate(raw))
            except ValidationError:
                logger.debug("registry_item_skipped", operation=operation, item=raw)
        return Ok(items)

    # ------------------------------------------------------------------
    # Test cases
    # ------------------------------------------------------------------

    def get_test_case(self, test_case_id: str) -> Result[RemoteTestCase]:
        """Fetch a test case by registry id. A 404 yields a NOT_FOUND error."""
        result = self._request("get_test_case", "GET", f"/testcases/{_segment(test_case_id)}")
        if not result.ok:
            return result
        decoded = self._decode("get_test_case", result.value, TestCaseResponse)
        return Ok(decoded.value.to_remote()) if decoded.ok else decoded

    def search_test_cases(self, term: str) -> Result[list[RemoteTestCase]]:
        """Free-text search scoped to the configured project."""
        result = self._request(
            "search_test_cases",
            "GET",
            f"/projects/{_segment(self.project_id)}/testcases",
            params={"search": term, "limit": SEARCH_LIMIT},
        )
        if not result.ok:
            return result
        decoded = self._decode_list("search_test_cases", result.value, TestCaseResponse)
        if not decoded.ok:
            return decoded
        logger.debug("registry_search", term=term, matches=len(decoded.value))
        return Ok([tc.to_remote() for tc in decoded.value])

    def create_test_case(self, draft: TestCaseDraft) -> Result[str]:
        """Create a test case and return its registry id."""
        result = self._request(
            "create_test_case",
            "POST",
            f"/projects/{_segment(self.project_id)}/testcases",
            body=CreateTestCaseRequest.from_draft(draft),
        )
        if not result.ok:
            return result
        decoded = self._decode("create_test_case", result.value, TestCaseResponse)
        if not decoded.ok:
            return decoded
        logger.info("test_case_created", test_case_id=decoded.value.id, title=draft.title)
        return Ok(decoded.value.id)

    def update_test_case(
        self, test_case_id: str, request: UpdateTestCaseRequest
    ) -> Result[RemoteTestCase]:
        result = self._request(
            "update_test_case", "PUT", f"/testcases/{_segment(test_case_id)}", body=request
        )
        if not result.ok:
            return result
        decoded = self._decode("update_test_case", result.value, TestCaseResponse)
        return Ok(decoded.value.to_remote()) if decoded.ok else decoded

    def get_test_case_history(self, test_case_id: str) -> Result[list[TestCaseHistoryEntry]]:
        """Execution history of a test case. An unknown test case has none."""
        result = self._request(
            "get_test_case_history", "GET", f"/testcases/{_segment(test_case_id)}/history"
        )
        if not result.ok:
            return Ok([]) if result.is_not_found else result
        return self._decode_list("get_test_case_history", result.value, TestCaseHistoryEntry)

    # ------------------------------------------------------------------
    # Test runs
    # ------------------------------------------------------------------

    def create_test_run(self, request: CreateTestRunRequest) -> Result[str]:
        """Create a test run and return its registry id."""
        result = self._request(
            "create_test_run",
            "POST",
            f"/projects/{_segment(self.project_id)}/testruns",
            body=request,
        )
        if not result.ok:
            return result
        decoded = self._decode("create_test_run", result.value, TestRunResponse)
        if not decoded.ok:
            return decoded
        logger.info("test_run_created", run_id=decoded.value.id, name=request.name)
        return Ok(decoded.value.id)

    def start_test_run(self, run_id: str) -> Result[None]:
        result = self._request("start_test_run", "POST", f"/testruns/{_segment(run_id)}/start")
        return Ok(None) if result.ok else result

    def record_result(self, run_id: str, request: RecordResultRequest) -> Result[None]:
        result = self._request(
            "record_result", "POST", f"/testruns/{_segment(run_id)}/results", body=request
        )
        if not result.ok:
            return result
        logger.debug("result_recorded", run_id=run_id, test_case_id=request.test_case_id)
        return Ok(None)

    def complete_test_run(self, run_id: str) -> Result[None]:
        result = self._request(
            "complete_test_run", "POST", f"/testruns/{_segment(run_id)}/complete"
        )
        return Ok(None) if result.ok else result

    def update_test_run(
        self, run_id: str, request: UpdateTestRunRequest
    ) -> Result[TestRunResponse]:
        result = self._request(
            "update_test_run", "PATCH", f"/testruns/{_segment(run_id)}", body=request
        )
        if not result.ok:
            return result
        return self._decode("update_test_run", result.value, TestRunResponse)

    # ------------------------------------------------------------------
    # One-call import
    # ------------------------------------------------------------------

    def import_automation_report(
        self, report: AutomationReport
    ) -> Result[AutomationReportResponse]:
        """POST a minimal automation report; the server resolves and records."""
        result = self._request(
            "import_automation_report",
            "POST",
            f"/projects/{_segment(self.project_id)}/automation-report",
            body=report,
        )
        if not result.ok:
            return result
        return self._decode("import_automation_report", result.value, AutomationReportResponse)
