"""Test case identity resolution.

Maps a report-native result onto a stable registry test case id without
creating duplicates. Lookup order, first hit wins:

1. the local id used directly as a registry id;
2. a search by display id, accepting an exact (case-insensitive) display-id match;
3. a search by title, accepting an exact (case-insensitive) title match.

Partial matches are never accepted. On a miss the caller may ask for the
test case to be created.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from testrelay.core.models import (
    NormalizedResult,
    Priority,
    ReportHeader,
    TestCaseDraft,
    TestDescriptor,
    clean_text,
)
from testrelay.logging import get_logger

if TYPE_CHECKING:
    from testrelay.registry.client import RegistryClient

logger = get_logger(__name__)

HIGH_PRIORITY_TAGS = frozenset({"critical", "high"})

HintKey = tuple[str | None, str | None, str | None]


def priority_for_tags(tags: tuple[str, ...] | list[str]) -> Priority:
    """HIGH when any tag is "critical" or "high", else MEDIUM."""
    if any(tag.strip().lower() in HIGH_PRIORITY_TAGS for tag in tags):
        return Priority.HIGH
    return Priority.MEDIUM


def _same_id(returned: str, requested: str) -> bool:
    return returned.strip().lower() == requested.strip().lower()


def describe_result(result: NormalizedResult, header: ReportHeader | None = None) -> str | None:
    """Description for a test case created from a parsed result."""
    parts: list[str] = []
    if result.class_name:
        parts.append(f"Class: {result.class_name}")
    if result.tags:
        parts.append(f"Tags: {', '.join(result.tags)}")
    environment = header.environment_summary if header is not None else None
    if environment:
        parts.append(f"Environment: {environment}")
    return "\n".join(parts) or None


class TestCaseResolver:
    """Resolve and create-on-miss registry test cases."""

    __test__ = False

    def __init__(self, client: RegistryClient, memoize: bool = True):
        """Initialize the resolver.

        Args:
            client: Registry client used for lookups and creation.
            memoize: Remember successful resolutions so repeated lookups for
                the same hints cost no network call.
        """
        if client is None:
            raise ValueError("Registry client cannot be None")
        self.client = client
        self.memoize = memoize
        self._resolved: dict[HintKey, str] = {}
        self._lock = threading.Lock()

    def _remember(self, key: HintKey, registry_id: str) -> str:
        if self.memoize:
            with self._lock:
                self._resolved[key] = registry_id
        return registry_id

    def _recall(self, key: HintKey) -> str | None:
        if not self.memoize:
            return None
        with self._lock:
            return self._resolved.get(key)

    def resolve(
        self,
        local_id: str | None,
        display_id_hint: str | None = None,
        title: str | None = None,
    ) -> str | None:
        """Find an existing test case. Returns its registry id or None."""
        local_id = clean_text(local_id)
        display_id_hint = clean_text(display_id_hint)
        title = clean_text(title)
        key = (local_id, display_id_hint, title)

        cached = self._recall(key)
        if cached is not None:
            return cached

        found = self._lookup(local_id, display_id_hint, title)
        if found is not None:
            return self._remember(key, found)
        return None

    def _lookup(
        self, local_id: str | None, display_id_hint: str | None, title: str | None
    ) -> str | None:
        if local_id:
            result = self.client.get_test_case(local_id)
            if result.ok and _same_id(result.value.registry_id, local_id):
                logger.debug(
                    "test_case_found", by="registry_id", test_case_id=result.value.registry_id
                )
                return result.value.registry_id
            if result.ok:
                logger.warning(
                    "test_case_id_mismatch",
                    hint=local_id,
                    returned_id=result.value.registry_id,
                )
            elif not result.is_not_found:
                logger.warning(
                    "test_case_lookup_failed", by="registry_id", hint=local_id, error=str(result)
                )

        if display_id_hint:
            result = self.client.search_test_cases(display_id_hint)
            if result.ok:
                wanted = display_id_hint.lower()
                for candidate in result.value:
                    if candidate.display_id and candidate.display_id.strip().lower() == wanted:
                        logger.debug(
                            "test_case_found",
                            by="display_id",
                            hint=display_id_hint,
                            test_case_id=candidate.registry_id,
                        )
                        return candidate.registry_id
            else:
                logger.warning(
                    "test_case_lookup_failed",
                    by="display_id",
                    hint=display_id_hint,
                    error=str(result),
                )

        if title:
            result = self.client.search_test_cases(title)
            if result.ok:
                wanted = title.lower()
                for candidate in result.value:
                    if candidate.title and candidate.title.strip().lower() == wanted:
                        logger.debug(
                            "test_case_found",
                            by="title",
                            title=title,
                            test_case_id=candidate.registry_id,
                        )
                        return candidate.registry_id
            else:
                logger.warning(
                    "test_case_lookup_failed", by="title", hint=title, error=str(result)
                )

        return None

    def resolve_or_create(
        self,
        local_id: str | None,
        display_id_hint: str | None,
        title: str | None,
        draft: TestCaseDraft,
    ) -> str | None:
        """Resolve, creating the test case from ``draft`` on a miss.

        Returns:
            The registry id, or None when lookup missed and creation failed.
        """
        found = self.resolve(local_id, display_id_hint, title)
        if found is not None:
            return found

        key = (clean_text(local_id), clean_text(display_id_hint), clean_text(title))
        result = self.client.create_test_case(draft)
        if not result.ok:
            logger.warning("test_case_create_failed", title=draft.title, error=str(result))
            return None
        return self._remember(key, result.value)

    def resolve_result(
        self, result: NormalizedResult, header: ReportHeader | None = None
    ) -> str | None:
        """Resolve (or create) the test case for a parsed report result."""
        title = result.creation_title
        draft = TestCaseDraft(
            title=title,
            description=describe_result(result, header),
            priority=priority_for_tags(result.tags),
        )
        return self.resolve_or_create(result.local_id, result.local_id, title, draft)

    def resolve_descriptor(
        self, descriptor: TestDescriptor, test_name: str | None = None
    ) -> str | None:
        """Resolve (or create) the test case described by a runner integration.

        The descriptor title falls back to ``test_name``.
        """
        title = clean_text(descriptor.title) or clean_text(test_name)
        if title is None and not clean_text(descriptor.test_case_id):
            logger.warning("descriptor_without_identity", test_name=test_name)
            return None
        draft = TestCaseDraft(
            title=title or str(descriptor.test_case_id).strip(),
            description=clean_text(descriptor.description),
            priority=descriptor.priority,
        )
        return self.resolve_or_create(descriptor.test_case_id, None, title, draft)
