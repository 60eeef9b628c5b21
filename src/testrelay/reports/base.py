"""Abstract base class for report parsers."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

from bs4 import BeautifulSoup

from testrelay.core.models import ParsedReport

_JSON_EXTENSIONS = (".json",)
_HTML_EXTENSIONS = (".html", ".htm")


class ReportInput:
    """Raw report text plus lazily decoded views of it.

    Detection predicates of several parsers inspect the same input, so the
    JSON value and the HTML document are decoded at most once.
    """

    def __init__(self, text: str, filename: str | None = None) -> None:
        self.text = text
        self.filename = filename
        self._json: Any = None
        self._json_decoded = False
        self._soup: BeautifulSoup | None = None

    @property
    def extension(self) -> str:
        if not self.filename:
            return ""
        name = self.filename.lower()
        dot = name.rfind(".")
        return name[dot:] if dot >= 0 else ""

    @property
    def kind(self) -> str | None:
        """``"json"``, ``"html"`` or None: by file extension, then by content."""
        if self.extension in _JSON_EXTENSIONS:
            return "json"
        if self.extension in _HTML_EXTENSIONS:
            return "html"

        stripped = self.text.lstrip()
        if stripped.startswith(("{", "[")) and self.json is not None:
            return "json"
        head = stripped[:1024].lower()
        if stripped.startswith("<") and any(
            marker in head for marker in ("<!doctype html", "<html", "<table", "<body", "<div")
        ):
            return "html"
        return None

    @property
    def json(self) -> Any:
        """Decoded JSON value, or None when the text is not valid JSON."""
        if not self._json_decoded:
            self._json_decoded = True
            try:
                self._json = json.loads(self.text)
            except (json.JSONDecodeError, ValueError):
                self._json = None
        return self._json

    @property
    def json_object(self) -> dict[str, Any] | None:
        """Decoded JSON value when it is an object."""
        value = self.json if self.kind == "json" else None
        return value if isinstance(value, dict) else None

    @property
    def soup(self) -> BeautifulSoup:
        """Parsed HTML document."""
        if self._soup is None:
            self._soup = BeautifulSoup(self.text, "html.parser")
        return self._soup

    @property
    def title(self) -> str | None:
        """Text of the document ``<title>``, if any."""
        tag = self.soup.title
        if tag is None:
            return None
        text = tag.get_text(strip=True)
        return text or None


class ReportParser(ABC):
    """Abstract base class for report dialect parsers.

    Each dialect (rich JSON, minimal JSON, Extent HTML, ...) has a concrete
    implementation of this class.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the dialect name this parser supports."""

    @abstractmethod
    def can_parse(self, report: ReportInput) -> bool:
        """Check whether this parser recognizes the report.

        Args:
            report: The report input to inspect.

        Returns:
            True if this parser recognizes the dialect.
        """

    @abstractmethod
    def parse(self, report: ReportInput) -> ParsedReport:
        """Convert the report to the canonical header plus results.

        Args:
            report: The report input to parse.

        Returns:
            ParsedReport with normalized results.
        """
