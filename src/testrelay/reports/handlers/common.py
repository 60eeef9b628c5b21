"""Helpers shared by the HTML report parsers."""

from __future__ import annotations

import re

from bs4 import Tag

from testrelay.core.models import ReportHeader

from ..base import ReportInput

STATUS_WORDS = ("pass", "fail", "skip")

# A number followed by a duration unit: "3500ms", "2.5 sec", "1 min"
DURATION_TOKEN = re.compile(
    r"\d+(?:\.\d+)?\s*(?:ms|milliseconds?|s|secs?|seconds?|m|mins?|minutes?|h|hours?)\b",
    re.IGNORECASE,
)

# Java-style qualified name: "com.example.LoginTest"
QUALIFIED_NAME = re.compile(r"^[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)+$")


def text_of(element: Tag | None) -> str:
    """Rendered, whitespace-collapsed text of an element."""
    if element is None:
        return ""
    return " ".join(element.get_text(" ", strip=True).split())


def class_tokens(element: Tag) -> list[str]:
    value = element.get("class") or []
    if isinstance(value, str):
        value = value.split()
    return [token.lower() for token in value]


def html_header(report: ReportInput, source: str) -> ReportHeader:
    """Header for HTML dialects: the dialect label plus the document title."""
    return ReportHeader(source=source, project_name=report.title)
