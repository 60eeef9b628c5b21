"""Status and duration normalization for free-form report text.

Third-party reports are never disciplined about spelling or units, so these
functions degrade gracefully: status mapping is total and duration parsing
returns None instead of raising.
"""

from __future__ import annotations

import re

from testrelay.core.models import CanonicalStatus
from testrelay.logging import get_logger

logger = get_logger(__name__)

# Substring groups evaluated in priority order
_STATUS_KEYWORDS: tuple[tuple[tuple[str, ...], CanonicalStatus], ...] = (
    (("PASS", "SUCCESS"), CanonicalStatus.PASSED),
    (("FAIL", "ERROR"), CanonicalStatus.FAILED),
    (("SKIP", "IGNORE"), CanonicalStatus.SKIPPED),
)

_MS_PER_UNIT = {
    "ms": 1,
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
}

# <number><unit> tokens, e.g. "1m 30s", "1 min 30 sec" or "0h 0m 3s+500ms"
_COMPOUND_TOKEN = re.compile(
    r"(\d+(?:\.\d+)?)\s*"
    r"(milliseconds?|ms|hours?|hrs?|h|minutes?|mins?|m|seconds?|secs?|s)(?![a-z])",
    re.IGNORECASE,
)
_NON_NUMERIC = re.compile(r"[^0-9.]")


def normalize_status(text: str | None) -> CanonicalStatus:
    """Map free-form status text to a canonical status.

    Exact canonical names win first so that manually entered BLOCKED or
    RETEST values survive. Anything unmatched, including None, is SKIPPED.
    """
    if text is None:
        logger.warning("unknown_status", status=None, fallback=CanonicalStatus.SKIPPED.value)
        return CanonicalStatus.SKIPPED

    upper = str(text).strip().upper()
    try:
        return CanonicalStatus(upper)
    except ValueError:
        pass

    for keywords, status in _STATUS_KEYWORDS:
        if any(keyword in upper for keyword in keywords):
            return status

    logger.warning("unknown_status", status=text, fallback=CanonicalStatus.SKIPPED.value)
    return CanonicalStatus.SKIPPED


def _unit_key(unit: str) -> str:
    unit = unit.lower()
    if unit == "ms" or unit.startswith("milli"):
        return "ms"
    return unit[0]


def _compound_ms(text: str) -> int | None:
    tokens = _COMPOUND_TOKEN.findall(text)
    if len(tokens) < 2:
        return None
    return int(sum(float(value) * _MS_PER_UNIT[_unit_key(unit)] for value, unit in tokens))


def parse_duration_ms(text: str | int | float | None, default_unit: str = "s") -> int | None:
    """Parse duration text to whole milliseconds.

    Args:
        text: Duration as written in the report ("3500ms", "2.5 sec", "1m 30s").
        default_unit: Unit assumed when the text names none: "s" or "ms".

    Returns:
        Milliseconds, or None when no number can be extracted.
    """
    if text is None:
        return None
    raw = str(text).strip()
    if not raw:
        return None

    compound = _compound_ms(raw)
    if compound is not None:
        return compound

    cleaned = _NON_NUMERIC.sub("", raw)
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        logger.debug("unparseable_duration", duration=raw)
        return None

    lower = raw.lower()
    if "ms" in lower or "millisecond" in lower:
        return int(value)
    if "sec" in lower or "second" in lower:
        return int(value * 1000)
    if "min" in lower:
        return int(value * 60 * 1000)
    if "hour" in lower:
        return int(value * 60 * 60 * 1000)
    if default_unit == "ms":
        return int(value)
    return int(value * 1000)


def ms_to_seconds(milliseconds: int | None) -> int | None:
    """Convert milliseconds to whole seconds, always rounding down."""
    if milliseconds is None or milliseconds < 0:
        return None
    return milliseconds // 1000


def normalize_duration(text: str | int | float | None, default_unit: str = "s") -> int | None:
    """Parse duration text to whole seconds (floor)."""
    return ms_to_seconds(parse_duration_ms(text, default_unit=default_unit))
