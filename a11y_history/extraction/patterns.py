"""Regex patterns recognised in markdown accessibility reports.

Order matters: total, page-count and WCAG patterns are first-match-wins;
severity patterns are all applied and merged by maximum.
"""

import re
from typing import Final

from a11y_history.models.model_scan import Severity

_FLAGS = re.IGNORECASE

TOTAL_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"\*\*Total Violations Found:\*\*\s*(\d+)", _FLAGS),
    re.compile(r"\*\*Total Violations:\*\*\s*(\d+)", _FLAGS),
    re.compile(r"Total Violations Found:\s*(\d+)", _FLAGS),
    re.compile(r"Total Violations:\s*(\d+)", _FLAGS),
)

SEVERITY_EMOJI: Final[dict[Severity, str]] = {
    Severity.CRITICAL: "🔴",
    Severity.SERIOUS: "🟠",
    Severity.MODERATE: "🟡",
    Severity.MINOR: "🔵",
}


def _severity_patterns(severity: Severity) -> tuple[re.Pattern[str], ...]:
    emoji = SEVERITY_EMOJI[severity]
    name = severity.value
    return (
        re.compile(rf"{emoji}\s*{name}:?\s*(\d+)\s*violations?", _FLAGS),
        re.compile(rf"{name}\s*Issues?:?\s*(\d+)", _FLAGS),
        re.compile(rf"\*\*{name}\*\*:?\s*(\d+)", _FLAGS),
        re.compile(rf"##\s*{emoji}\s*{name}\s*Issues?\s*\((\d+)\)", _FLAGS),
    )


SEVERITY_PATTERNS: Final[dict[Severity, tuple[re.Pattern[str], ...]]] = {
    severity: _severity_patterns(severity) for severity in Severity
}

# Section headings used when a report lists issues without stating counts
SECTION_HEADINGS: Final[dict[Severity, re.Pattern[str]]] = {
    severity: re.compile(
        rf"^##\s*{SEVERITY_EMOJI[severity]}\s*{severity.value}\s*Issues?",
        _FLAGS | re.MULTILINE,
    )
    for severity in Severity
}

# A level-1 or level-2 heading ends a section; "###" entries do not.
SECTION_END: Final[re.Pattern[str]] = re.compile(r"^#{1,2}(?!#)", re.MULTILINE)

# Numbered issue entries inside a section, e.g. "### 1. Missing alt text"
SECTION_ENTRY: Final[re.Pattern[str]] = re.compile(r"^\s*###\s+\d+\.", re.MULTILINE)

PAGE_COUNT_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"scanned\s+(\d+)\s+pages?", _FLAGS),
    re.compile(r"(\d+)\s+pages?\s+scanned", _FLAGS),
    re.compile(r"total\s+pages?:?\s*(\d+)", _FLAGS),
)

WCAG_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"WCAG\s+(AAA|AA|A)\s+complian[ct]", _FLAGS),
    re.compile(r"meets\s+WCAG\s+(AAA|AA|A)\b", _FLAGS),
    re.compile(r"level\s+(AAA|AA|A)\s+complian[ct]", _FLAGS),
)
