# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Terminal output sanitizer and usage extractor.

The CLI renders /usage as a full-screen panel. After escape sequences are
removed the text looks roughly like:

    Current session
    ███████▌                 15% used
    Resets 2am (Europe/Berlin)

    Current week (all models)
    ██                        4% used
    Resets Mar 4 at 8pm (Europe/Berlin)

Cursor-movement sequences often replace the spaces between words, so
every pattern tolerates missing whitespace ("Currentsession", "15%used").
"""

import re
from typing import Optional

from ..core.types import UsageFields

# OSC strings first: "ESC ]" would otherwise be eaten as a two-byte escape
# and leave the payload behind.
ANSI_ESCAPE_PATTERN = re.compile(
    r"\x1B\][^\x07\x1B]*(?:\x07|\x1B\\)"
    r"|\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])"
)

SESSION_PCT_PATTERN = re.compile(r"Current\s*session[\s\S]*?(\d+)%\s*used", re.I)
SESSION_RESET_PATTERN = re.compile(
    r"Rese[ts]+\s*(\d+(?::\d+)?(?:am|pm)[^)]*\))", re.I
)
WEEKLY_PCT_PATTERN = re.compile(r"Current\s*week[\s\S]*?(\d+)%\s*used", re.I)
WEEKLY_RESET_PATTERN = re.compile(
    r"Resets?\s*((?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[^)]+\))",
    re.I,
)
USED_MARKER_PATTERN = re.compile(r"(\d+)%\s*used", re.I)


def strip_ansi(text: str) -> str:
    """Remove ANSI/VT control sequences (colour, cursor movement, erase)."""
    return ANSI_ESCAPE_PATTERN.sub("", text)


def count_used_markers(clean_text: str) -> int:
    """Count "N% used" occurrences in already-sanitized text."""
    return len(USED_MARKER_PATTERN.findall(clean_text))


def parse_clean_output(cleaned: str) -> Optional[UsageFields]:
    """
    Extract usage fields from sanitized text.

    Returns:
        UsageFields if at least one percentage matched, otherwise None.
        Missing percentages default to 0 and missing reset times to "",
        so callers must check for None rather than for zeros.
    """
    session_match = SESSION_PCT_PATTERN.search(cleaned)
    weekly_match = WEEKLY_PCT_PATTERN.search(cleaned)

    if not session_match and not weekly_match:
        return None

    session_reset_match = SESSION_RESET_PATTERN.search(cleaned)
    weekly_reset_match = WEEKLY_RESET_PATTERN.search(cleaned)

    return UsageFields(
        session_pct=int(session_match.group(1)) if session_match else 0,
        session_reset=session_reset_match.group(1) if session_reset_match else "",
        weekly_pct=int(weekly_match.group(1)) if weekly_match else 0,
        weekly_reset=weekly_reset_match.group(1) if weekly_reset_match else "",
    )


def parse_usage_output(raw: str) -> Optional[UsageFields]:
    """Sanitize raw terminal output and extract usage fields."""
    return parse_clean_output(strip_ansi(raw))
