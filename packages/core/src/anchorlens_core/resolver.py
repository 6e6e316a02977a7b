"""Location resolver: map a reported issue onto the current text of its file.

An issue records the line number and the line text at the commit it was
generated against. By the time it is shown the file may have been edited,
so we look for that text again, cheapest check first:

    1. the recorded line itself                      → exact
    2. the NEARBY_WINDOW lines either side of it     → approximate
    3. the whole file, top to bottom                 → approximate
    4. nowhere                                       → stale

A recorded line past the end of the file is stale before any comparison.

Matching is purely textual on whitespace-trimmed lines. No language syntax
is used and nothing here performs I/O: callers pass a complete snapshot of
the file text.

The full scan (step 3) returns the *first* occurrence in the file, not the
one closest to the recorded line. With repeated lines such as ``}`` or
``return None`` this can pick the wrong one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from anchorlens_core.models import Confidence, Issue, ResolvedLocation

logger = logging.getLogger(__name__)

# Lines probed either side of the recorded line before the full scan.
NEARBY_WINDOW = 10


def split_lines(file_text: str) -> list[str]:
    """Split on ``\\n`` only. Empty text has no lines at all."""
    if not file_text:
        return []
    return file_text.split("\n")


def line_count(file_text: str) -> int:
    return len(split_lines(file_text))


def nearby_offsets(window: int = NEARBY_WINDOW) -> list[int]:
    """Offsets probed around the recorded line, in probe order.

    ``-window … -1, +1 … +window``: every line above is tried before any line
    below, and within each side the farthest line comes first.
    """
    return [offset for offset in range(-window, window + 1) if offset != 0]


def _search_text(issue: Issue) -> str | None:
    # Whitespace-only content is still content: it matches a blank line.
    if not issue.line_content:
        return None
    return issue.line_content.strip()


def resolve(issue: Issue, file_text: str, window: int = NEARBY_WINDOW) -> ResolvedLocation:
    """Resolve ``issue`` against ``file_text`` and return its current location.

    File-scoped issues (no line) are never placed on a line and come back
    stale with ``current_line=None``. A stale result for a line-bearing issue
    keeps the recorded line number for debugging; it must not be rendered.
    """
    if issue.is_file_scoped:
        return ResolvedLocation(issue, None, Confidence.STALE)

    lines = split_lines(file_text)
    if issue.line > len(lines):
        logger.debug("Issue %s is stale: line %d is past the end of the file", issue.key, issue.line)
        return ResolvedLocation(issue, None, Confidence.STALE)

    target = _search_text(issue)
    if target is None:
        # Nothing to check the recorded line against.
        return ResolvedLocation(issue, issue.line, Confidence.APPROXIMATE)

    if lines[issue.line - 1].strip() == target:
        return ResolvedLocation(issue, issue.line, Confidence.EXACT)

    for offset in nearby_offsets(window):
        candidate = issue.line + offset
        if candidate < 1 or candidate > len(lines):
            continue
        if lines[candidate - 1].strip() == target:
            logger.debug("Issue %s moved %+d line(s) to %d", issue.key, offset, candidate)
            return ResolvedLocation(issue, candidate, Confidence.APPROXIMATE)

    for index, text in enumerate(lines):
        if text.strip() == target:
            logger.debug("Issue %s found by full scan at line %d", issue.key, index + 1)
            return ResolvedLocation(issue, index + 1, Confidence.APPROXIMATE)

    logger.debug("Issue %s is stale: recorded text no longer in file", issue.key)
    return ResolvedLocation(issue, issue.line, Confidence.STALE)


def resolve_all(issues: Iterable[Issue], file_text: str, window: int = NEARBY_WINDOW) -> list[ResolvedLocation]:
    """Resolve every issue against the same text, preserving input order."""
    return [resolve(issue, file_text, window) for issue in issues]
