"""In-memory index of the issues from the most recent review.

The store owns exactly one ReviewResult at a time. ``ingest()`` builds a new
immutable snapshot (the result plus its two indexes) and swaps it in under a
lock; readers grab whichever snapshot is current and work from it. A render
pass that started before an ingest therefore finishes on the old issues, and
one that starts after sees only the new ones, never a mix.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from anchorlens_core.models import Issue, ReviewResult, normalize_path

logger = logging.getLogger(__name__)

# Line bucket used for issues that are not tied to a line.
FILE_SCOPED_LINE = 0


def issue_sort_key(issue: Issue) -> tuple[int, int]:
    """Ordering both presentation surfaces rely on: severity high→low, then id."""
    return (-issue.severity.rank, issue.id)


@dataclass(frozen=True)
class _Snapshot:
    result: ReviewResult | None = None
    by_file: dict[str, tuple[Issue, ...]] = field(default_factory=dict)
    by_line: dict[tuple[str, int], tuple[Issue, ...]] = field(default_factory=dict)

    def issues_for(self, filename: str) -> tuple[Issue, ...]:
        return self.by_file.get(normalize_path(filename), ())

    def issues_at(self, filename: str, line: int) -> tuple[Issue, ...]:
        return self.by_line.get((normalize_path(filename), line), ())


_EMPTY = _Snapshot()


def _build_snapshot(result: ReviewResult) -> _Snapshot:
    by_file: dict[str, list[Issue]] = {}
    by_line: dict[tuple[str, int], list[Issue]] = {}

    for issue in result.issues:
        filename = normalize_path(issue.filename)
        line = FILE_SCOPED_LINE if issue.is_file_scoped else issue.line
        by_file.setdefault(filename, []).append(issue)
        by_line.setdefault((filename, line), []).append(issue)

    return _Snapshot(
        result=result,
        by_file={f: tuple(sorted(issues, key=issue_sort_key)) for f, issues in by_file.items()},
        by_line={k: tuple(sorted(issues, key=issue_sort_key)) for k, issues in by_line.items()},
    )


class IssueStore:
    """Single-writer holder of the current review's issues."""

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot = _EMPTY

    def ingest(self, result: ReviewResult) -> None:
        """Replace every previously held issue with ``result``.

        Does not notify any presentation layer; the caller triggers the
        re-render once this returns.
        """
        snapshot = _build_snapshot(result)
        with self._lock:
            self._snapshot = snapshot
        logger.info(
            "Indexed %d issue(s) across %d file(s) for revision %s",
            len(result.issues),
            len(snapshot.by_file),
            result.new_revision[:7] or "?",
        )

    def clear(self) -> None:
        with self._lock:
            self._snapshot = _EMPTY

    def snapshot(self) -> _Snapshot:
        """Return the current snapshot, for several lookups against one result."""
        with self._lock:
            return self._snapshot

    @property
    def result(self) -> ReviewResult | None:
        return self.snapshot().result

    @property
    def revision(self) -> str | None:
        result = self.result
        return result.new_revision if result is not None else None

    def issues_for(self, filename: str) -> tuple[Issue, ...]:
        return self.snapshot().issues_for(filename)

    def issues_at(self, filename: str, line: int) -> tuple[Issue, ...]:
        return self.snapshot().issues_at(filename, line)

    def files(self) -> tuple[str, ...]:
        return tuple(sorted(self.snapshot().by_file))

    def all_issues(self) -> tuple[Issue, ...]:
        result = self.result
        return result.issues if result is not None else ()

    def __len__(self) -> int:
        return len(self.all_issues())
