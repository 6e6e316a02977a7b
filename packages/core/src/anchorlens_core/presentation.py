"""Presentation sync: turn stored issues into what the editor surfaces show.

There are two surfaces, inline annotations (gutter + hover) and structured
diagnostics (problems list + quick fix), and they must always agree on
which issues are visible. Both are thin adapters over one shared render
pass:

    issues_for(file) → drop dismissed → resolve → drop stale → 0-based line

and both route "mark as fixed" through the same DismissalLedger. A dismissal
from either surface re-renders every open file on every surface, so neither
can keep showing an issue the other has hidden.

Nothing here knows about a concrete editor. The host calls ``open_file`` /
``focus`` / ``update_text`` when visible text may have changed, and reads
the results back from each surface (or receives them through a sink
callback). Keystrokes are not a trigger: a render reflects the text handed
over at the last notification.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from anchorlens_core.issue_store import IssueStore
from anchorlens_core.ledger import DismissalLedger
from anchorlens_core.models import Confidence, Issue, Severity, normalize_issue_key, normalize_path
from anchorlens_core.resolver import NEARBY_WINDOW, resolve

logger = logging.getLogger(__name__)

# Whole-line ranges end at this column; hosts clamp it to the real line end.
END_OF_LINE = 1000

DIAGNOSTIC_SOURCE = "anchorlens"
MARK_AS_FIXED_COMMAND = "anchorlens.markAsFixed"

_APPROXIMATE_NOTE = "Note: this issue location is approximate (code may have changed)"


def build_message(issue: Issue) -> str:
    """Render the issue text shared by both surfaces.

    Always in this order: title, severity, category, comments, suggestion,
    revision the review was based on.
    """
    lines = [
        issue.title,
        f"Severity: {issue.severity.value}",
        f"Category: {issue.category or 'uncategorized'}",
    ]
    if issue.comments:
        lines.append(issue.comments)
    if issue.suggestion:
        lines.append(f"Suggestion: {issue.suggestion}")
    if issue.short_revision:
        lines.append(f"Review based on commit: {issue.short_revision}")
    return "\n".join(lines)


@dataclass(frozen=True)
class FixAction:
    """The "mark as fixed" action offered for each rendered issue."""

    key: str
    title: str = "Mark as fixed"
    command: str = MARK_AS_FIXED_COMMAND


@dataclass(frozen=True)
class RenderedIssue:
    """One visible issue after a render pass. ``line`` is 0-based."""

    issue: Issue
    line: int
    confidence: Confidence
    message: str

    @property
    def key(self) -> str:
        return self.issue.key

    @property
    def severity(self) -> Severity:
        return self.issue.severity

    @property
    def range(self) -> tuple[int, int, int, int]:
        return (self.line, 0, self.line, END_OF_LINE)

    @property
    def action(self) -> FixAction:
        return FixAction(key=self.key)


def render_file(
    store: IssueStore,
    ledger: DismissalLedger,
    filename: str,
    text: str,
    window: int = NEARBY_WINDOW,
) -> list[RenderedIssue]:
    """Run one render pass for ``filename`` against its current ``text``.

    Reads a single store snapshot so the pass cannot straddle an ingest.
    Output follows the store order (severity high→low, then id).
    """
    issues = store.snapshot().issues_for(filename)
    rendered: list[RenderedIssue] = []
    for issue in issues:
        if ledger.is_dismissed(issue):
            continue
        location = resolve(issue, text, window)
        if not location.is_visible:
            continue
        rendered.append(
            RenderedIssue(
                issue=issue,
                line=location.zero_based_line,
                confidence=location.confidence,
                message=build_message(issue),
            )
        )
    return rendered


# --------------------------------------------------------------------------- #
# Surfaces                                                                    #
# --------------------------------------------------------------------------- #


Sink = Callable[[str, list], None]


class Surface(ABC):
    """Holds the latest render per open file and forwards it to an optional sink."""

    name: str = "surface"

    def __init__(self, sink: Sink | None = None):
        self._sink = sink
        self._items: dict[str, list] = {}

    @abstractmethod
    def _build(self, rendered: RenderedIssue):
        """Convert one shared RenderedIssue into this surface's item type."""

    def render(self, filename: str, rendered: Iterable[RenderedIssue]) -> list:
        items = [self._build(r) for r in rendered]
        self._items[filename] = items
        self._emit(filename, items)
        return items

    def clear(self, filename: str) -> None:
        self._items.pop(filename, None)
        self._emit(filename, [])

    def _emit(self, filename: str, items: list) -> None:
        if self._sink is None:
            return
        try:
            self._sink(filename, items)
        except Exception:
            logger.exception("%s sink failed for %s", self.name, filename)

    def rendered(self, filename: str) -> list:
        return list(self._items.get(normalize_path(filename), []))

    def keys(self, filename: str) -> list[str]:
        return [item.key for item in self.rendered(filename)]

    def files(self) -> list[str]:
        return sorted(self._items)


@dataclass(frozen=True)
class Annotation:
    key: str
    line: int
    severity: Severity
    confidence: Confidence
    message: str
    action: FixAction

    @property
    def style(self) -> tuple[Severity, Confidence]:
        """Decoration bucket: severity colour, solid (exact) or dashed (approximate)."""
        return (self.severity, self.confidence)

    @property
    def hover(self) -> str:
        if self.confidence is Confidence.APPROXIMATE:
            return f"{_APPROXIMATE_NOTE}\n\n{self.message}"
        return self.message


class AnnotationSurface(Surface):
    """Inline gutter annotations with hover text."""

    name = "annotations"

    def _build(self, rendered: RenderedIssue) -> Annotation:
        return Annotation(
            key=rendered.key,
            line=rendered.line,
            severity=rendered.severity,
            confidence=rendered.confidence,
            message=rendered.message,
            action=rendered.action,
        )

    def styles(self, filename: str) -> dict[tuple[Severity, Confidence], list[Annotation]]:
        grouped: dict[tuple[Severity, Confidence], list[Annotation]] = {}
        for annotation in self.rendered(filename):
            grouped.setdefault(annotation.style, []).append(annotation)
        return grouped

    def hover(self, filename: str, line: int) -> str | None:
        """Hover text for the first annotation on a 0-based line."""
        for annotation in self.rendered(filename):
            if annotation.line == line:
                return annotation.hover
        return None


class DiagnosticLevel(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"


_LEVEL_BY_SEVERITY = {
    Severity.HIGH: DiagnosticLevel.ERROR,
    Severity.MEDIUM: DiagnosticLevel.WARNING,
    Severity.LOW: DiagnosticLevel.INFORMATION,
}


@dataclass(frozen=True)
class Diagnostic:
    key: str
    range: tuple[int, int, int, int]
    level: DiagnosticLevel
    message: str
    code: str
    action: FixAction
    confidence: Confidence
    source: str = DIAGNOSTIC_SOURCE

    @property
    def line(self) -> int:
        return self.range[0]


class DiagnosticsSurface(Surface):
    """Structured diagnostics with a "mark as fixed" quick fix."""

    name = "diagnostics"

    def _build(self, rendered: RenderedIssue) -> Diagnostic:
        return Diagnostic(
            key=rendered.key,
            range=rendered.range,
            level=_LEVEL_BY_SEVERITY[rendered.severity],
            message=rendered.message,
            code=f"AL-{rendered.issue.id}",
            action=rendered.action,
            confidence=rendered.confidence,
        )

    def actions_at(self, filename: str, line: int) -> list[FixAction]:
        """Quick-fix actions for diagnostics on a 0-based line."""
        return [d.action for d in self.rendered(filename) if d.line == line]


# --------------------------------------------------------------------------- #
# Coordinator                                                                 #
# --------------------------------------------------------------------------- #


class PresentationSync:
    """Keeps every surface in step with the store, the ledger and open files."""

    def __init__(
        self,
        store: IssueStore,
        ledger: DismissalLedger,
        surfaces: list[Surface] | None = None,
        window: int = NEARBY_WINDOW,
    ):
        self._store = store
        self._ledger = ledger
        self._window = window
        self.surfaces: list[Surface] = surfaces if surfaces is not None else [AnnotationSurface(), DiagnosticsSurface()]
        self._open: dict[str, str] = {}
        self._last: dict[str, list[RenderedIssue]] = {}
        self._lock = threading.RLock()
        # Dismissals made through any path re-render everything.
        ledger.subscribe(self.refresh)

    def surface(self, name: str) -> Surface:
        for surface in self.surfaces:
            if surface.name == name:
                return surface
        raise KeyError(name)

    # Host notifications ---------------------------------------------------

    def open_file(self, filename: str, text: str) -> list[RenderedIssue]:
        """The file became visible, or its visible text may have changed."""
        filename = normalize_path(filename)
        with self._lock:
            self._open[filename] = text
            return self._render(filename)

    # Host-facing aliases.
    focus = open_file
    update_text = open_file

    def close_file(self, filename: str) -> None:
        filename = normalize_path(filename)
        with self._lock:
            self._open.pop(filename, None)
            self._last.pop(filename, None)
            for surface in self.surfaces:
                surface.clear(filename)

    def open_files(self) -> list[str]:
        with self._lock:
            return sorted(self._open)

    def refresh(self) -> None:
        """Re-render every open file on every surface."""
        with self._lock:
            for filename in list(self._open):
                self._render(filename)

    def on_ingest(self, result=None) -> None:
        self.refresh()

    # User actions ---------------------------------------------------------

    def mark_as_fixed(self, key: str) -> bool:
        """Dismiss ``key`` for both surfaces. Returns False if persisting failed.

        Raises ValueError when ``key`` is not a ``filename:id:title`` key.
        """
        # The ledger notifies self.refresh once the key is recorded.
        return self._ledger.dismiss(normalize_issue_key(key))

    def restore_all(self) -> bool:
        return self._ledger.restore_all()

    # Reads ------------------------------------------------------------------

    def visible(self, filename: str) -> list[RenderedIssue]:
        with self._lock:
            return list(self._last.get(normalize_path(filename), []))

    def _render(self, filename: str) -> list[RenderedIssue]:
        rendered = render_file(self._store, self._ledger, filename, self._open[filename], self._window)
        self._last[filename] = rendered
        for surface in self.surfaces:
            surface.render(filename, rendered)
        logger.debug("Rendered %d issue(s) for %s", len(rendered), filename)
        return rendered
