"""Wiring for the reconciliation engine.

One IssueStore, one DismissalLedger, one PresentationSync over both
surfaces, and a ReviewIngestion that re-renders after every ingest. Hosts
(an editor plugin, the CLI) build one ReviewEngine per workspace and talk
to it instead of assembling the pieces themselves, which guarantees the two
surfaces share a single ledger.
"""

from __future__ import annotations

import logging

from anchorlens_core.ingestion import ReviewIngestion
from anchorlens_core.issue_store import IssueStore
from anchorlens_core.ledger import DismissalLedger
from anchorlens_core.models import ReviewResult, normalize_path
from anchorlens_core.presentation import AnnotationSurface, DiagnosticsSurface, PresentationSync, Sink
from anchorlens_core.resolver import NEARBY_WINDOW, resolve

logger = logging.getLogger(__name__)


class ReviewEngine:
    def __init__(
        self,
        backend=None,
        window: int = NEARBY_WINDOW,
        annotation_sink: Sink | None = None,
        diagnostics_sink: Sink | None = None,
    ):
        self.window = window
        self.store = IssueStore()
        self.ledger = DismissalLedger(backend)
        self.annotations = AnnotationSurface(annotation_sink)
        self.diagnostics = DiagnosticsSurface(diagnostics_sink)
        self.sync = PresentationSync(self.store, self.ledger, [self.annotations, self.diagnostics], window)
        self.ingestion = ReviewIngestion(self.store, on_ingested=self.sync.on_ingest)

    def ingest(self, payload, new_revision: str, old_revision: str | None = None) -> ReviewResult:
        return self.ingestion.ingest(payload, new_revision, old_revision)

    def ingest_result(self, result: ReviewResult) -> ReviewResult:
        return self.ingestion.ingest_result(result)

    def file_status(self, filename: str, text: str) -> dict[str, int]:
        """Count a file's issues: visible, dismissed, stale and file-scoped."""
        counts = {"total": 0, "visible": 0, "dismissed": 0, "stale": 0, "file_scoped": 0}
        for issue in self.store.issues_for(normalize_path(filename)):
            counts["total"] += 1
            if self.ledger.is_dismissed(issue):
                counts["dismissed"] += 1
            elif issue.is_file_scoped:
                counts["file_scoped"] += 1
            elif resolve(issue, text, self.window).is_visible:
                counts["visible"] += 1
            else:
                counts["stale"] += 1
        return counts
