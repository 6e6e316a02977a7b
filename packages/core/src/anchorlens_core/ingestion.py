"""Review ingestion — the boundary with the review generation pipeline.

The pipeline (commit watcher + model call, not part of this package) hands
over one finished review: ``{"issues": [...]}`` plus the revision it was
generated against. We validate it issue by issue, stamp the revision on
issues that lack one, and replace the store contents in one step.

A malformed issue never sinks the batch: it is logged, recorded in
``ReviewResult.rejected`` and skipped.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

from anchorlens_core.errors import IngestionError, MalformedIssueError
from anchorlens_core.issue_store import IssueStore
from anchorlens_core.models import Issue, ReviewResult

logger = logging.getLogger(__name__)

# Model output is frequently wrapped in a Markdown code fence.
_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*\n(.*?)\n\s*```\s*$", re.DOTALL)


def _decode(payload) -> list:
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        text = payload.strip()
        match = _FENCE_RE.match(text)
        if match:
            text = match.group(1)
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise IngestionError(f"Review payload is not valid JSON: {e}") from e

    if isinstance(payload, dict):
        issues = payload.get("issues")
        if issues is None:
            return []
        if not isinstance(issues, list):
            raise IngestionError(f"'issues' must be a list, got {type(issues).__name__}")
        return issues
    if isinstance(payload, list):
        return payload
    raise IngestionError(f"Unsupported review payload type: {type(payload).__name__}")


def parse_review(payload, new_revision: str, old_revision: str | None = None) -> ReviewResult:
    """Parse a review payload into a ReviewResult.

    ``payload`` may be a dict with an ``issues`` list, a bare list of issue
    dicts, or the JSON text of either (optionally fenced). Raises
    IngestionError only when the payload as a whole cannot be read.
    """
    raw_issues = _decode(payload)
    issues: list[Issue] = []
    rejected: list[str] = []

    for index, raw in enumerate(raw_issues):
        try:
            issue = Issue.from_dict(raw)
        except MalformedIssueError as e:
            logger.warning("Skipping issue #%d: %s", index, e)
            rejected.append(f"#{index}: {e}")
            continue
        if not issue.review_commit and new_revision:
            issue = issue.with_review_commit(new_revision)
        issues.append(issue)

    return ReviewResult(
        issues=tuple(issues),
        new_revision=new_revision,
        old_revision=old_revision,
        rejected=tuple(rejected),
    )


def load_review_file(path: str | Path, new_revision: str | None = None) -> ReviewResult:
    """Read a review JSON file as written by the generation pipeline.

    When ``new_revision`` is not given, the file's own ``revision`` /
    ``oldRevision`` fields are used.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise IngestionError(f"Could not read review file {p}: {e}") from e

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        # Let parse_review deal with fenced or otherwise wrapped text.
        payload = text

    old_revision = None
    if isinstance(payload, dict):
        new_revision = new_revision or payload.get("revision") or payload.get("newRevision")
        old_revision = payload.get("oldRevision")
    return parse_review(payload, new_revision or "", old_revision)


class ReviewIngestion:
    """Push finished reviews into the IssueStore and trigger a re-render."""

    def __init__(self, store: IssueStore, on_ingested: Callable[[ReviewResult], None] | None = None):
        self._store = store
        self._on_ingested = on_ingested
        self._lock = threading.Lock()

    def ingest(self, payload, new_revision: str, old_revision: str | None = None) -> ReviewResult:
        result = parse_review(payload, new_revision, old_revision)
        return self.ingest_result(result)

    def ingest_result(self, result: ReviewResult) -> ReviewResult:
        revision = result.new_revision
        if revision and any(not i.review_commit for i in result.issues):
            result = replace(
                result,
                issues=tuple(i if i.review_commit else i.with_review_commit(revision) for i in result.issues),
            )
        with self._lock:
            self._store.ingest(result)
        if result.rejected:
            logger.warning("Ingested review with %d rejected issue(s)", len(result.rejected))
        if self._on_ingested is not None:
            self._on_ingested(result)
        return result
