"""Exceptions raised by anchorlens_core.

A location that can no longer be found is not an error: it resolves to
``Confidence.STALE`` and is silently left out of rendering. These exceptions
cover input that cannot be used at all.
"""

from __future__ import annotations


class AnchorlensError(Exception):
    """Base class for every error raised by the reconciliation engine."""


class MalformedIssueError(AnchorlensError):
    """A single issue record is missing its filename or id.

    Raised per issue so ingestion can skip the record and keep the rest of
    the batch.
    """


class IngestionError(AnchorlensError):
    """The review payload as a whole is unusable (not JSON, wrong shape)."""
