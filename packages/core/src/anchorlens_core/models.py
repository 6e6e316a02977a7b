"""Issue and review data models.

Issues arrive from the review generation pipeline as loosely-typed JSON
(camelCase keys, optional fields, severities that are not always one of the
three we know). Everything is normalised once here so the store, resolver
and presentation layers can rely on plain, immutable values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum

from anchorlens_core.errors import MalformedIssueError

logger = logging.getLogger(__name__)

# Length of the revision prefix shown next to each rendered issue.
SHORT_REVISION_LEN = 7


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value) -> Severity:
        """Coerce a wire value to a Severity; anything unknown becomes LOW."""
        if isinstance(value, Severity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.debug("Unknown severity %r, treating as low", value)
            return cls.LOW


_SEVERITY_RANK = {Severity.HIGH: 2, Severity.MEDIUM: 1, Severity.LOW: 0}

# Report and summary order: most severe first.
SEVERITY_ORDER = (Severity.HIGH, Severity.MEDIUM, Severity.LOW)


class Confidence(str, Enum):
    """How trustworthy a resolved location is."""

    EXACT = "exact"
    APPROXIMATE = "approximate"
    STALE = "stale"


def issue_key(filename: str, issue_id: int, title: str) -> str:
    """Build the identity key used for dismissal: ``filename:id:title``."""
    return f"{filename}:{issue_id}:{title}"


def split_issue_key(key: str) -> tuple[str, int, str]:
    """Split an identity key back into ``(filename, id, title)``.

    Titles may contain colons, so only the first two separators count.
    Raises ValueError when the key does not have that shape.
    """
    parts = key.split(":", 2)
    if len(parts) != 3:
        raise ValueError(f"Not an issue key: {key!r}")
    filename, raw_id, title = parts
    return filename, int(raw_id), title


def normalize_issue_key(key: str) -> str:
    """Rewrite a user-supplied key so its filename matches ingested issues.

    ``./src\\a.ts:1:Title`` becomes ``src/a.ts:1:Title``. Raises ValueError for
    a malformed key.
    """
    filename, issue_id, title = split_issue_key(key)
    return issue_key(normalize_path(filename), issue_id, title)


def normalize_path(filename: str) -> str:
    """Return a repository-relative path with forward slashes and no leading ``./``."""
    path = filename.strip().replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def _parse_id(value) -> int:
    if isinstance(value, bool) or value is None:
        raise MalformedIssueError(f"issue id must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise MalformedIssueError(f"issue id must be an integer, got {value!r}")


def _parse_line(value) -> int | None:
    # A missing, zero or negative line means the issue is file-scoped.
    if value is None or isinstance(value, bool):
        return None
    try:
        line = int(value)
    except (TypeError, ValueError):
        return None
    return line if line >= 1 else None


def _optional_text(value) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class Issue:
    """A single reviewer finding tied to a file and optionally a line.

    ``line`` and ``line_content`` describe the file at ``review_commit``; the
    resolver maps them onto whatever the file looks like now.
    """

    id: int
    filename: str
    title: str = ""
    severity: Severity = Severity.LOW
    line: int | None = None
    line_content: str | None = None
    comments: str = ""
    category: str = ""
    suggestion: str | None = None
    review_commit: str | None = None

    @property
    def key(self) -> str:
        return issue_key(self.filename, self.id, self.title)

    @property
    def is_file_scoped(self) -> bool:
        return self.line is None or self.line < 1

    @property
    def short_revision(self) -> str:
        return (self.review_commit or "")[:SHORT_REVISION_LEN]

    def with_review_commit(self, revision: str) -> Issue:
        return replace(self, review_commit=revision)

    @classmethod
    def from_dict(cls, d: dict) -> Issue:
        """Build an Issue from the wire shape produced by the generation pipeline.

        Raises MalformedIssueError when ``filename`` or ``id`` is unusable.
        """
        if not isinstance(d, dict):
            raise MalformedIssueError(f"issue must be an object, got {type(d).__name__}")
        filename = d.get("filename") or d.get("file")
        if not filename or not str(filename).strip():
            raise MalformedIssueError(f"issue {d.get('id')!r} has no filename")
        if "id" not in d:
            raise MalformedIssueError(f"issue in {filename!r} has no id")

        return cls(
            id=_parse_id(d["id"]),
            filename=normalize_path(str(filename)),
            title=str(d.get("title") or ""),
            severity=Severity.parse(d.get("severity", "low")),
            line=_parse_line(d.get("line")),
            line_content=_optional_text(d.get("lineContent", d.get("line_content"))),
            comments=str(d.get("comments", d.get("comment")) or ""),
            category=str(d.get("category") or ""),
            suggestion=_optional_text(d.get("suggestion")) or None,
            review_commit=_optional_text(d.get("reviewCommit", d.get("review_commit"))) or None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "filename": self.filename,
            "line": self.line,
            "lineContent": self.line_content,
            "title": self.title,
            "comments": self.comments,
            "category": self.category,
            "suggestion": self.suggestion,
            "reviewCommit": self.review_commit,
        }


@dataclass(frozen=True)
class ReviewResult:
    """The complete, atomic output of one review pass.

    ``rejected`` carries one human-readable reason per issue that failed
    validation during parsing; those issues are not part of ``issues``.
    """

    issues: tuple[Issue, ...] = ()
    new_revision: str = ""
    old_revision: str | None = None
    rejected: tuple[str, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.issues)


@dataclass(frozen=True)
class ResolvedLocation:
    """Where an issue lives in the current text. Derived, never stored."""

    issue: Issue
    current_line: int | None
    confidence: Confidence

    @property
    def is_visible(self) -> bool:
        return self.confidence is not Confidence.STALE and self.current_line is not None

    @property
    def zero_based_line(self) -> int | None:
        if self.current_line is None:
            return None
        return self.current_line - 1
