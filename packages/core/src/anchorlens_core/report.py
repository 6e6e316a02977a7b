"""Human-readable Markdown report for a review.

Groups issues by severity (high, then medium, then low) and closes with a
per-tier summary table. Nothing in the engine reads this file back; it is
for people, and for test fixtures that want a readable view of a review.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from anchorlens_core.issue_store import issue_sort_key
from anchorlens_core.models import SEVERITY_ORDER, ReviewResult, Severity

REPORT_FILENAME = "review.md"

_SEVERITY_MARK = {Severity.HIGH: "🔴", Severity.MEDIUM: "🟡", Severity.LOW: "🟢"}


def _location(issue) -> str:
    if issue.is_file_scoped:
        return f"`{issue.filename}`"
    return f"`{issue.filename}:{issue.line}`"


def render_report(result: ReviewResult, generated_at: str | None = None) -> str:
    generated_at = generated_at or datetime.now(timezone.utc).isoformat()
    lines = ["# Code Review\n", f"**Generated**: {generated_at}\n"]

    if result.old_revision:
        lines.append(f"**Commit Range**: `{result.old_revision[:7]}` → `{result.new_revision[:7]}`\n")
    elif result.new_revision:
        lines.append(f"**Commit**: `{result.new_revision[:7]}`\n")

    by_severity = {s: [] for s in SEVERITY_ORDER}
    for issue in sorted(result.issues, key=issue_sort_key):
        by_severity[issue.severity].append(issue)

    if not result.issues:
        lines.append("> No issues found. The changes look good.\n")

    for severity in SEVERITY_ORDER:
        issues = by_severity[severity]
        if not issues:
            continue
        lines.append(f"## {_SEVERITY_MARK[severity]} {severity.value.capitalize()} ({len(issues)})\n")
        for issue in issues:
            lines.append(f"### {issue.id}. {issue.title}\n")
            lines.append(f"- **Location**: {_location(issue)}")
            if issue.category:
                lines.append(f"- **Category**: {issue.category}")
            if issue.line_content:
                lines.append(f"- **Code**: `{issue.line_content.strip()}`")
            lines.append("")
            if issue.comments:
                lines.append(f"{issue.comments}\n")
            if issue.suggestion:
                lines.append(f"**Suggestion**: {issue.suggestion}\n")

    lines.append("## Summary\n")
    lines.append("| Severity | Count |")
    lines.append("|----------|:-----:|")
    for severity in SEVERITY_ORDER:
        lines.append(f"| {severity.value.capitalize()} | {len(by_severity[severity])} |")
    lines.append(f"| **Total** | **{len(result.issues)}** |")

    return "\n".join(lines) + "\n"


def write_report(result: ReviewResult, review_dir: str | Path = "review") -> Path:
    """Write the report to ``<review_dir>/review.md`` and return its path."""
    directory = Path(review_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / REPORT_FILENAME
    path.write_text(render_report(result), encoding="utf-8")
    return path
