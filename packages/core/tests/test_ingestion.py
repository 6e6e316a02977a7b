"""Tests for review ingestion — parsing, per-issue validation, atomic hand-off."""

import json
from unittest.mock import MagicMock

import pytest

from anchorlens_core.errors import IngestionError
from anchorlens_core.ingestion import ReviewIngestion, load_review_file, parse_review
from anchorlens_core.issue_store import IssueStore
from anchorlens_core.models import Issue, ReviewResult, Severity

NEW = "b" * 40
OLD = "a" * 40


def _raw(issue_id=1, filename="a.ts", **extra):
    d = {
        "id": issue_id,
        "severity": "high",
        "filename": filename,
        "line": 5,
        "lineContent": "return x + 1;",
        "title": "Unused variable",
        "comments": "y is never read",
        "category": "maintainability",
    }
    d.update(extra)
    return d


class TestParseReview:
    def test_parses_dict_payload(self):
        result = parse_review({"issues": [_raw()]}, NEW, OLD)

        assert len(result) == 1
        issue = result.issues[0]
        assert issue.severity is Severity.HIGH
        assert issue.line_content == "return x + 1;"
        assert result.new_revision == NEW
        assert result.old_revision == OLD

    def test_parses_json_text(self):
        result = parse_review(json.dumps({"issues": [_raw(), _raw(2)]}), NEW)
        assert [i.id for i in result.issues] == [1, 2]

    def test_parses_fenced_json(self):
        text = "```json\n" + json.dumps({"issues": [_raw()]}) + "\n```"
        result = parse_review(text, NEW)
        assert len(result) == 1

    def test_parses_bare_list(self):
        assert len(parse_review([_raw()], NEW)) == 1

    def test_missing_issues_key_is_empty_review(self):
        assert len(parse_review({}, NEW)) == 0

    def test_backfills_review_commit(self):
        result = parse_review({"issues": [_raw()]}, NEW)
        assert result.issues[0].review_commit == NEW

    def test_keeps_existing_review_commit(self):
        result = parse_review({"issues": [_raw(reviewCommit="c" * 40)]}, NEW)
        assert result.issues[0].review_commit == "c" * 40

    def test_malformed_issues_skipped_not_fatal(self):
        payload = {
            "issues": [
                _raw(1),
                {"id": 2, "title": "no filename"},
                _raw(3, filename=""),
                {"filename": "b.ts", "title": "no id"},
                "not an object",
                _raw(6),
            ]
        }
        result = parse_review(payload, NEW)

        assert [i.id for i in result.issues] == [1, 6]
        assert len(result.rejected) == 4
        assert result.rejected[0].startswith("#1:")

    def test_invalid_json_raises(self):
        with pytest.raises(IngestionError):
            parse_review("{not json", NEW)

    def test_issues_not_a_list_raises(self):
        with pytest.raises(IngestionError):
            parse_review({"issues": "nope"}, NEW)

    def test_unsupported_payload_type_raises(self):
        with pytest.raises(IngestionError):
            parse_review(42, NEW)


class TestLoadReviewFile:
    def test_reads_revision_from_file(self, tmp_path):
        path = tmp_path / "review.json"
        path.write_text(json.dumps({"revision": NEW, "oldRevision": OLD, "issues": [_raw()]}))

        result = load_review_file(path)

        assert result.new_revision == NEW
        assert result.old_revision == OLD
        assert result.issues[0].review_commit == NEW

    def test_explicit_revision_wins(self, tmp_path):
        path = tmp_path / "review.json"
        path.write_text(json.dumps({"revision": NEW, "issues": [_raw()]}))
        assert load_review_file(path, new_revision="d" * 40).new_revision == "d" * 40

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(IngestionError):
            load_review_file(tmp_path / "missing.json")

    def test_fenced_file(self, tmp_path):
        path = tmp_path / "review.json"
        path.write_text("```\n" + json.dumps([_raw()]) + "\n```\n")
        assert len(load_review_file(path, NEW)) == 1


class TestReviewIngestion:
    def test_ingest_replaces_store_and_notifies(self):
        store = IssueStore()
        callback = MagicMock()
        ingestion = ReviewIngestion(store, on_ingested=callback)

        result = ingestion.ingest({"issues": [_raw()]}, NEW)

        assert [i.id for i in store.issues_for("a.ts")] == [1]
        callback.assert_called_once_with(result)

    def test_store_updated_before_notification(self):
        store = IssueStore()
        seen = []
        ingestion = ReviewIngestion(store, on_ingested=lambda r: seen.append(len(store)))
        ingestion.ingest({"issues": [_raw(), _raw(2)]}, NEW)
        assert seen == [2]

    def test_ingest_result_backfills_revision(self):
        store = IssueStore()
        ingestion = ReviewIngestion(store)
        ingestion.ingest_result(ReviewResult(issues=(Issue(id=1, filename="a.ts"),), new_revision=NEW))
        assert store.issues_for("a.ts")[0].review_commit == NEW

    def test_invalid_payload_leaves_store_untouched(self):
        store = IssueStore()
        ingestion = ReviewIngestion(store)
        ingestion.ingest({"issues": [_raw()]}, NEW)

        with pytest.raises(IngestionError):
            ingestion.ingest("garbage", "c" * 40)

        assert store.revision == NEW
        assert len(store) == 1
