"""Tests for the CLI entry point."""

import json
import subprocess
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from anchorlens_cli.auth import resolve_github_token
from anchorlens_cli.cli import _build_store, main
from anchorlens_store.base import BaseStore, StoreError
from anchorlens_store.gist import GistStore
from anchorlens_store.noop import NoOpStore
from anchorlens_store.sqlite import SQLiteStore

KEY = "a.ts:1:Unused variable"
REVISION = "0123456789abcdef0123456789abcdef01234567"


def _make_config(store="noop", **extra):
    config = {
        "store": store,
        "store_path": ".anchorlens.db",
        "gist_id": None,
        "github_token": None,
        "review_file": "review/review.json",
        "review_dir": "review",
        "search_window": 10,
        "log_level": "WARNING",
    }
    config.update(extra)
    return config


def _make_store(dismissed=()):
    store = MagicMock(spec=BaseStore)
    store.load_dismissed.return_value = set(dismissed)
    return store


def _patch_common(mocker, config=None, store=None):
    """Patch load_config and _build_store for most tests."""
    cfg = config or _make_config()
    store = store or _make_store()
    mocker.patch("anchorlens_core.config.load_config", return_value=cfg)
    mocker.patch("anchorlens_cli.cli._build_store", return_value=store)
    return cfg, store


def _invoke(args, **kwargs):
    # Wide terminal so rich tables never wrap titles or keys.
    return CliRunner(env={"COLUMNS": "240"}).invoke(main, args, **kwargs)


@pytest.fixture
def workspace(tmp_path):
    """A working tree with a.ts edited since the review and b.ts deleted."""
    issues = [
        {
            "id": 1,
            "severity": "medium",
            "filename": "a.ts",
            "line": 2,
            "lineContent": "const y = 2;",
            "title": "Unused variable",
            "comments": "y is never read",
            "category": "maintainability",
        },
        {
            "id": 2,
            "severity": "high",
            "filename": "a.ts",
            "line": 5,
            "lineContent": "eval(input);",
            "title": "Dangerous eval",
            "category": "security",
        },
        {"id": 3, "severity": "low", "filename": "b.ts", "line": 1, "lineContent": "x", "title": "Gone"},
    ]
    review = tmp_path / "review.json"
    review.write_text(json.dumps({"revision": REVISION, "issues": issues}))
    (tmp_path / "a.ts").write_text("// header\nconst x = 1;\nconst y = 2;\n")
    (tmp_path / "c.ts").write_text("clean\n")
    return tmp_path


class TestShow:
    def test_shows_both_surfaces(self, mocker, workspace):
        _patch_common(mocker)

        result = _invoke(["show", "a.ts", "--review", str(workspace / "review.json"), "--root", str(workspace)])

        assert result.exit_code == 0, result.output
        assert "Annotations" in result.output
        assert "Diagnostics" in result.output
        assert "Unused variable" in result.output
        assert "approximate" in result.output
        assert "AL-1" in result.output
        # eval(input); is gone from the file, so issue 2 is hidden as stale.
        assert "Dangerous eval" not in result.output
        assert "1 stale" in result.output

    def test_diagnostics_only(self, mocker, workspace):
        _patch_common(mocker)

        result = _invoke(
            [
                "show",
                "a.ts",
                "--review",
                str(workspace / "review.json"),
                "--root",
                str(workspace),
                "--surface",
                "diagnostics",
            ]
        )

        assert result.exit_code == 0, result.output
        assert "Annotations" not in result.output
        assert "warning" in result.output

    def test_dismissed_issue_hidden(self, mocker, workspace):
        _patch_common(mocker, store=_make_store(dismissed={KEY}))

        result = _invoke(["show", "a.ts", "--review", str(workspace / "review.json"), "--root", str(workspace)])

        assert result.exit_code == 0, result.output
        assert "Unused variable" not in result.output
        assert "1 dismissed" in result.output

    def test_file_without_issues(self, mocker, workspace):
        _patch_common(mocker)

        result = _invoke(["show", "c.ts", "--review", str(workspace / "review.json"), "--root", str(workspace)])

        assert result.exit_code == 0
        assert "No issues reported for c.ts" in result.output

    def test_missing_file(self, mocker, workspace):
        _patch_common(mocker)

        result = _invoke(["show", "b.ts", "--review", str(workspace / "review.json"), "--root", str(workspace)])

        assert result.exit_code != 0
        assert "File not found" in result.output

    def test_missing_review_file(self, mocker, workspace):
        _patch_common(mocker)

        result = _invoke(["show", "a.ts", "--review", str(workspace / "nope.json"), "--root", str(workspace)])

        assert result.exit_code != 0
        assert "Review file not found" in result.output

    def test_invalid_review_file(self, mocker, workspace):
        _patch_common(mocker)
        (workspace / "bad.json").write_text("{not json")

        result = _invoke(["show", "a.ts", "--review", str(workspace / "bad.json"), "--root", str(workspace)])

        assert result.exit_code == 1

    def test_malformed_issue_reported_and_skipped(self, mocker, workspace):
        _patch_common(mocker)
        review = workspace / "partial.json"
        review.write_text(
            json.dumps(
                {
                    "revision": REVISION,
                    "issues": [
                        {"id": 1, "filename": "a.ts", "line": 3, "lineContent": "const y = 2;", "title": "Unused"},
                        {"id": 2, "title": "no filename"},
                    ],
                }
            )
        )

        result = _invoke(["show", "a.ts", "--review", str(review), "--root", str(workspace)])

        assert result.exit_code == 0, result.output
        assert "Skipped malformed issue #1" in result.output
        assert "exact" in result.output


class TestStatus:
    def test_counts_per_file(self, mocker, workspace):
        _patch_common(mocker)

        result = _invoke(["status", "--review", str(workspace / "review.json"), "--root", str(workspace)])

        assert result.exit_code == 0, result.output
        assert "Review status" in result.output
        assert REVISION[:7] in result.output
        assert "a.ts" in result.output
        assert "b.ts" in result.output

    def test_empty_review(self, mocker, tmp_path):
        _patch_common(mocker)
        review = tmp_path / "review.json"
        review.write_text(json.dumps({"revision": REVISION, "issues": []}))

        result = _invoke(["status", "--review", str(review), "--root", str(tmp_path)])

        assert result.exit_code == 0
        assert "The review contains no issues." in result.output

    def test_review_file_from_config(self, mocker, workspace):
        _patch_common(mocker, config=_make_config(review_file=str(workspace / "review.json")))

        result = _invoke(["status", "--root", str(workspace)])

        assert result.exit_code == 0, result.output
        assert "a.ts" in result.output


class TestDismiss:
    def test_dismiss_persists_key(self, mocker):
        _, store = _patch_common(mocker)

        result = _invoke(["dismiss", KEY])

        assert result.exit_code == 0, result.output
        assert "Marked as fixed" in result.output
        store.save_dismissed.assert_called_once_with({KEY})

    def test_key_filename_normalised(self, mocker):
        _, store = _patch_common(mocker)

        result = _invoke(["dismiss", "./a.ts:1:Unused variable"])

        assert result.exit_code == 0, result.output
        store.save_dismissed.assert_called_once_with({KEY})

    def test_already_dismissed_under_normalised_key(self, mocker):
        _, store = _patch_common(mocker, store=_make_store(dismissed={KEY}))

        result = _invoke(["dismiss", "./a.ts:1:Unused variable"])

        assert "Already dismissed" in result.output
        store.save_dismissed.assert_not_called()

    def test_invalid_key(self, mocker):
        _, store = _patch_common(mocker)

        result = _invoke(["dismiss", "not-a-key"])

        assert result.exit_code == 2
        assert "Invalid issue key" in result.output
        store.save_dismissed.assert_not_called()

    def test_already_dismissed(self, mocker):
        _, store = _patch_common(mocker, store=_make_store(dismissed={KEY}))

        result = _invoke(["dismiss", KEY])

        assert result.exit_code == 0
        assert "Already dismissed" in result.output
        store.save_dismissed.assert_not_called()

    def test_persistence_failure_warns_but_succeeds(self, mocker):
        store = _make_store()
        store.save_dismissed.side_effect = StoreError("disk full")
        _patch_common(mocker, store=store)

        result = _invoke(["dismiss", KEY])

        assert result.exit_code == 0
        assert "could not be saved" in result.output
        assert "Marked as fixed" in result.output

    def test_store_closed_after_command(self, mocker):
        _, store = _patch_common(mocker)

        _invoke(["dismiss", KEY])

        store.close.assert_called_once()


class TestRestore:
    def test_restore_with_yes(self, mocker):
        _, store = _patch_common(mocker, store=_make_store(dismissed={KEY, "b.ts:2:Other"}))

        result = _invoke(["restore", "--yes"])

        assert result.exit_code == 0, result.output
        assert "Restored 2 issue(s)" in result.output
        store.save_dismissed.assert_called_once_with(set())

    def test_restore_declined(self, mocker):
        _, store = _patch_common(mocker, store=_make_store(dismissed={KEY}))

        result = _invoke(["restore"], input="n\n")

        assert result.exit_code == 0
        store.save_dismissed.assert_not_called()

    def test_nothing_to_restore(self, mocker):
        _patch_common(mocker)

        result = _invoke(["restore", "--yes"])

        assert result.exit_code == 0
        assert "No dismissed issues." in result.output


class TestDismissed:
    def test_lists_keys(self, mocker):
        _patch_common(mocker, store=_make_store(dismissed={KEY, "src/b.py:4:Note: check this"}))

        result = _invoke(["dismissed"])

        assert result.exit_code == 0, result.output
        assert "Unused variable" in result.output
        assert "Note: check this" in result.output
        assert "src/b.py" in result.output

    def test_empty(self, mocker):
        _patch_common(mocker)

        result = _invoke(["dismissed"])

        assert result.exit_code == 0
        assert "No dismissed issues." in result.output


class TestReport:
    def test_writes_report(self, mocker, workspace):
        _patch_common(mocker)
        out_dir = workspace / "out"

        result = _invoke(["report", "--review", str(workspace / "review.json"), "--out", str(out_dir)])

        assert result.exit_code == 0, result.output
        assert "Report written" in result.output
        assert "(3 issue(s))" in result.output
        body = (out_dir / "review.md").read_text(encoding="utf-8")
        assert "### 2. Dangerous eval" in body
        assert "| **Total** | **3** |" in body


class TestMainGroup:
    def test_invalid_config_is_usage_error(self, mocker):
        mocker.patch("anchorlens_core.config.load_config", side_effect=ValueError("search_window must not be negative"))

        result = _invoke(["dismissed"])

        assert result.exit_code == 2
        assert "search_window" in result.output

    def test_store_error_reported(self, mocker):
        mocker.patch("anchorlens_core.config.load_config", return_value=_make_config(store="sqlite"))
        mocker.patch("anchorlens_cli.cli._build_store", side_effect=StoreError("locked"))

        result = _invoke(["dismissed"])

        assert result.exit_code == 1
        assert "Could not open the dismissal store" in result.output

    def test_gist_store_resolves_token(self, mocker):
        mocker.patch("anchorlens_core.config.load_config", return_value=_make_config(store="gist", gist_id="g1"))
        mocker.patch("anchorlens_cli.auth.resolve_github_token", return_value="gh-tok")
        build = mocker.patch("anchorlens_cli.cli._build_store", return_value=_make_store())

        result = _invoke(["dismissed"])

        assert result.exit_code == 0, result.output
        assert build.call_args[0][0]["github_token"] == "gh-tok"

    def test_token_not_resolved_for_local_store(self, mocker):
        _patch_common(mocker)
        resolve = mocker.patch("anchorlens_cli.auth.resolve_github_token")

        _invoke(["dismissed"])

        resolve.assert_not_called()


class TestBuildStore:
    def test_noop(self):
        assert isinstance(_build_store(_make_config(store="noop")), NoOpStore)

    def test_sqlite(self, tmp_path):
        store = _build_store(_make_config(store="sqlite", store_path=str(tmp_path / "ledger.db")))
        assert isinstance(store, SQLiteStore)
        store.close()

    def test_gist(self, mocker):
        mocker.patch("github.Github")
        store = _build_store(_make_config(store="gist", gist_id="g1", github_token="tok"))
        assert isinstance(store, GistStore)

    def test_gist_without_token_falls_back(self):
        assert isinstance(_build_store(_make_config(store="gist", gist_id="g1")), NoOpStore)

    def test_unknown_store_falls_back(self):
        assert isinstance(_build_store(_make_config(store="redis")), NoOpStore)


class TestResolveGithubToken:
    def test_gist_token_preferred(self, monkeypatch):
        monkeypatch.setenv("ANCHORLENS_GIST_TOKEN", "gist-tok")
        monkeypatch.setenv("GITHUB_TOKEN", "repo-tok")
        assert resolve_github_token() == "gist-tok"

    def test_github_token_env(self, monkeypatch):
        monkeypatch.delenv("ANCHORLENS_GIST_TOKEN", raising=False)
        monkeypatch.setenv("GITHUB_TOKEN", "repo-tok")
        assert resolve_github_token() == "repo-tok"

    def test_gh_cli_fallback(self, monkeypatch, mocker):
        monkeypatch.delenv("ANCHORLENS_GIST_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch(
            "anchorlens_cli.auth.subprocess.run",
            return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout="gh-tok\n", stderr=""),
        )
        assert resolve_github_token() == "gh-tok"

    def test_gh_not_installed(self, monkeypatch, mocker):
        monkeypatch.delenv("ANCHORLENS_GIST_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch("anchorlens_cli.auth.subprocess.run", side_effect=FileNotFoundError)
        assert resolve_github_token() is None

    def test_gh_not_logged_in(self, monkeypatch, mocker):
        monkeypatch.delenv("ANCHORLENS_GIST_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch(
            "anchorlens_cli.auth.subprocess.run",
            return_value=subprocess.CompletedProcess(args=[], returncode=1, stdout="", stderr="not logged in"),
        )
        assert resolve_github_token() is None
