"""Tests for the CLI entry point and commands."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import yaml
from click.testing import CliRunner
from rich.console import Console

from redline_cli.cli import main
from redline_cli.commands.review import parse_line_range
from redline_core.config import DEFAULT_CONFIG
from redline_core.git.changes import ChangeSet, PassFailure
from redline_core.git.repository import GitRepository
from redline_core.models import ChangedFile, CommitInfo, FileStatus
from redline_core.orchestrator import SessionOrchestrator
from redline_store.file import FileStore

STARTED = datetime(2026, 10, 19, 10, 15, 0, tzinfo=timezone.utc)

FILES = [
    ChangedFile(path="src/app.py", status=FileStatus.MODIFIED, additions=1, deletions=1),
    ChangedFile(path="src/new.py", status=FileStatus.ADDED, additions=2),
]


class StubResolver:
    def __init__(self, files=None, failures=None):
        self.files = list(FILES if files is None else files)
        self.failures = failures or []

    def resolve(self, base_ref, head_ref="HEAD"):
        return ChangeSet(files=list(self.files), failures=list(self.failures))


@pytest.fixture(autouse=True)
def wide_console(mocker):
    """Give every command a wide console so table cells are not wrapped."""
    for module in ("changes", "commits", "review", "history", "stats", "fix", "init"):
        mocker.patch(f"redline_cli.commands.{module}.console", Console(width=200))


def _make_repository(tmp_path):
    repo = MagicMock(spec=GitRepository)
    repo.root = tmp_path
    repo.is_valid_ref.return_value = True
    repo.file_at_ref.side_effect = lambda path, ref: {"src/app.py": "def main():\n    return 1\n"}.get(path, "")
    repo.working_file.side_effect = lambda path: {
        "src/app.py": "def main():\n    return 2\n",
        "src/new.py": "a = 1\nb = 2\n",
    }.get(path, "")
    return repo


def _invoke(tmp_path, args, input=None, files=None, failures=None, config=None, handoff=None):
    repository = _make_repository(tmp_path)
    store = FileStore(tmp_path)
    orchestrator = SessionOrchestrator(
        repository,
        store,
        handoff=handoff,
        resolver=StubResolver(files=files, failures=failures),
        clock=lambda: STARTED,
    )
    obj = {
        "config": {**DEFAULT_CONFIG, **(config or {})},
        "repository": repository,
        "store": store,
        "orchestrator": orchestrator,
    }
    return CliRunner().invoke(main, args, input=input, obj=obj)


def _latest(tmp_path):
    return (tmp_path / ".redline" / "latest.toml").read_text()


# ---------------------------------------------------------------------------
# Group options
# ---------------------------------------------------------------------------


class TestGroup:
    def test_invalid_config_is_a_usage_error(self, tmp_path):
        (tmp_path / ".redline.yml").write_text("default_severity: blocker\n")
        result = CliRunner().invoke(main, ["--repo", str(tmp_path), "history"])
        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_not_a_repository(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        result = CliRunner().invoke(main, ["--repo", str(plain), "changes"])
        assert result.exit_code == 1
        assert "not a git repository" in result.output


# ---------------------------------------------------------------------------
# changes
# ---------------------------------------------------------------------------


class TestChangesCommand:
    def test_lists_files(self, tmp_path):
        result = _invoke(tmp_path, ["changes"])
        assert result.exit_code == 0
        assert "src/app.py" in result.output
        assert "src/new.py" in result.output
        assert "2 file(s) changed, +3 -1" in result.output

    def test_no_changes(self, tmp_path):
        result = _invoke(tmp_path, ["changes"], files=[])
        assert result.exit_code == 0
        assert "No changes found" in result.output

    def test_pass_failures_reported(self, tmp_path):
        failures = [PassFailure(name="committed", error="bad revision")]
        result = _invoke(tmp_path, ["changes"], failures=failures)
        assert "Skipped committed changes: bad revision" in result.output

    def test_does_not_leave_a_session(self, tmp_path):
        result = _invoke(tmp_path, ["changes"])
        assert not (tmp_path / ".redline").exists()
        assert result.exit_code == 0


# ---------------------------------------------------------------------------
# review
# ---------------------------------------------------------------------------


class TestParseLineRange:
    def test_single(self):
        assert parse_line_range("12") == (12, None)

    def test_range(self):
        assert parse_line_range("12-15") == (12, 15)

    @pytest.mark.parametrize("token", ["", "x", "3-", "-3", "1-a"])
    def test_invalid(self, token):
        with pytest.raises(ValueError):
            parse_line_range(token)


class TestReviewCommand:
    def test_comment_and_submit(self, tmp_path):
        commands = "\n".join(
            [
                "comment 1 2 must_fix",
                "Use a named constant",
                "reviewed src/app.py",
                "submit",
                "",  # accept suggested decision
                "Needs one fix",
            ]
        )
        result = _invoke(tmp_path, ["review", "--no-auto-fix"], input=commands + "\n")

        assert result.exit_code == 0, result.output
        assert "Review submitted" in result.output
        latest = _latest(tmp_path)
        assert 'decision = "request_changes"' in latest
        assert 'summary = "Needs one fix"' in latest
        assert 'severity = "must_fix"' in latest
        assert 'body = "Use a named constant"' in latest
        assert 'codeContext = "return 2"' in latest
        assert 'path = "src/app.py"\nstatus = "modified"\nreviewed = true' in latest

    def test_range_comment_and_default_severity(self, tmp_path):
        commands = "comment src/new.py 1-2\nWhole file\nsubmit\n\n\n"
        result = _invoke(tmp_path, ["review", "--no-auto-fix"], input=commands)

        assert result.exit_code == 0, result.output
        latest = _latest(tmp_path)
        assert "endLine = 2" in latest
        assert 'severity = "suggestion"' in latest
        assert 'decision = "comment"' in latest

    def test_configured_default_severity(self, tmp_path):
        commands = "comment 2 1\nStyle\nsubmit\n\n\n"
        result = _invoke(tmp_path, ["review", "--no-auto-fix"], input=commands, config={"default_severity": "nitpick"})
        assert result.exit_code == 0, result.output
        assert 'severity = "nitpick"' in _latest(tmp_path)

    def test_edit_resolve_and_delete(self, tmp_path):
        commands = "\n".join(
            [
                "comment 1 1 nitpick",
                "first",
                "comment 1 2 question",
                "to be removed",
                "edit 1",
                "second",
                "question",
                "resolve comment-1",
                "delete 2",
                "comments",
                "submit",
                "",
                "",
            ]
        )
        result = _invoke(tmp_path, ["review", "--no-auto-fix"], input=commands + "\n")

        assert result.exit_code == 0, result.output
        assert "Deleted comment-2" in result.output
        latest = _latest(tmp_path)
        assert 'body = "second"' in latest
        assert 'severity = "question"' in latest
        assert "resolved = true" in latest
        assert "to be removed" not in latest
        assert "totalComments = 1" in latest

    def test_cancel_discards_review(self, tmp_path):
        commands = "comment 1 1\nnote\ncancel\ny\n"
        result = _invoke(tmp_path, ["review"], input=commands)

        assert result.exit_code == 0, result.output
        assert "Review cancelled" in result.output
        assert not (tmp_path / ".redline" / "latest.toml").exists()

    def test_cancel_can_be_declined(self, tmp_path):
        commands = "comment 1 1\nnote\ncancel\nn\nsubmit\n\n\n"
        result = _invoke(tmp_path, ["review", "--no-auto-fix"], input=commands)
        assert result.exit_code == 0, result.output
        assert 'body = "note"' in _latest(tmp_path)

    def test_yes_skips_cancel_confirmation(self, tmp_path):
        result = _invoke(tmp_path, ["review", "--yes"], input="comment 1 1\nnote\ncancel\n")
        assert result.exit_code == 0, result.output
        assert "Review cancelled" in result.output

    def test_errors_keep_the_loop_running(self, tmp_path):
        commands = "\n".join(
            [
                "bogus",
                "comment 9 1",
                "comment elsewhere.py 1",
                "comment 1 0",
                "comment 1 x",
                "comment 1 1 blocker",
                "edit 42",
                "cancel",
            ]
        )
        result = _invoke(tmp_path, ["review"], input=commands + "\n")

        assert result.exit_code == 0, result.output
        assert "Unknown command 'bogus'" in result.output
        assert "No file #9" in result.output
        assert "elsewhere.py is not part of this review" in result.output
        assert "Line numbers are 1-indexed" in result.output
        assert "Invalid line 'x'" in result.output
        assert "Unknown severity 'blocker'" in result.output
        assert "No comment comment-42" in result.output

    def test_numeric_path_wins_over_index(self, tmp_path):
        files = [
            ChangedFile(path="src/app.py", status=FileStatus.MODIFIED),
            ChangedFile(path="2024", status=FileStatus.ADDED),
        ]
        commands = "comment 2024 1\nOn the file named 2024\ncomment 1 1\nOn the first file\nsubmit\n\n\n"
        result = _invoke(tmp_path, ["review", "--no-auto-fix"], input=commands, files=files)

        assert result.exit_code == 0, result.output
        latest = _latest(tmp_path)
        assert 'file = "2024"\nline = 1' in latest
        assert 'file = "src/app.py"\nline = 1' in latest

    def test_empty_comment_discarded(self, tmp_path):
        result = _invoke(tmp_path, ["review"], input="comment 1 1\n\ncancel\n")
        assert "Empty comment discarded" in result.output

    def test_help_and_files(self, tmp_path):
        result = _invoke(tmp_path, ["review"], input="help\nfiles\ncancel\n")
        assert "Commands:" in result.output
        assert "src/new.py" in result.output

    def test_diff(self, tmp_path):
        result = _invoke(tmp_path, ["review"], input="diff 1\ncancel\n")
        assert "-    return 1" in result.output
        assert "+    return 2" in result.output

    def test_stats(self, tmp_path):
        commands = "comment 1 1 must_fix\nx\nreviewed 2\nstats\ncancel\ny\n"
        result = _invoke(tmp_path, ["review"], input=commands)
        assert "Files reviewed: 1/2" in result.output
        assert "Must Fix 1" in result.output

    def test_no_changes(self, tmp_path):
        result = _invoke(tmp_path, ["review"], files=[])
        assert result.exit_code == 0
        assert "Nothing to review" in result.output

    def test_auto_fix_without_agent_warns_but_saves(self, tmp_path):
        result = _invoke(tmp_path, ["review", "--auto-fix"], input="submit\n\n\n")

        assert result.exit_code == 0, result.output
        assert "No auto-fix command configured" in result.output
        assert (tmp_path / ".redline" / "latest.toml").exists()

    def test_auto_fix_hands_off_latest(self, tmp_path):
        handoff = MagicMock()
        result = _invoke(tmp_path, ["review", "--auto-fix"], input="submit\n\n\n", handoff=handoff)

        assert result.exit_code == 0, result.output
        handoff.notify.assert_called_once_with(tmp_path / ".redline" / "latest.toml")

    def test_auto_fix_prompted_when_not_given(self, tmp_path):
        handoff = MagicMock()
        result = _invoke(
            tmp_path,
            ["review"],
            input="submit\n\n\n\n",
            handoff=handoff,
            config={"auto_fix_command": "agent {review}"},
        )
        assert result.exit_code == 0, result.output
        assert "Hand the review to the auto-fix agent?" in result.output
        handoff.notify.assert_called_once()


# ---------------------------------------------------------------------------
# history / stats / latest
# ---------------------------------------------------------------------------


def _submit(tmp_path, commands):
    result = _invoke(tmp_path, ["review", "--no-auto-fix"], input=commands)
    assert result.exit_code == 0, result.output


class TestHistoryCommand:
    def test_empty(self, tmp_path):
        result = _invoke(tmp_path, ["history"])
        assert result.exit_code == 0
        assert "No reviews found" in result.output

    def test_lists_reviews(self, tmp_path):
        _submit(tmp_path, "comment 1 1 must_fix\nx\nsubmit\n\n\n")
        result = _invoke(tmp_path, ["history"])
        assert result.exit_code == 0
        assert "review-2026-10-19-101500" in result.output
        assert "Changes Requested" in result.output

    def test_limit(self, tmp_path):
        _submit(tmp_path, "submit\n\n\n")
        _submit(tmp_path, "submit\n\n\n")
        result = _invoke(tmp_path, ["history", "--limit", "1"])
        assert result.output.count("review-2026-10-19-101500") == 1

    def test_unreadable_document_still_listed(self, tmp_path):
        (tmp_path / ".redline").mkdir()
        (tmp_path / ".redline" / "review-broken.toml").write_text("not = [valid")
        result = _invoke(tmp_path, ["history"])
        assert result.exit_code == 0
        assert "review-broken.toml" in result.output
        assert "unreadable" in result.output


class TestStatsCommand:
    def test_empty(self, tmp_path):
        result = _invoke(tmp_path, ["stats"])
        assert "No reviews found" in result.output

    def test_aggregates_across_reviews(self, tmp_path):
        _submit(tmp_path, "comment 1 1 must_fix\nx\ncomment 1 2 nitpick\ny\nsubmit\n\n\n")
        _submit(tmp_path, "comment 2 1 must_fix\nz\nsubmit\n\n\n")
        result = _invoke(tmp_path, ["stats"])

        assert result.exit_code == 0
        assert "Total reviews:  2" in result.output
        assert "Total comments: 3" in result.output
        assert "Severity Breakdown" in result.output
        assert "src/app.py" in result.output


class TestLatestCommand:
    def test_no_review_yet(self, tmp_path):
        result = _invoke(tmp_path, ["latest"])
        assert result.exit_code == 2
        assert "No review submitted yet" in result.output

    def test_prints_document(self, tmp_path):
        _submit(tmp_path, "submit\n\n\n")
        result = _invoke(tmp_path, ["latest"])
        assert result.exit_code == 0
        assert result.output == _latest(tmp_path)

    def test_path_only(self, tmp_path):
        result = _invoke(tmp_path, ["latest", "--path"])
        assert result.output.strip() == str(tmp_path / ".redline" / "latest.toml")

    def test_summary_prompt(self, tmp_path):
        _submit(tmp_path, "submit\n\n\n")
        result = _invoke(tmp_path, ["latest", "--summary-prompt", "what", "now?"])
        assert result.output.startswith("Summarise the code review")
        assert "User's additional question: what now?" in result.output


# ---------------------------------------------------------------------------
# fix
# ---------------------------------------------------------------------------


class TestFixCommand:
    def test_no_review_yet(self, tmp_path):
        result = _invoke(tmp_path, ["fix", "--print-prompt"])
        assert result.exit_code == 2

    def test_print_prompt(self, tmp_path):
        _submit(tmp_path, "comment 1 1 must_fix\nUse a constant\nsubmit\n\n\n")
        result = _invoke(tmp_path, ["fix", "--print-prompt", "keep", "it", "small"])
        assert result.exit_code == 0
        assert 'body = "Use a constant"' in result.output
        assert "Additional instructions from the user: keep it small" in result.output

    def test_no_agent_configured(self, tmp_path):
        _submit(tmp_path, "submit\n\n\n")
        result = _invoke(tmp_path, ["fix"])
        assert result.exit_code == 1
        assert "No auto-fix command configured" in result.output

    def test_launches_configured_agent(self, tmp_path, mocker):
        _submit(tmp_path, "submit\n\n\n")
        handoff = MagicMock()
        build = mocker.patch("redline_cli.commands.fix.build_handoff", return_value=handoff)

        result = _invoke(tmp_path, ["fix"], config={"auto_fix_command": "agent {review}"})

        assert result.exit_code == 0, result.output
        assert build.call_args.kwargs["cwd"] == tmp_path
        handoff.notify.assert_called_once_with(tmp_path / ".redline" / "latest.toml")


# ---------------------------------------------------------------------------
# commits
# ---------------------------------------------------------------------------


class TestCommitsCommand:
    def test_lists_commits(self, tmp_path):
        repository = _make_repository(tmp_path)
        repository.recent_commits.return_value = [
            CommitInfo(hash="a" * 40, message="Add parser", author="Dev", date="2026-10-19T09:00:00+00:00"),
        ]
        repository.current_branch.return_value = "main"
        repository.head_short_hash.return_value = "aaaaaaa"
        result = CliRunner().invoke(
            main, ["commits"], obj={"config": dict(DEFAULT_CONFIG), "repository": repository}
        )
        assert result.exit_code == 0, result.output
        assert "Recent commits on main (aaaaaaa)" in result.output
        assert "Add parser" in result.output
        assert "2026-10-19 09:00:00" in result.output

    def test_no_commits(self, tmp_path):
        repository = _make_repository(tmp_path)
        repository.recent_commits.return_value = []
        result = CliRunner().invoke(
            main, ["commits"], obj={"config": dict(DEFAULT_CONFIG), "repository": repository}
        )
        assert "No commits yet" in result.output
        repository.current_branch.assert_not_called()


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


class TestInitCommand:
    def test_writes_config(self, tmp_path, mocker):
        mocker.patch("redline_cli.commands.init.shutil.which", return_value=None)
        # base ref, severity, output dir, gitignore, auto-fix command
        result = CliRunner().invoke(
            main, ["--repo", str(tmp_path), "init"], input="main\nmust_fix\n\n\n\n"
        )

        assert result.exit_code == 0, result.output
        config = yaml.safe_load((tmp_path / ".redline.yml").read_text())
        assert config["base_ref"] == "main"
        assert config["default_severity"] == "must_fix"
        assert config["output_dir"] == ".redline"
        assert config["add_to_gitignore"] is True
        assert config["auto_fix_command"] is None

    def test_preserves_existing_keys(self, tmp_path, mocker):
        mocker.patch("redline_cli.commands.init.shutil.which", return_value=None)
        (tmp_path / ".redline.yml").write_text("head_ref: develop\n")
        result = CliRunner().invoke(main, ["--repo", str(tmp_path), "init"], input="\n\n\nn\nagent {review}\n")

        assert result.exit_code == 0, result.output
        config = yaml.safe_load((tmp_path / ".redline.yml").read_text())
        assert config["head_ref"] == "develop"
        assert config["add_to_gitignore"] is False
        assert config["auto_fix_command"] == "agent {review}"

    def test_suggests_detected_agent(self, tmp_path, mocker):
        mocker.patch(
            "redline_cli.commands.init.shutil.which",
            side_effect=lambda name: "/usr/bin/aider" if name == "aider" else None,
        )
        result = CliRunner().invoke(main, ["--repo", str(tmp_path), "init"], input="\n\n\n\n\n")

        assert result.exit_code == 0, result.output
        config = yaml.safe_load((tmp_path / ".redline.yml").read_text())
        assert config["auto_fix_command"] == "aider --message-file {review}"
