# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.17
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/test_git_cli.py

"""End-to-end git-helper tests through typer's CliRunner with a fake git binary."""

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from opskit.cli.git_main import app
from opskit.config.manager import GitHelperProfile
from tests.conftest import FakeGit

runner = CliRunner()

TOKEN = "ghp_abcdefghijklmnopqrstuvwxyz"
LOG_FORMAT = "--pretty=format:%h%x1f%s%x1f%an"


def invoke(fake, args, **kwargs):
    with patch("subprocess.run", side_effect=fake):
        return runner.invoke(app, args, **kwargs)


class TestDispatch:
    def test_no_arguments_prints_help(self, config_home):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "Usage" in result.stdout

    def test_help_command(self, config_home):
        result = runner.invoke(app, ["help"])
        assert result.exit_code == 0
        assert "Usage" in result.stdout

    def test_unknown_command(self, config_home):
        result = runner.invoke(app, ["frobnicate"])
        assert result.exit_code == 1
        assert "Unknown command: frobnicate" in result.stderr

    def test_github_without_subcommand(self, config_home):
        result = runner.invoke(app, ["github"])
        assert result.exit_code == 1
        assert "Usage" in result.stdout

    def test_unknown_github_subcommand(self, config_home):
        result = runner.invoke(app, ["github", "bogus"])
        assert result.exit_code == 1
        assert "Unknown github command: bogus" in result.stderr

    def test_commit_without_message_runs_nothing(self, config_home):
        fake = FakeGit()
        result = invoke(fake, ["commit"])

        assert result.exit_code == 1
        assert 'Usage: git-helper commit "message"' in result.stderr
        assert fake.calls == []

    def test_outside_repository(self, config_home):
        fake = FakeGit({("rev-parse", "--git-dir"): (128, "", "fatal: not a git repository")})
        result = invoke(fake, ["status"])

        assert result.exit_code == 1
        assert "Not in a git repository" in result.stderr
        assert fake.calls == [["git", "rev-parse", "--git-dir"]]


UNBORN = {
    ("symbolic-ref", "--short", "-q", "HEAD"): (0, "main\n", ""),
    ("rev-parse", "--abbrev-ref", "HEAD"): (128, "HEAD\n", "fatal: ambiguous argument 'HEAD'"),
}


class TestLocalCommands:
    def test_status_before_first_commit(self, config_home):
        fake = FakeGit(UNBORN)
        result = invoke(fake, ["status"])

        assert result.exit_code == 0
        assert fake.ran("status", "-sb")
        assert fake.ran("diff", "--cached", "--stat")

    def test_commit_before_first_commit(self, config_home):
        fake = FakeGit(UNBORN)
        result = invoke(fake, ["commit", "Initial"])

        assert result.exit_code == 0
        assert "Committing to branch: main" in result.stdout
        assert fake.ran("commit", "-m", "Initial")

    def test_commit_stages_everything(self, config_home):
        fake = FakeGit({("symbolic-ref", "--short", "-q", "HEAD"): (0, "main\n", "")})
        result = invoke(fake, ["commit", "Fix typo"])

        assert result.exit_code == 0
        assert fake.ran("add", "-A")
        assert fake.ran("commit", "-m", "Fix typo")
        assert "Committing to branch: main" in result.stdout

    def test_push_uses_current_branch(self, config_home):
        fake = FakeGit({("symbolic-ref", "--short", "-q", "HEAD"): (0, "feature\n", "")})
        result = invoke(fake, ["push"])
        assert result.exit_code == 0
        assert fake.ran("push", "origin", "feature")

    def test_failed_git_command_exits_1(self, config_home):
        fake = FakeGit({
            ("symbolic-ref", "--short", "-q", "HEAD"): (0, "main\n", ""),
            ("push", "origin", "main"): (1, "", ""),
        })
        result = invoke(fake, ["push"])
        assert result.exit_code == 1
        assert "git exited with status 1" in result.stderr

    def test_checkout_local_branch(self, config_home):
        fake = FakeGit()
        result = invoke(fake, ["checkout", "dev"])
        assert result.exit_code == 0
        assert fake.ran("checkout", "dev")

    def test_checkout_falls_back_to_remote(self, config_home):
        fake = FakeGit({("show-ref", "--verify", "--quiet", "refs/heads/feat"): (1, "", "")})
        result = invoke(fake, ["checkout", "feat"])

        assert result.exit_code == 0
        assert fake.ran("checkout", "-b", "feat", "origin/feat")
        assert "Checked out remote branch: feat" in result.stdout

    def test_checkout_missing_everywhere(self, config_home):
        fake = FakeGit({
            ("show-ref", "--verify", "--quiet", "refs/heads/ghost"): (1, "", ""),
            ("ls-remote", "--exit-code", "origin", "ghost"): (2, "", ""),
        })
        result = invoke(fake, ["checkout", "ghost"])

        assert result.exit_code == 1
        assert "Branch 'ghost' not found locally or remotely" in result.stderr

    def test_delete_current_branch_refused(self, config_home):
        fake = FakeGit({("symbolic-ref", "--short", "-q", "HEAD"): (0, "main\n", "")})
        result = invoke(fake, ["delete-branch", "main"])

        assert result.exit_code == 1
        assert "Cannot delete current branch" in result.stderr
        assert not any(call[1] == "branch" for call in fake.calls)

    @pytest.mark.parametrize("flags, git_flag", [([], "-d"), (["-f"], "-D"), (["--force"], "-D")])
    def test_delete_branch(self, config_home, flags, git_flag):
        fake = FakeGit({("symbolic-ref", "--short", "-q", "HEAD"): (0, "main\n", "")})
        result = invoke(fake, ["delete-branch", "old", *flags])
        assert result.exit_code == 0
        assert fake.ran("branch", git_flag, "old")

    def test_stash_default_message(self, config_home):
        fake = FakeGit({("symbolic-ref", "--short", "-q", "HEAD"): (0, "dev\n", "")})
        result = invoke(fake, ["stash"])
        assert result.exit_code == 0
        assert fake.ran("stash", "push", "-m", "WIP: dev")

    def test_stash_pop_invalid_index(self, config_home):
        fake = FakeGit({("stash", "pop", "stash@{4}"): (1, "", "error: stash@{4} is not a valid reference")})
        result = invoke(fake, ["stash-pop", "4"])
        assert result.exit_code == 1
        assert "Invalid stash index" in result.stderr

    def test_undo_unknown_kind(self, config_home):
        fake = FakeGit()
        result = invoke(fake, ["undo", "everything"])
        assert result.exit_code == 1
        assert not any(call[1] == "reset" for call in fake.calls)

    def test_undo_commit_keeps_changes_staged(self, config_home):
        fake = FakeGit()
        result = invoke(fake, ["undo", "commit"])
        assert result.exit_code == 0
        assert fake.ran("reset", "--soft", "HEAD~1")


class TestChangelog:
    def responses(self):
        return {
            ("tag", "--sort=-creatordate"): (0, "v2.0\nv1.0\n", ""),
            ("log", "v1.0..HEAD", LOG_FORMAT): (0, "abc123\x1fFix bug\x1fAda\ndef456\x1fAdd feature\x1fGrace", ""),
            ("log", "v2.0..HEAD", LOG_FORMAT): (0, "abc123\x1fFix bug\x1fAda", ""),
        }

    def test_markdown_from_recent_tag(self, config_home):
        result = invoke(FakeGit(self.responses()), ["changelog"])

        assert result.exit_code == 0
        assert "Using tag: v1.0" in result.stderr
        assert "Using tag" not in result.stdout
        assert "From: v1.0 -> To: HEAD" in result.stdout
        assert "- `abc123` Fix bug (by Ada)" in result.stdout
        assert "- `def456` Add feature (by Grace)" in result.stdout

    def test_json(self, config_home):
        result = invoke(FakeGit(self.responses()), ["changelog", "v2.0", "HEAD", "json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "from": "v2.0",
            "to": "HEAD",
            "commits": [{"hash": "abc123", "subject": "Fix bug", "author": "Ada"}],
        }

    def test_plain(self, config_home):
        result = invoke(FakeGit(self.responses()), ["changelog", "v2.0", "HEAD", "plain"])
        assert result.stdout == "abc123 Fix bug (Ada)\n"

    def test_unknown_format(self, config_home):
        result = invoke(FakeGit(self.responses()), ["changelog", "v1.0", "HEAD", "html"])
        assert result.exit_code == 1
        assert "Unknown format 'html'" in result.stderr

    def test_without_tags_lists_latest_commits(self, config_home):
        fake = FakeGit({("log", LOG_FORMAT, "-n", "50"): (0, "abc123\x1fInitial\x1fAda", "")})
        result = invoke(fake, ["changelog"])

        assert result.exit_code == 0
        assert "From: (start) -> To: HEAD" in result.stdout
        assert "Initial" in result.stdout


class TestConfig:
    def test_token_is_never_printed_in_full(self, config_home, git_store):
        result = runner.invoke(app, ["config", TOKEN, "pb"])
        assert result.exit_code == 0
        assert TOKEN not in result.stdout
        assert git_store.load().token.get_secret_value() == TOKEN

        result = runner.invoke(app, ["config"])
        assert "GitHub Token: ghp_abcdef..." in result.stdout
        assert TOKEN not in result.stdout
        assert "GitHub User: pb" in result.stdout

    def test_owner_option(self, config_home, git_store):
        runner.invoke(app, ["config", "--owner", "hrdag"])
        assert git_store.load().default_owner == "hrdag"

    def test_file_is_private(self, config_home, git_store):
        runner.invoke(app, ["config", TOKEN])
        assert git_store.profile_path.stat().st_mode & 0o777 == 0o600


class TestGitHubCommands:
    def test_requires_token(self, config_home):
        with patch("opskit.core.github_client.Github") as mock_github:
            result = runner.invoke(app, ["github", "issue-list", "hrdag/opskit"])

        assert result.exit_code == 1
        assert "No GitHub token configured" in result.stderr
        mock_github.assert_not_called()

    def test_issue_list_qualifies_bare_name(self, config_home, git_store):
        git_store.save(GitHelperProfile(token=TOKEN, default_owner="hrdag"))
        github = MagicMock()
        github.get_repo.return_value.get_issues.return_value = [
            MagicMock(number=7, title="Crash on start", state="open")
        ]

        with patch("opskit.core.github_client.Github", return_value=github):
            result = runner.invoke(app, ["github", "issue-list", "opskit"])

        assert result.exit_code == 0
        assert "Issue #7: Crash on start" in result.stdout
        github.get_repo.assert_called_once_with("hrdag/opskit")

    def test_repo_list_rejects_page_zero(self, config_home, git_store):
        git_store.save(GitHelperProfile(token=TOKEN, user="pb"))
        with patch("opskit.core.github_client.Github"):
            result = runner.invoke(app, ["github", "repo-list", "--page", "0"])
        assert result.exit_code == 1
        assert "Page numbers start at 1" in result.stderr

    def test_clone_keeps_token_out_of_argv(self, config_home, git_store):
        git_store.save(GitHelperProfile(token=TOKEN))
        fake = FakeGit()

        result = invoke(fake, ["github", "clone", "hrdag/opskit"])

        assert result.exit_code == 0
        assert fake.calls == [["git", "clone", "https://github.com/hrdag/opskit.git", "opskit"]]
        assert not any(TOKEN in arg for arg in fake.calls[0])
        assert fake.envs[0]["GIT_CONFIG_KEY_0"] == "http.https://github.com/.extraheader"

    def test_clone_without_token_is_anonymous(self, config_home):
        fake = FakeGit()
        result = invoke(fake, ["github", "clone", "hrdag/opskit", "work"])

        assert result.exit_code == 0
        assert fake.calls == [["git", "clone", "https://github.com/hrdag/opskit.git", "work"]]
        assert fake.envs == [None]
