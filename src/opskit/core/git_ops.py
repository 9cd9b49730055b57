# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.15
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/core/git_ops.py

"""
Local git operations used by git-helper.

Commands whose output the operator reads directly (status, push, diff, ...)
are streamed to the terminal. Commands whose output opskit interprets
(branch lists, commit records, tags) are captured and parsed here.
"""

from dataclasses import dataclass
from typing import Final, Optional

from opskit.system.exceptions import NotAGitRepositoryError
from opskit.system.execution import CommandExecutor, CommandResult


# ASCII unit separator: cannot appear in commit subjects or author names
FIELD_SEP: Final = "\x1f"
CHANGELOG_FORMAT: Final = "%h%x1f%s%x1f%an"
DEFAULT_CHANGELOG_LIMIT: Final = 50
DEFAULT_TAG_WINDOW: Final = 5


@dataclass(frozen=True)
class CommitRecord:
    """One commit as listed in a changelog."""
    hash: str
    subject: str
    author: str

    def to_dict(self) -> dict:
        return {"hash": self.hash, "subject": self.subject, "author": self.author}


def parse_commit_records(output: str) -> list[CommitRecord]:
    """Parse `git log --pretty=format:CHANGELOG_FORMAT` output."""
    records = []
    for line in output.splitlines():
        if not line.strip():
            continue
        fields = line.split(FIELD_SEP)
        fields += [""] * (3 - len(fields))
        records.append(CommitRecord(hash=fields[0], subject=fields[1], author=fields[2]))
    return records


def parse_ref_names(output: str) -> list[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


class GitRepository:
    """Runs git in the current working directory."""

    def __init__(self, executor: Optional[type[CommandExecutor]] = None) -> None:
        self.executor = executor or CommandExecutor

    def capture(self, *args: str, check: bool = True) -> CommandResult:
        return self.executor.run_local(["git", *args], check=check)

    def run(self, *args: str, check: bool = True) -> CommandResult:
        """Run git with its output going to the terminal."""
        return self.executor.run_streaming(["git", *args], check=check)

    def ensure_repo(self) -> None:
        result = self.capture("rev-parse", "--git-dir", check=False)
        if not result.success:
            raise NotAGitRepositoryError(
                "Not in a git repository",
                command=["git", "rev-parse", "--git-dir"],
                returncode=result.returncode,
                stderr=result.stderr
            )

    def current_branch(self) -> str:
        """Checked-out branch, also before the first commit; "HEAD" when detached."""
        result = self.capture("symbolic-ref", "--short", "-q", "HEAD", check=False)
        if result.success:
            return result.stdout.strip()
        return self.capture("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()

    def rev_parse(self, ref: str) -> str:
        return self.capture("rev-parse", ref).stdout.strip()

    def ref_exists(self, ref: str) -> bool:
        return self.capture("rev-parse", "--verify", "--quiet", ref, check=False).success

    def local_branches(self) -> list[str]:
        return parse_ref_names(self.capture("for-each-ref", "--format=%(refname:short)", "refs/heads").stdout)

    def remote_branches(self) -> list[str]:
        return parse_ref_names(self.capture("for-each-ref", "--format=%(refname:short)", "refs/remotes").stdout)

    def local_branch_exists(self, branch: str) -> bool:
        return self.capture("show-ref", "--verify", "--quiet", f"refs/heads/{branch}", check=False).success

    def remote_branch_exists(self, branch: str, remote: str = "origin") -> bool:
        return self.capture("ls-remote", "--exit-code", remote, branch, check=False).success

    def recent_tags(self, limit: int = DEFAULT_TAG_WINDOW) -> list[str]:
        """Tags ordered newest first by creation date."""
        return parse_ref_names(self.capture("tag", "--sort=-creatordate").stdout)[:limit]

    def commit_records(
        self,
        from_ref: Optional[str] = None,
        to_ref: str = "HEAD",
        limit: int = DEFAULT_CHANGELOG_LIMIT
    ) -> list[CommitRecord]:
        """Commits in from_ref..to_ref, or the latest `limit` commits when from_ref is None."""
        if from_ref:
            args = ["log", f"{from_ref}..{to_ref}", f"--pretty=format:{CHANGELOG_FORMAT}"]
        else:
            args = ["log", f"--pretty=format:{CHANGELOG_FORMAT}", "-n", str(limit)]
        return parse_commit_records(self.capture(*args).stdout)
