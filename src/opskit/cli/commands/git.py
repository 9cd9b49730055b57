# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.17
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/cli/commands/git.py

"""
git-helper local repository command handlers.

Handles: status, commit, push, pull, branch, checkout, create-branch,
delete-branch, stash, stash-pop, log, diff, sync, undo, changelog, config
"""

from typing import Any, Optional

from rich.console import Console

from opskit.config.manager import GitHelperConfigStore
from opskit.core.git_ops import GitRepository
from opskit.system.display import (
    display_branches,
    display_settings,
    mask_secret,
    print_info,
    print_raw,
    print_success,
    print_warning,
    render_changelog_markdown,
    render_changelog_plain,
    render_json,
)
from opskit.system.exceptions import ValidationError


DEFAULT_REMOTE = "origin"
CHANGELOG_FORMATS = ("markdown", "plain", "json")
UNDO_KINDS = ("commit", "last", "file")
TOKEN_PREVIEW = 10


def status(console: Console, repo: GitRepository) -> dict[str, Any]:
    console.print("[blue]Git Status:[/blue]")
    repo.run("status", "-sb")
    console.print()
    console.print("[blue]Unstaged changes:[/blue]")
    repo.run("diff", "--stat")
    console.print()
    console.print("[blue]Staged changes:[/blue]")
    repo.run("diff", "--cached", "--stat")
    return {"sections": ["status", "unstaged", "staged"]}


def commit(console: Console, repo: GitRepository, message: str) -> dict[str, Any]:
    branch = repo.current_branch()
    print_info(console, f"Committing to branch: {branch}")
    repo.run("add", "-A")
    repo.run("commit", "-m", message)
    print_success(console, f"Commit created: {message}")
    return {"branch": branch, "message": message}


def push(console: Console, repo: GitRepository, remote: str = DEFAULT_REMOTE) -> dict[str, Any]:
    branch = repo.current_branch()
    print_info(console, f"Pushing to {remote}/{branch}")
    repo.run("push", remote, branch)
    print_success(console, "Pushed successfully")
    return {"remote": remote, "branch": branch}


def pull(console: Console, repo: GitRepository, remote: str = DEFAULT_REMOTE) -> dict[str, Any]:
    branch = repo.current_branch()
    print_info(console, f"Pulling from {remote}/{branch}")
    repo.run("pull", remote, branch)
    print_success(console, "Pulled successfully")
    return {"remote": remote, "branch": branch}


def branch(console: Console, repo: GitRepository) -> dict[str, Any]:
    current = repo.current_branch()
    local = repo.local_branches()
    remote = repo.remote_branches()
    display_branches(console, local, remote, current)
    return {"current": current, "local": local, "remote": remote}


def checkout(console: Console, repo: GitRepository, branch_name: str) -> dict[str, Any]:
    """Switch to a local branch, or track origin/<branch> when it only exists remotely."""
    if repo.local_branch_exists(branch_name):
        repo.run("checkout", branch_name)
        print_success(console, f"Switched to branch: {branch_name}")
        return {"branch": branch_name, "tracking": False}

    if repo.remote_branch_exists(branch_name, DEFAULT_REMOTE):
        repo.run("checkout", "-b", branch_name, f"{DEFAULT_REMOTE}/{branch_name}")
        print_success(console, f"Checked out remote branch: {branch_name}")
        return {"branch": branch_name, "tracking": True}

    raise ValidationError(f"Branch '{branch_name}' not found locally or remotely")


def create_branch(
    console: Console,
    repo: GitRepository,
    name: str,
    from_branch: Optional[str] = None
) -> dict[str, Any]:
    from_branch = from_branch or repo.current_branch()
    repo.run("checkout", from_branch)
    repo.run("checkout", "-b", name)
    print_success(console, f"Created branch '{name}' from '{from_branch}'")
    return {"branch": name, "from": from_branch}


def delete_branch(console: Console, repo: GitRepository, name: str, force: bool = False) -> dict[str, Any]:
    if name == repo.current_branch():
        raise ValidationError("Cannot delete current branch")

    repo.run("branch", "-D" if force else "-d", name)
    print_success(console, f"{'Force deleted' if force else 'Deleted'} branch: {name}")
    return {"branch": name, "forced": force}


def stash(console: Console, repo: GitRepository, message: Optional[str] = None) -> dict[str, Any]:
    message = message or f"WIP: {repo.current_branch()}"
    repo.run("stash", "push", "-m", message)
    print_success(console, f"Stashed changes with message: {message}")
    return {"message": message}


def stash_pop(console: Console, repo: GitRepository, index: int = 0) -> dict[str, Any]:
    if index < 0:
        raise ValidationError("Invalid stash index")

    entries = repo.capture("stash", "list").stdout.splitlines()
    print_raw(console, "\n".join(entries[:index + 1]))

    result = repo.capture("stash", "pop", f"stash@{{{index}}}", check=False)
    if not result.success:
        raise ValidationError("Invalid stash index")
    print_raw(console, result.stdout.rstrip("\n"))
    print_success(console, f"Popped stash#{index}")
    return {"index": index}


def log(repo: GitRepository, limit: int = 10) -> dict[str, Any]:
    repo.run("log", "--oneline", "-n", str(limit))
    return {"limit": limit}


def diff(console: Console, repo: GitRepository, commit_ref: str = "HEAD") -> dict[str, Any]:
    repo.run("diff", f"{commit_ref}~1", commit_ref, "--stat")
    console.print()
    repo.run("diff", f"{commit_ref}~1", commit_ref)
    return {"commit": commit_ref}


def sync(console: Console, repo: GitRepository) -> dict[str, Any]:
    """Fetch origin and pull when the local and remote heads differ."""
    print_info(console, "Syncing with remote...")
    repo.run("fetch", DEFAULT_REMOTE)

    current = repo.current_branch()
    remote_ref = f"{DEFAULT_REMOTE}/{current}"
    if not repo.ref_exists(remote_ref):
        print_warning(console, "Remote branch not found. Push to create it.")
        return {"branch": current, "synced": False, "remote_exists": False}

    if repo.rev_parse(current) == repo.rev_parse(remote_ref):
        print_success(console, "Already up to date")
        return {"branch": current, "synced": True, "pulled": False}

    print_info(console, "Local is ahead/behind remote. Pulling changes...")
    repo.run("pull", DEFAULT_REMOTE, current)
    print_success(console, "Synced successfully")
    return {"branch": current, "synced": True, "pulled": True}


def undo(console: Console, repo: GitRepository, kind: str, path: Optional[str] = None) -> dict[str, Any]:
    if kind == "commit":
        repo.run("reset", "--soft", "HEAD~1")
        print_success(console, "Undid last commit (changes staged)")
    elif kind == "last":
        repo.run("reset", "--mixed", "HEAD~1")
        print_success(console, "Undid last commit (changes unstaged)")
    elif kind == "file":
        if not path:
            raise ValidationError("File path required")
        repo.run("checkout", "HEAD", "--", path)
        print_success(console, f"Restored {path} to last commit")
    else:
        raise ValidationError("Usage: git-helper undo <commit|last|file> [path]")
    return {"kind": kind, "path": path}


def changelog(
    console: Console,
    err_console: Console,
    repo: GitRepository,
    from_ref: Optional[str] = None,
    to_ref: str = "HEAD",
    output_format: str = "markdown"
) -> dict[str, Any]:
    """Print commits between two refs.

    Without from_ref, the oldest of the five newest tags is used; without any
    tag, the latest commits are listed. Notes go to stderr so the changelog
    itself can be redirected to a file.
    """
    if output_format not in CHANGELOG_FORMATS:
        raise ValidationError(f"Unknown format '{output_format}', expected one of: {', '.join(CHANGELOG_FORMATS)}")

    if not from_ref:
        tags = repo.recent_tags()
        if tags:
            from_ref = tags[-1]
            print_info(err_console, f"Using tag: {from_ref}")

    records = repo.commit_records(from_ref, to_ref)
    if output_format == "markdown":
        print_raw(console, render_changelog_markdown(records, from_ref or "", to_ref))
    elif output_format == "json":
        print_raw(console, render_json({
            "from": from_ref,
            "to": to_ref,
            "commits": [record.to_dict() for record in records],
        }))
    else:
        print_raw(console, render_changelog_plain(records))
    return {"from": from_ref, "to": to_ref, "commits": len(records)}


def config(
    console: Console,
    store: GitHelperConfigStore,
    token: Optional[str] = None,
    user: Optional[str] = None,
    owner: Optional[str] = None
) -> dict[str, Any]:
    """Update GitHub credentials, or show them masked when none are given.

    The profile is saved in both cases.
    """
    profile = store.load().updated(token=token, user=user, default_owner=owner)

    if token:
        print_info(console, "GitHub token configured")
    if user:
        print_info(console, f"GitHub username configured: {user}")
    if owner:
        print_info(console, f"Default repository owner configured: {owner}")

    if not any((token, user, owner)):
        display_settings(
            console,
            [
                ("GitHub Token", mask_secret(profile.token.get_secret_value(), visible=TOKEN_PREVIEW, suffix="...")),
                ("GitHub User", profile.user),
                ("Default Owner", profile.default_owner),
            ],
            title="Current configuration:"
        )

    store.save(profile)
    print_success(console, "Configuration saved")
    return {"user": profile.user, "default_owner": profile.default_owner, "has_token": profile.has_token}
