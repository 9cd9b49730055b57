# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.20
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/cli/commands/github.py

"""
git-helper `github` subcommand handlers.

Handles: repo-create, repo-list, issue-list, issue-create, pr-list,
pr-create, clone
"""

from typing import Any, Optional

from rich.console import Console
from rich.markup import escape

from opskit.config.manager import GitHelperProfile
from opskit.core.github_client import LIST_LIMIT, GitHubClient, clone_url, git_auth_env
from opskit.core.probe import GitHubTokenProbe
from opskit.system.display import display_issues, display_pulls, print_raw, print_success
from opskit.system.exceptions import ConnectivityError, ValidationError
from opskit.system.execution import CommandExecutor


def connect(profile: GitHelperProfile, per_page: int = 30) -> GitHubClient:
    """
    GitHub client for the configured token.

    Raises:
        ConnectivityError: If no token is configured
    """
    if not GitHubTokenProbe().check(profile):
        raise ConnectivityError("No GitHub token configured. Run: git-helper config", target="GitHub API")
    return GitHubClient(profile.token.get_secret_value(), per_page=per_page)


def repo_create(
    console: Console,
    client: GitHubClient,
    name: str,
    description: str = "",
    private: bool = False,
    auto_init: bool = True
) -> dict[str, Any]:
    url = client.create_repo(name, description=description, private=private, auto_init=auto_init)
    print_success(console, f"Repository created: {url}")
    print_raw(console, url)
    return {"name": name, "clone_url": url, "private": private}


def repo_list(
    console: Console,
    client: GitHubClient,
    profile: GitHelperProfile,
    user: Optional[str] = None,
    page: int = 1
) -> dict[str, Any]:
    user = user or profile.user
    if not user:
        raise ValidationError("Username required. Usage: git-helper github repo-list [username]")
    if page < 1:
        raise ValidationError("Page numbers start at 1")

    repos = client.list_repos(user, page=page, limit=LIST_LIMIT)
    for full_name in repos:
        console.print(escape(full_name))
    return {"user": user, "page": page, "repos": repos}


def issue_list(
    console: Console,
    client: GitHubClient,
    profile: GitHelperProfile,
    repo: str,
    state: str = "open"
) -> dict[str, Any]:
    repo = profile.qualify_repo(repo)
    issues = client.list_issues(repo, state=state, limit=LIST_LIMIT)
    display_issues(console, issues)
    return {"repo": repo, "issues": [issue.model_dump() for issue in issues]}


def issue_create(
    console: Console,
    client: GitHubClient,
    profile: GitHelperProfile,
    repo: str,
    title: str,
    body: str = ""
) -> dict[str, Any]:
    repo = profile.qualify_repo(repo)
    url = client.create_issue(repo, title, body)
    print_success(console, f"Issue created: {url}")
    return {"repo": repo, "html_url": url}


def pr_list(
    console: Console,
    client: GitHubClient,
    profile: GitHelperProfile,
    repo: str,
    state: str = "open"
) -> dict[str, Any]:
    repo = profile.qualify_repo(repo)
    pulls = client.list_pulls(repo, state=state, limit=LIST_LIMIT)
    display_pulls(console, pulls)
    return {"repo": repo, "pulls": [pull.model_dump() for pull in pulls]}


def pr_create(
    console: Console,
    client: GitHubClient,
    profile: GitHelperProfile,
    repo: str,
    title: str,
    body: str,
    head: str,
    base: str = "main"
) -> dict[str, Any]:
    repo = profile.qualify_repo(repo)
    url = client.create_pull(repo, title, body, head, base=base)
    print_success(console, f"Pull Request created: {url}")
    return {"repo": repo, "html_url": url, "head": head, "base": base}


def clone(
    console: Console,
    profile: GitHelperProfile,
    repo: str,
    directory: Optional[str] = None,
    executor: Optional[type[CommandExecutor]] = None
) -> dict[str, Any]:
    """Clone over HTTPS; with a token configured, git authenticates through its environment."""
    repo = profile.qualify_repo(repo)
    directory = directory or repo.split("/", 1)[1]
    env = git_auth_env(profile.token.get_secret_value()) if profile.has_token else None

    (executor or CommandExecutor).run_streaming(["git", "clone", clone_url(repo), directory], extra_env=env)
    print_success(console, f"Cloned {repo} to {directory}")
    return {"repo": repo, "directory": directory, "authenticated": profile.has_token}
