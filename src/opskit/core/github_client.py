# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.20
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/core/github_client.py

"""
GitHub API client for git-helper.
"""

import base64
from contextlib import contextmanager
from typing import Any, Final, Iterator, Optional

from github import Auth, Github, GithubException
from loguru import logger
from pydantic import BaseModel

from opskit.system.exceptions import GitHubAPIError, GitHubResponseError, ValidationError


GITHUB_HOST: Final = "github.com"
LIST_LIMIT: Final = 20
VALID_STATES: Final = frozenset({"open", "closed", "all"})


class IssueSummary(BaseModel):
    """Issue as shown by `github issue-list`."""
    number: int
    title: str
    state: str


class PullSummary(BaseModel):
    """Pull request as shown by `github pr-list`."""
    number: int
    title: str
    state: str
    head_ref: str


def validate_state(state: str) -> str:
    if state not in VALID_STATES:
        raise ValidationError(f"Invalid state '{state}', expected one of: {', '.join(sorted(VALID_STATES))}")
    return state


def clone_url(repo: str) -> str:
    return f"https://{GITHUB_HOST}/{repo}.git"


def git_auth_env(token: str) -> dict[str, str]:
    """Environment that makes git send the token to github.com over HTTPS.

    The token travels in the child environment only: it is not part of the
    command line and is not written into the clone's remote URL.
    """
    credentials = base64.b64encode(f"x-access-token:{token}".encode()).decode()
    return {
        "GIT_CONFIG_COUNT": "1",
        "GIT_CONFIG_KEY_0": f"http.https://{GITHUB_HOST}/.extraheader",
        "GIT_CONFIG_VALUE_0": f"AUTHORIZATION: basic {credentials}",
    }


def _required(obj: Any, field: str) -> Any:
    """Return obj.field, raising GitHubResponseError when the response lacks it."""
    value = getattr(obj, field, None)
    if not value:
        raise GitHubResponseError(
            f"GitHub response has no '{field}'",
            field=field,
            data=getattr(obj, "raw_data", None)
        )
    return value


@contextmanager
def _api_call(action: str) -> Iterator[None]:
    try:
        yield
    except GithubException as e:
        message = e.data.get("message") if isinstance(e.data, dict) else None
        logger.debug(f"GitHub API error while trying to {action}: {e.status} {e.data}")
        raise GitHubAPIError(
            f"Failed to {action}: {message or e}",
            status=e.status,
            data=e.data
        ) from e


class GitHubClient:
    """GitHub REST API access through PyGithub with token authentication."""

    def __init__(self, token: str, per_page: int = 30, client: Optional[Github] = None) -> None:
        """
        Initialize GitHub client.

        Args:
            token: GitHub API token
            per_page: Page size for listing endpoints
            client: Pre-built PyGithub client (tests)
        """
        if not token and client is None:
            raise GitHubAPIError("No GitHub token configured. Run: git-helper config")
        self.client = client or Github(auth=Auth.Token(token), per_page=per_page)

    def create_repo(
        self,
        name: str,
        description: str = "",
        private: bool = False,
        auto_init: bool = True
    ) -> str:
        """Create a repository for the authenticated user and return its clone URL."""
        with _api_call(f"create repository {name}"):
            repo = self.client.get_user().create_repo(
                name,
                description=description,
                private=private,
                auto_init=auto_init
            )
        return _required(repo, "clone_url")

    def list_repos(self, user: str, page: int = 1, limit: int = LIST_LIMIT) -> list[str]:
        """Full names of a user's repositories, most recently updated first."""
        with _api_call(f"list repositories of {user}"):
            repos = self.client.get_user(user).get_repos(sort="updated").get_page(page - 1)
            return [repo.full_name for repo in repos[:limit]]

    def list_issues(self, repo: str, state: str = "open", limit: int = LIST_LIMIT) -> list[IssueSummary]:
        validate_state(state)
        with _api_call(f"list issues of {repo}"):
            issues = self.client.get_repo(repo).get_issues(state=state)
            return [
                IssueSummary(number=issue.number, title=issue.title, state=issue.state)
                for issue in issues[:limit]
            ]

    def create_issue(self, repo: str, title: str, body: str = "") -> str:
        """Open an issue and return its web URL."""
        with _api_call(f"create issue in {repo}"):
            issue = self.client.get_repo(repo).create_issue(title=title, body=body)
        return _required(issue, "html_url")

    def list_pulls(self, repo: str, state: str = "open", limit: int = LIST_LIMIT) -> list[PullSummary]:
        validate_state(state)
        with _api_call(f"list pull requests of {repo}"):
            pulls = self.client.get_repo(repo).get_pulls(state=state)
            return [
                PullSummary(number=pull.number, title=pull.title, state=pull.state, head_ref=pull.head.ref)
                for pull in pulls[:limit]
            ]

    def create_pull(self, repo: str, title: str, body: str, head: str, base: str = "main") -> str:
        """Open a pull request and return its web URL."""
        with _api_call(f"create pull request in {repo}"):
            pull = self.client.get_repo(repo).create_pull(title=title, body=body, head=head, base=base)
        return _required(pull, "html_url")
