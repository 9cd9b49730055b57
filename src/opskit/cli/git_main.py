# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.17
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/cli/git_main.py

"""
git-helper: dispatcher for everyday git commands and GitHub API access.

Local commands first check that the working directory is a git work tree;
`github` subcommands need a configured token (except clone).
"""

# Standard library imports
from typing import Any, Optional

# Third-party imports
import typer

# Local opskit imports
from opskit.cli.commands import git as git_commands
from opskit.cli.commands import github as github_commands
from opskit.cli.patterns import command_pattern
from opskit.cli.utils import HelperGroup, console, err_console, print_version, require_args, show_help
from opskit.config.manager import GIT_HELPER, GitHelperConfigStore
from opskit.core.git_ops import GitRepository
from opskit.system.logging_setup import setup_logging

app = typer.Typer(
    cls=HelperGroup,
    help="""git-helper - Git helper with GitHub integration

[bold blue]Git:[/bold blue] status, commit, push, pull, branch, checkout, create-branch, delete-branch
[bold green]Work in progress:[/bold green] stash, stash-pop, log, diff, sync, undo
[bold magenta]GitHub:[/bold magenta] github repo-create, repo-list, issue-list, issue-create, pr-list, pr-create, clone
[bold yellow]Other:[/bold yellow] changelog, config
""",
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)

github_app = typer.Typer(
    cls=HelperGroup,
    help="GitHub repositories, issues and pull requests.",
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)
app.add_typer(github_app, name="github")


def _store() -> GitHelperConfigStore:
    return GitHelperConfigStore()


def _repo() -> GitRepository:
    repo = GitRepository()
    repo.ensure_repo()
    return repo


def version_callback(value: bool) -> None:
    if value:
        print_version(GIT_HELPER)
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True,
        help="Show version and exit"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """git-helper - Git helper with GitHub integration."""
    setup_logging(GIT_HELPER, debug=debug)
    if ctx.invoked_subcommand is None:
        show_help(ctx)
        raise typer.Exit()


@github_app.callback(invoke_without_command=True)
def github_callback(ctx: typer.Context) -> None:
    """GitHub repositories, issues and pull requests."""
    if ctx.invoked_subcommand is None:
        show_help(ctx)
        raise typer.Exit(1)


@app.command(name="help")
def help_command(ctx: typer.Context) -> None:
    """Show this help."""
    show_help(ctx.parent)


# =============================================================================
# GIT COMMANDS
# =============================================================================

@app.command()
def status() -> Any:
    """[bold blue]Git[/bold blue]: Show status plus unstaged and staged change summaries."""
    return command_pattern(lambda: git_commands.status(console, _repo()))()


@app.command()
def commit(
    message: Optional[str] = typer.Argument(None, help="Commit message"),
) -> Any:
    """[bold blue]Git[/bold blue]: Stage everything and commit."""
    require_args('git-helper commit "message"', message)
    return command_pattern(lambda: git_commands.commit(console, _repo(), message))()


@app.command()
def push(
    remote: str = typer.Argument(git_commands.DEFAULT_REMOTE, help="Remote name"),
) -> Any:
    """[bold blue]Git[/bold blue]: Push the current branch."""
    return command_pattern(lambda: git_commands.push(console, _repo(), remote))()


@app.command()
def pull(
    remote: str = typer.Argument(git_commands.DEFAULT_REMOTE, help="Remote name"),
) -> Any:
    """[bold blue]Git[/bold blue]: Pull the current branch."""
    return command_pattern(lambda: git_commands.pull(console, _repo(), remote))()


@app.command()
def branch() -> Any:
    """[bold blue]Git[/bold blue]: List local and remote branches."""
    return command_pattern(lambda: git_commands.branch(console, _repo()))()


@app.command()
def checkout(
    branch_name: Optional[str] = typer.Argument(None, metavar="BRANCH", help="Branch to switch to"),
) -> Any:
    """[bold blue]Git[/bold blue]: Switch to a branch, tracking origin when it only exists there."""
    require_args("git-helper checkout <branch>", branch_name)
    return command_pattern(lambda: git_commands.checkout(console, _repo(), branch_name))()


@app.command(name="create-branch")
def create_branch_command(
    name: Optional[str] = typer.Argument(None, help="New branch name"),
    from_branch: Optional[str] = typer.Argument(None, metavar="FROM", help="Start point (default: current branch)"),
) -> Any:
    """[bold blue]Git[/bold blue]: Create a branch and switch to it."""
    require_args("git-helper create-branch <name> [from-branch]", name)
    return command_pattern(lambda: git_commands.create_branch(console, _repo(), name, from_branch))()


@app.command(name="delete-branch")
def delete_branch_command(
    name: Optional[str] = typer.Argument(None, help="Branch to delete"),
    force: bool = typer.Option(False, "--force", "-f", help="Delete even if unmerged"),
) -> Any:
    """[bold blue]Git[/bold blue]: Delete a branch other than the current one."""
    require_args("git-helper delete-branch <name> [-f]", name)
    return command_pattern(lambda: git_commands.delete_branch(console, _repo(), name, force=force))()


@app.command()
def stash(
    message: Optional[str] = typer.Argument(None, help="Stash message (default: WIP: <branch>)"),
) -> Any:
    """[bold green]Work in progress[/bold green]: Stash changes."""
    return command_pattern(lambda: git_commands.stash(console, _repo(), message))()


@app.command(name="stash-pop")
def stash_pop_command(
    index: int = typer.Argument(0, help="Stash index"),
) -> Any:
    """[bold green]Work in progress[/bold green]: Pop a stash by index."""
    return command_pattern(lambda: git_commands.stash_pop(console, _repo(), index))()


@app.command()
def log(
    limit: int = typer.Argument(10, help="Number of commits"),
) -> Any:
    """[bold green]Work in progress[/bold green]: Show the commit log."""
    return command_pattern(lambda: git_commands.log(_repo(), limit))()


@app.command()
def diff(
    commit_ref: str = typer.Argument("HEAD", metavar="COMMIT", help="Commit to show"),
) -> Any:
    """[bold green]Work in progress[/bold green]: Show the diff introduced by a commit."""
    return command_pattern(lambda: git_commands.diff(console, _repo(), commit_ref))()


@app.command()
def sync() -> Any:
    """[bold green]Work in progress[/bold green]: Fetch origin and pull when behind."""
    return command_pattern(lambda: git_commands.sync(console, _repo()))()


@app.command()
def undo(
    kind: Optional[str] = typer.Argument(None, metavar="commit|last|file", help="What to undo"),
    path: Optional[str] = typer.Argument(None, help="File to restore (undo file)"),
) -> Any:
    """[bold green]Work in progress[/bold green]: Undo the last commit or restore a file."""
    require_args("git-helper undo <commit|last|file> [path]", kind)
    return command_pattern(lambda: git_commands.undo(console, _repo(), kind, path))()


# =============================================================================
# OTHER COMMANDS
# =============================================================================

@app.command()
def changelog(
    from_ref: Optional[str] = typer.Argument(None, metavar="FROM_TAG", help="Start ref (default: recent tag)"),
    to_ref: str = typer.Argument("HEAD", metavar="TO_TAG", help="End ref"),
    output_format: str = typer.Argument("markdown", metavar="FORMAT", help="markdown, plain or json"),
) -> Any:
    """[bold yellow]Other[/bold yellow]: Generate a changelog from commit history."""
    return command_pattern(
        lambda: git_commands.changelog(console, err_console, _repo(), from_ref, to_ref, output_format)
    )()


@app.command()
def config(
    token: Optional[str] = typer.Argument(None, help="GitHub token"),
    user: Optional[str] = typer.Argument(None, help="GitHub username"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Default owner for bare repository names"),
) -> Any:
    """[bold yellow]Other[/bold yellow]: Configure GitHub credentials, or show them."""
    return command_pattern(lambda: git_commands.config(console, _store(), token=token, user=user, owner=owner))()


# =============================================================================
# GITHUB COMMANDS
# =============================================================================

@github_app.command(name="repo-create")
def repo_create_command(
    name: Optional[str] = typer.Argument(None, help="Repository name"),
    description: str = typer.Argument("", help="Repository description"),
    private: bool = typer.Option(False, "--private", help="Create a private repository"),
    no_init: bool = typer.Option(False, "--no-init", help="Do not create an initial commit"),
) -> Any:
    """Create a repository for the authenticated user."""
    require_args("git-helper github repo-create <name> [description] [--private]", name)
    return command_pattern(
        lambda: github_commands.repo_create(
            console, github_commands.connect(_store().load()), name, description,
            private=private, auto_init=not no_init
        )
    )()


@github_app.command(name="repo-list")
def repo_list_command(
    user: Optional[str] = typer.Argument(None, help="GitHub user (default: GITHUB_USER)"),
    page: int = typer.Option(1, "--page", help="Result page"),
    per_page: int = typer.Option(30, "--per-page", help="Page size"),
) -> Any:
    """List a user's repositories, most recently updated first."""
    def run() -> Any:
        profile = _store().load()
        client = github_commands.connect(profile, per_page=per_page)
        return github_commands.repo_list(console, client, profile, user, page=page)
    return command_pattern(run)()


@github_app.command(name="issue-list")
def issue_list_command(
    repo: Optional[str] = typer.Argument(None, help="owner/repo"),
    state: str = typer.Argument("open", help="open, closed or all"),
) -> Any:
    """List issues of a repository."""
    require_args("git-helper github issue-list <owner/repo> [state]", repo)
    def run() -> Any:
        profile = _store().load()
        return github_commands.issue_list(console, github_commands.connect(profile), profile, repo, state)
    return command_pattern(run)()


@github_app.command(name="issue-create")
def issue_create_command(
    repo: Optional[str] = typer.Argument(None, help="owner/repo"),
    title: Optional[str] = typer.Argument(None, help="Issue title"),
    body: str = typer.Argument("", help="Issue body"),
) -> Any:
    """Open an issue."""
    require_args('git-helper github issue-create <owner/repo> "title" [body]', repo, title)
    def run() -> Any:
        profile = _store().load()
        return github_commands.issue_create(console, github_commands.connect(profile), profile, repo, title, body)
    return command_pattern(run)()


@github_app.command(name="pr-list")
def pr_list_command(
    repo: Optional[str] = typer.Argument(None, help="owner/repo"),
    state: str = typer.Argument("open", help="open, closed or all"),
) -> Any:
    """List pull requests of a repository."""
    require_args("git-helper github pr-list <owner/repo> [state]", repo)
    def run() -> Any:
        profile = _store().load()
        return github_commands.pr_list(console, github_commands.connect(profile), profile, repo, state)
    return command_pattern(run)()


@github_app.command(name="pr-create")
def pr_create_command(
    repo: Optional[str] = typer.Argument(None, help="owner/repo"),
    title: Optional[str] = typer.Argument(None, help="Pull request title"),
    body: Optional[str] = typer.Argument(None, help="Pull request body"),
    head: Optional[str] = typer.Argument(None, help="Branch with the changes"),
    base: str = typer.Argument("main", help="Branch to merge into"),
) -> Any:
    """Open a pull request."""
    require_args('git-helper github pr-create <owner/repo> "title" "body" <head-branch> [base-branch]', repo, title, head)
    def run() -> Any:
        profile = _store().load()
        return github_commands.pr_create(
            console, github_commands.connect(profile), profile, repo, title, body or "", head, base
        )
    return command_pattern(run)()


@github_app.command()
def clone(
    repo: Optional[str] = typer.Argument(None, help="owner/repo"),
    directory: Optional[str] = typer.Argument(None, help="Target directory (default: repository name)"),
) -> Any:
    """Clone a repository, authenticating with the configured token if any."""
    require_args("git-helper github clone <owner/repo> [directory]", repo)
    return command_pattern(lambda: github_commands.clone(console, _store().load(), repo, directory))()


# =============================================================================
# ENTRY POINT
# =============================================================================

def main() -> None:  # pragma: no cover - entry point
    """Entry point for the git-helper CLI."""
    app(prog_name=GIT_HELPER)


if __name__ == "__main__":  # pragma: no cover
    main()
