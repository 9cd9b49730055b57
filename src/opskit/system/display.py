# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.05.17
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/system/display.py

# Standard library imports
from typing import Iterable, Optional, Sequence

# Third-party imports
import orjson
from rich.console import Console
from rich.markup import escape

# Local opskit imports
from opskit.config.manager import ServerRegistry
from opskit.core.git_ops import CommitRecord
from opskit.core.github_client import IssueSummary, PullSummary


RULE = "=" * 32


def print_header(console: Console, title: str) -> None:
    console.print(f"[bold blue]{escape(title)}[/bold blue]")
    console.print(RULE)
    console.print()


def print_success(console: Console, message: str) -> None:
    console.print(f"[green]✓[/green] {escape(message)}")


def print_error(console: Console, message: str) -> None:
    console.print(f"[red]✗[/red] {escape(message)}")


def print_warning(console: Console, message: str) -> None:
    console.print(f"[yellow]![/yellow] {escape(message)}")


def print_info(console: Console, message: str) -> None:
    console.print(f"[dim]{escape(message)}[/dim]")


def print_raw(console: Console, text: str) -> None:
    """Write tool output verbatim to the console's stream; tabs stay tabs."""
    if text:
        console.file.write(text + "\n")
        console.file.flush()


def mask_secret(value: str, visible: int = 3, suffix: str = "***") -> str:
    """Truncated preview of a secret; at most half of it is ever shown."""
    if not value:
        return "(not set)"
    return value[:min(visible, len(value) // 2)] + suffix


def display_settings(console: Console, settings: Sequence[tuple[str, str]], title: Optional[str] = None) -> None:
    """Print `  Label: value` lines."""
    if title:
        console.print(title)
    for label, value in settings:
        console.print(f"  {escape(label)}: {escape(str(value))}")


def display_bullets(console: Console, items: Iterable[str], detail: Optional[Sequence[str]] = None) -> None:
    """Print each item as a green name, optionally followed by its detail."""
    details = list(detail) if detail is not None else None
    for index, item in enumerate(items):
        suffix = f" {escape(details[index])}" if details is not None else ""
        console.print(f"  [green]{escape(item)}[/green]{suffix}")


def display_servers(console: Console, registry: ServerRegistry) -> None:
    for alias, entry in registry.items():
        console.print(f"  [green]{escape(alias)}[/green] -> {escape(entry.host)}:{entry.port} ({escape(entry.user)})")


def display_branches(console: Console, local: list[str], remote: list[str], current: str) -> None:
    console.print("[blue]Local branches:[/blue]")
    for branch in local:
        if branch == current:
            console.print(f"  * [green]{escape(branch)}[/green]")
        else:
            console.print(f"    {escape(branch)}")
    console.print()
    console.print("[blue]Remote branches:[/blue]")
    for branch in remote:
        console.print(f"    {escape(branch)}")


def display_issues(console: Console, issues: list[IssueSummary]) -> None:
    for issue in issues:
        console.print(f"Issue #{issue.number}: {escape(issue.title)}")


def display_pulls(console: Console, pulls: list[PullSummary]) -> None:
    for pull in pulls:
        console.print(f"PR#{pull.number}: {escape(pull.title)} ({escape(pull.head_ref)})")


def render_changelog_markdown(records: list[CommitRecord], from_ref: str, to_ref: str) -> str:
    lines = [
        "# Changelog",
        "",
        f"From: {from_ref or '(start)'} -> To: {to_ref}",
        "",
        "## Commits",
        "",
    ]
    lines.extend(f"- `{record.hash}` {record.subject} (by {record.author})" for record in records)
    return "\n".join(lines)


def render_changelog_plain(records: list[CommitRecord]) -> str:
    return "\n".join(f"{record.hash} {record.subject} ({record.author})" for record in records)


# ---- JSON ----

def tabular_to_json(header_line: str, row_lines: Iterable[str]) -> dict[str, list]:
    """Turn a tab-separated header line and rows into {"headers": [...], "data": [[...], ...]}.

    Blank row lines are skipped.
    """
    headers = header_line.split("\t") if header_line else []
    data = [line.split("\t") for line in row_lines if line.strip()]
    return {"headers": headers, "data": data}


def render_json(document: object) -> str:
    return orjson.dumps(document, default=str, option=orjson.OPT_INDENT_2).decode()
