"""CLI commands for browsing the cache: issue, pr."""

from __future__ import annotations

import json as json_mod

import click

from ghoffline.cli_common import fail, get_cache, parse_repo_arg
from ghoffline.core import Issue, IssueCache
from ghoffline.errors import NotFoundError
from ghoffline.types.core import KindFilter, StateFilter

REACTION_SYMBOLS = {
    "+1": "[+1]",
    "-1": "[-1]",
    "laugh": ":D",
    "hooray": "^_^",
    "confused": ":/",
    "heart": "<3",
    "rocket": "^^",
    "eyes": "o_o",
}

_STATE_CHOICE = click.Choice(["open", "closed", "all"], case_sensitive=False)


def _resolve_repository_id(cache: IssueCache, full_name: str | None) -> int | None:
    if full_name is None:
        return None
    owner, name = parse_repo_arg(full_name)
    try:
        return cache.get_repository(owner, name).id
    except NotFoundError as e:
        fail(str(e))


def format_issue_list(issues: list[Issue], *, show_type: bool, show_state: bool) -> str:
    """Render issues grouped by repository, one line per issue."""
    lines: list[str] = []
    by_repo: dict[str, list[Issue]] = {}
    for issue in issues:
        key = issue.repository.full_name if issue.repository else str(issue.repository_id)
        by_repo.setdefault(key, []).append(issue)

    for full_name, repo_issues in by_repo.items():
        lines.append("")
        lines.append(full_name)
        width = max(len(str(i.number)) for i in repo_issues)
        for issue in repo_issues:
            metadata: list[str] = []
            if show_type:
                metadata.append("PR" if issue.is_pull_request else "ISSUE")
            if show_state:
                metadata.append(issue.state.upper())
            metadata.append(issue.created_at.split("T")[0])
            lines.append(
                f"#{issue.number:>{width}} {click.style(' '.join(metadata), dim=True)} {click.style(issue.title, bold=True)}"
            )
    return "\n".join(lines) + "\n" if lines else ""


def format_issue_detail(issue: Issue) -> str:
    """Render one issue: header, labels, reactions, link, then the body."""
    header = click.style(issue.title, bold=True)
    if issue.author:
        header += " " + click.style(f"by {issue.author}", dim=True)
    state_colour = "green" if issue.state == "open" else "red"
    header += " " + click.style(issue.state.upper(), fg=state_colour)
    if issue.is_pull_request:
        header += " " + click.style("PULL REQUEST", fg="cyan")

    lines = [header]
    if issue.labels:
        lines.append(" ".join(click.style(label, fg="cyan") for label in issue.labels))
    if issue.reactions:
        lines.append(
            "\t".join(
                f"{REACTION_SYMBOLS.get(r.reaction_type, '?')} {click.style(str(r.count), fg='cyan')}"
                for r in issue.reactions
            )
        )
    if issue.url:
        lines.append(click.style(issue.url, dim=True))
    lines.append("")
    if issue.body.strip():
        lines.append(issue.body)
    else:
        lines.append(click.style("No description provided", dim=True))
    return "\n".join(lines)


def _show(
    number: int | None,
    *,
    state: StateFilter,
    kind: KindFilter,
    repo_name: str | None,
    pull_request: bool | None,
    as_json: bool,
) -> None:
    with get_cache() as cache:
        repository_id = _resolve_repository_id(cache, repo_name)
        if number is not None:
            try:
                issue = cache.get_issue(number, repository_id=repository_id, pull_request=pull_request)
            except NotFoundError as e:
                fail(str(e))
            if as_json:
                click.echo(json_mod.dumps(issue.to_dict(), indent=2, default=str))
            else:
                click.echo(format_issue_detail(issue))
            return

        issues = cache.list_issues(repository_id=repository_id, state=state, kind=kind)

    if as_json:
        click.echo(json_mod.dumps([i.to_dict() for i in issues], indent=2, default=str))
        return
    output = format_issue_list(issues, show_type=kind != "issue", show_state=state != "open")
    if not output:
        click.echo("No matching issues in the cache. Run: gh-offline sync")
        return
    click.echo_via_pager(output)


@click.command("issue")
@click.argument("number", type=int, required=False)
@click.option("--state", "-s", "state", type=_STATE_CHOICE, default="open", help="Filter by state (default: open)")
@click.option(
    "--type",
    "-t",
    "kind",
    type=click.Choice(["issue", "pr", "all"], case_sensitive=False),
    default="issue",
    help="Filter by type (default: issue)",
)
@click.option("--repo", "repo_name", default=None, metavar="OWNER/NAME", help="Limit to one repository")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def issue_cmd(number: int | None, state: StateFilter, kind: KindFilter, repo_name: str | None, as_json: bool) -> None:
    """List cached issues, or view one by NUMBER."""
    _show(number, state=state, kind=kind, repo_name=repo_name, pull_request=None, as_json=as_json)


@click.command("pr")
@click.argument("number", type=int, required=False)
@click.option("--state", "-s", "state", type=_STATE_CHOICE, default="open", help="Filter by state (default: open)")
@click.option("--repo", "repo_name", default=None, metavar="OWNER/NAME", help="Limit to one repository")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def pr_cmd(number: int | None, state: StateFilter, repo_name: str | None, as_json: bool) -> None:
    """List cached pull requests, or view one by NUMBER."""
    _show(number, state=state, kind="pr", repo_name=repo_name, pull_request=True, as_json=as_json)
