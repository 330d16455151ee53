"""Tracking terms and post bodies for relayed events."""

from __future__ import annotations

from core.models import IssueEvent, PullRequestEvent, ReleaseEvent

PRERELEASE_PREFIX = "Pre-release: "


def tracking_term(owner: str, repo: str, number: int) -> str:
    """Return the search key shared by every post about one entity.

    Example: ("acme", "widgets", 42) -> "#acme.widgets.42"
    """

    return f"#{owner}.{repo}.{number}"


def pull_request_term(event: PullRequestEvent) -> str:
    return tracking_term(event.owner, event.repo, event.number)


def issue_message(event: IssueEvent) -> str:
    return f"{event.title}\n\n{event.html_url}"


def pull_request_message(event: PullRequestEvent) -> str:
    # The term leads the body so a hashtag search finds the post again.
    return f"{pull_request_term(event)} {event.title}\n\n{event.html_url}"


def release_message(event: ReleaseEvent, prerelease: bool = False) -> str:
    body = f"{event.name} - {event.tag_name}\n\n{event.html_url}"
    if prerelease:
        return f"{PRERELEASE_PREFIX}{body}"
    return body
