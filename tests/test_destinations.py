from __future__ import annotations

import asyncio

import pytest

from core.destinations import DestinationResolver
from core.errors import ChatAPIError, NotFoundError
from core.models import TeamMember
from fakes import BOT_ID, FakeChat


def test_resolve_returns_team_and_channel() -> None:
    chat = FakeChat()
    team = chat.add_team("eng")
    channel = chat.add_channel(team, "pr-feed")

    destination = asyncio.run(DestinationResolver(chat, BOT_ID).resolve("eng", "pr-feed"))

    assert destination.team == team
    assert destination.channel == channel
    assert not chat.called("add_team_member")


def test_adds_bot_when_not_a_member() -> None:
    chat = FakeChat()
    team = chat.add_team("eng", with_bot=False)

    asyncio.run(DestinationResolver(chat, BOT_ID).ensure_team("eng"))

    assert chat.called("add_team_member") == [("add_team_member", team.id, BOT_ID)]


def test_finds_bot_on_a_later_page() -> None:
    chat = FakeChat()
    team = chat.add_team("eng", with_bot=False)
    chat.members[team.id] = [TeamMember(team_id=team.id, user_id=f"user-{i}") for i in range(150)]
    chat.members[team.id].insert(120, TeamMember(team_id=team.id, user_id=BOT_ID))

    asyncio.run(DestinationResolver(chat, BOT_ID).ensure_team("eng"))

    pages = [call[2] for call in chat.called("list_team_members")]
    assert pages == [0, 1]
    assert all(call[3] == 100 for call in chat.called("list_team_members"))
    assert not chat.called("add_team_member")


def test_stops_paging_once_bot_is_found() -> None:
    chat = FakeChat()
    team = chat.add_team("eng", with_bot=False)
    chat.members[team.id] = [TeamMember(team_id=team.id, user_id=BOT_ID)] + [
        TeamMember(team_id=team.id, user_id=f"user-{i}") for i in range(250)
    ]

    asyncio.run(DestinationResolver(chat, BOT_ID).ensure_team("eng"))

    assert len(chat.called("list_team_members")) == 1


def test_missing_team_raises_not_found() -> None:
    chat = FakeChat()

    with pytest.raises(NotFoundError) as excinfo:
        asyncio.run(DestinationResolver(chat, BOT_ID).resolve("ghost", "pr-feed"))

    assert excinfo.value.name == "ghost"
    assert not chat.called("add_team_member")


def test_missing_channel_raises_not_found() -> None:
    chat = FakeChat()
    chat.add_team("eng")

    with pytest.raises(NotFoundError) as excinfo:
        asyncio.run(DestinationResolver(chat, BOT_ID).resolve("eng", "nope"))

    assert excinfo.value.kind == "channel"


def test_channel_lookup_passes_archive_policy() -> None:
    chat = FakeChat()
    team = chat.add_team("eng")
    chat.add_channel(team, "pr-feed")

    asyncio.run(DestinationResolver(chat, BOT_ID, include_archived=True).resolve("eng", "pr-feed"))

    assert chat.called("get_channel_by_name")[0][3] is True


def test_member_listing_failure_names_the_team() -> None:
    chat = FakeChat()
    chat.add_team("eng")
    chat.fail_on.add("list_team_members")

    with pytest.raises(ChatAPIError) as excinfo:
        asyncio.run(DestinationResolver(chat, BOT_ID).ensure_team("eng"))

    assert "list members of team eng" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, ChatAPIError)
