from __future__ import annotations

import asyncio

import pytest
from aiohttp import test_utils, web

from adapters.mattermost_client import MattermostClient
from core.errors import ChatAPIError, NotFoundError
from core.models import Post


def _fake_server(state: dict) -> web.Application:
    async def team_by_name(request: web.Request) -> web.Response:
        if request.match_info["name"] == "slow":
            await asyncio.sleep(1)
        if request.match_info["name"] != "eng":
            return web.json_response({"message": "not found"}, status=404)
        return web.json_response({"id": "t1", "name": "eng", "display_name": "Eng"})

    async def search(request: web.Request) -> web.Response:
        state["search"] = await request.json()
        return web.json_response(
            {
                "order": ["p2", "p1"],
                "posts": {
                    "p1": {"id": "p1", "channel_id": "c1", "user_id": "bot", "message": "a", "is_pinned": True},
                    "p2": {"id": "p2", "channel_id": "c2", "user_id": "u", "message": "b"},
                },
            }
        )

    async def create(request: web.Request) -> web.Response:
        body = await request.json()
        state["created"] = body
        return web.json_response({"id": "p9", "user_id": "bot", **body}, status=201)

    async def pin(request: web.Request) -> web.Response:
        state.setdefault("pins", []).append((request.match_info["post_id"], request.match_info["action"]))
        return web.json_response({"status": "OK"})

    async def members(request: web.Request) -> web.Response:
        state["auth"] = request.headers.get("Authorization")
        state["paging"] = (request.query["page"], request.query["per_page"])
        return web.json_response([{"team_id": "t1", "user_id": "bot"}])

    async def failing(request: web.Request) -> web.Response:
        return web.json_response({"message": "You do not have the appropriate permissions."}, status=403)

    async def login_page(request: web.Request) -> web.Response:
        return web.Response(text="<html>login</html>", content_type="text/html")

    app = web.Application()
    app.router.add_get("/api/v4/users/me", login_page)
    app.router.add_get("/api/v4/teams/name/{name}", team_by_name)
    app.router.add_post("/api/v4/teams/{team_id}/posts/search", search)
    app.router.add_post("/api/v4/posts", create)
    app.router.add_post("/api/v4/posts/{post_id}/{action}", pin)
    app.router.add_get("/api/v4/teams/{team_id}/members", members)
    app.router.add_post("/api/v4/teams/{team_id}/members", failing)
    return app


def _run(scenario, timeout_seconds: float = 10.0):
    state: dict = {}

    async def run():
        async with test_utils.TestServer(_fake_server(state)) as server:
            base_url = str(server.make_url(""))
            async with MattermostClient(base_url, "tok", timeout_seconds=timeout_seconds) as client:
                return await scenario(client)

    return asyncio.run(run()), state


def test_team_lookup_and_not_found() -> None:
    async def scenario(client: MattermostClient):
        team = await client.get_team_by_name("eng")
        with pytest.raises(NotFoundError):
            await client.get_team_by_name("ghost")
        return team

    team, _ = _run(scenario)
    assert team.id == "t1" and team.name == "eng"


def test_search_keeps_result_order() -> None:
    async def scenario(client: MattermostClient):
        return await client.search_posts("t1", "#acme.widgets.42")

    posts, state = _run(scenario)
    assert [post.id for post in posts] == ["p2", "p1"]
    assert posts[1].is_pinned
    assert state["search"] == {"terms": "#acme.widgets.42", "is_or_search": False}


def test_create_pinned_post_pins_it() -> None:
    async def scenario(client: MattermostClient):
        return await client.create_post(Post(channel_id="c1", user_id="bot", message="hello", is_pinned=True))

    post, state = _run(scenario)
    assert post.id == "p9" and post.is_pinned
    assert state["created"] == {"channel_id": "c1", "message": "hello"}
    assert state["pins"] == [("p9", "pin")]


def test_update_post_toggles_pin() -> None:
    async def scenario(client: MattermostClient):
        await client.update_post(Post(id="p1", channel_id="c1", user_id="bot", message="a", is_pinned=False))

    _, state = _run(scenario)
    assert state["pins"] == [("p1", "unpin")]


def test_members_are_paged_with_bearer_token() -> None:
    async def scenario(client: MattermostClient):
        return await client.list_team_members("t1", 2, 100)

    members, state = _run(scenario)
    assert [member.user_id for member in members] == ["bot"]
    assert state["auth"] == "Bearer tok"
    assert state["paging"] == ("2", "100")


def test_api_error_carries_message_and_status() -> None:
    async def scenario(client: MattermostClient):
        with pytest.raises(ChatAPIError) as excinfo:
            await client.add_team_member("t1", "bot")
        return excinfo.value

    err, _ = _run(scenario)
    assert err.status == 403
    assert "appropriate permissions" in str(err)


def test_timeout_becomes_api_error() -> None:
    async def scenario(client: MattermostClient):
        with pytest.raises(ChatAPIError) as excinfo:
            await client.get_team_by_name("slow")
        return excinfo.value

    err, _ = _run(scenario, timeout_seconds=0.2)
    assert "get team slow" in str(err)
    assert "timed out" in str(err)


def test_non_json_reply_becomes_api_error() -> None:
    async def scenario(client: MattermostClient):
        with pytest.raises(ChatAPIError) as excinfo:
            await client.get_me()
        return excinfo.value

    err, _ = _run(scenario)
    assert err.status == 200
    assert "invalid JSON response" in str(err)
