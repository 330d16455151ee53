"""aiohttp endpoint that forwards GitHub deliveries to the event source."""

from __future__ import annotations

import logging

from aiohttp import web

from adapters.github_events import GitHubEventSource, WebhookRequestError

LOGGER = logging.getLogger(__name__)

DEFAULT_PATH = "/github"


def build_app(event_source: GitHubEventSource, path: str = DEFAULT_PATH) -> web.Application:
    """Create the web application serving the webhook route."""

    async def handle_github(request: web.Request) -> web.Response:
        LOGGER.debug("GitHub event listener called")
        body = await request.read()
        try:
            result = await event_source.dispatch(
                request.headers.get("X-GitHub-Event", ""),
                body,
                signature=request.headers.get("X-Hub-Signature-256"),
                delivery_id=request.headers.get("X-GitHub-Delivery", ""),
            )
        except WebhookRequestError as err:
            LOGGER.warning("Rejected GitHub delivery: %s", err)
            return web.json_response({"error": str(err)}, status=400)
        except Exception as err:
            # One failed event must not take the listener down.
            LOGGER.exception("Error handling GitHub event request")
            return web.json_response({"error": str(err)}, status=500)

        response = {"status": result.status}
        if result.kind is not None:
            response["kind"] = result.kind.value
        if result.outcome is not None:
            response["outcome"] = result.outcome.value
        return web.json_response(response, status=202)

    @web.middleware
    async def log_unknown_paths(request: web.Request, handler):
        try:
            return await handler(request)
        except web.HTTPNotFound:
            LOGGER.info("Unknown path: %s", request.path)
            raise

    app = web.Application(middlewares=[log_unknown_paths])
    app.router.add_post(path, handle_github)
    return app
