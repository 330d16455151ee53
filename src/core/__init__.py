"""Core domain package for ghrelay.

Core contains reconciliation, destination resolution, and self-check logic
without any Mattermost HTTP or GitHub webhook code, keeping the business
logic portable.
"""
