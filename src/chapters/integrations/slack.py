"""Slack Web API client used as the notification boundary.

The scheduler and services only depend on the ``Notifier`` protocol:
post a message to a channel, list a channel's members, and tell whether a
user is a bot. ``SlackClient`` implements it over ``httpx`` with bearer
authentication and a bounded timeout.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from chapters.config import SlackConfig
from chapters.errors import NotificationError
from chapters.logging import get_logger

# Slack's built-in assistant reports is_bot=false
SLACKBOT_USER_ID = "USLACKBOT"


class Notifier(Protocol):
    """Outbound chat operations the scheduler depends on."""

    async def post_message(self, channel_id: str, text: str) -> None: ...

    async def list_group_members(self, channel_id: str) -> list[str]: ...

    async def is_bot_user(self, user_id: str) -> bool: ...


class SlackClient:
    """Client for the Slack Web API methods Chapters uses."""

    def __init__(self, config: SlackConfig) -> None:
        self.config = config
        self.logger = get_logger(__name__)
        self._client: httpx.AsyncClient | None = None
        self._bot_status: dict[str, bool] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.api_base_url.rstrip("/") + "/",
                timeout=self.config.timeout_seconds,
                headers={"Authorization": f"Bearer {self.config.bot_token}"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _call(
        self,
        method: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Invoke a Web API method and return its decoded body.

        Methods with a ``json`` body are sent as POST, others as GET.

        Raises:
            NotificationError: On transport errors, non-2xx responses, or a
                response body with ``ok: false``.
        """
        client = await self._get_client()
        try:
            if json is not None:
                response = await client.post(method, json=json)
            else:
                response = await client.get(method, params=params)
        except httpx.RequestError as e:
            self.logger.error("slack_request_error", method=method, error=str(e))
            raise NotificationError(method, str(e)) from e

        if not response.is_success:
            self.logger.warning(
                "slack_request_failed",
                method=method,
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise NotificationError(method, f"HTTP {response.status_code}")

        body = response.json()
        if not body.get("ok", False):
            error = body.get("error", "unknown_error")
            self.logger.warning("slack_api_error", method=method, error=error)
            raise NotificationError(method, error)

        return body

    async def post_message(self, channel_id: str, text: str) -> None:
        """Post a plain mrkdwn message to a channel."""
        await self._call(
            "chat.postMessage",
            json={"channel": channel_id, "text": text, "mrkdwn": True},
        )
        self.logger.info("slack_message_posted", channel_id=channel_id)

    async def list_group_members(self, channel_id: str) -> list[str]:
        """List every member of a channel, following pagination cursors.

        Args:
            channel_id: Channel whose members are listed.

        Returns:
            Member user ids in the order Slack returns them.
        """
        members: list[str] = []
        cursor: str | None = None
        pages = 0

        while True:
            params: dict[str, Any] = {
                "channel": channel_id,
                "limit": self.config.members_page_size,
            }
            if cursor:
                params["cursor"] = cursor

            body = await self._call("conversations.members", params=params)
            members.extend(body.get("members", []))
            pages += 1

            cursor = (body.get("response_metadata") or {}).get("next_cursor") or None
            if cursor is None:
                break

        self.logger.debug(
            "slack_members_listed",
            channel_id=channel_id,
            member_count=len(members),
            pages=pages,
        )
        return members

    async def is_bot_user(self, user_id: str) -> bool:
        """Return whether ``user_id`` is a bot (or Slackbot itself).

        Answers are cached for the life of the client; a user never changes
        between bot and human.
        """
        if user_id == SLACKBOT_USER_ID:
            return True
        cached = self._bot_status.get(user_id)
        if cached is not None:
            return cached

        body = await self._call("users.info", params={"user": user_id})
        user = body.get("user") or {}
        is_bot = bool(user.get("is_bot", False)) or user.get("id") == SLACKBOT_USER_ID
        self._bot_status[user_id] = is_bot
        return is_bot
