"""Synapse (Matrix homeserver) adapter implementing RoomProvisioningPort.

- Unconfigured (no base URL or access token): create calls return None and
  moderation calls are no-ops, so local records are still written
- Provisioning failures (create / attach): raise AdapterFailureError when
  strict_provisioning is on, else log a warning and continue without the
  external id
- Moderation failures (kick / ban / unban / redact) always raise
  AdapterFailureError; the gateway has already audited the attempt
- Every request is bounded by the httpx client timeout
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlparse
from uuid import uuid4

import httpx

from src.ports.room_provisioning_port import RoomProvisioningPort
from src.shared.errors import AdapterFailureError

if TYPE_CHECKING:
    from src.shared.types import ChannelType

logger = logging.getLogger(__name__)

_ADAPTER = "synapse"
_CLIENT_API = "/_matrix/client/v3"

_PRIVATE_ROOM_STATE: list[dict[str, Any]] = [
    {
        "type": "m.room.history_visibility",
        "state_key": "",
        "content": {"history_visibility": "joined"},
    },
    {
        "type": "m.room.join_rules",
        "state_key": "",
        "content": {"join_rule": "invite"},
    },
]


def _room(room_id: str) -> str:
    return quote(room_id, safe="")


class SynapseAdapter(RoomProvisioningPort):
    def __init__(
        self,
        *,
        base_url: str | None,
        access_token: str | None,
        strict_provisioning: bool = False,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._access_token = access_token or ""
        self._strict = strict_provisioning
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._owns_client = client is None

    @property
    def configured(self) -> bool:
        return bool(self._base_url and self._access_token)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # -- Provisioning --

    async def create_space(self, name: str) -> str | None:
        body = await self._provision(
            "POST",
            f"{_CLIENT_API}/createRoom",
            {
                "name": name,
                "creation_content": {"type": "m.space"},
                "preset": "private_chat",
                "power_level_content_override": {"users_default": 0},
                "initial_state": _PRIVATE_ROOM_STATE,
            },
        )
        return body.get("room_id") if body else None

    async def create_room(self, name: str, channel_type: ChannelType) -> str | None:
        body = await self._provision(
            "POST",
            f"{_CLIENT_API}/createRoom",
            {
                "name": name,
                "topic": f"{channel_type.value} channel provisioned by hubguard",
                "preset": "private_chat",
                "initial_state": _PRIVATE_ROOM_STATE,
            },
        )
        return body.get("room_id") if body else None

    async def attach_child(self, parent_id: str, child_id: str) -> None:
        via = urlparse(self._base_url).hostname or ""
        await self._provision(
            "PUT",
            f"{_CLIENT_API}/rooms/{_room(parent_id)}/state/m.space.child/{_room(child_id)}",
            {"via": [via]},
        )

    # -- Moderation --

    async def kick(self, room_id: str, user_id: str, reason: str | None = None) -> None:
        await self._moderate("kick", room_id, user_id, reason)

    async def ban(self, room_id: str, user_id: str, reason: str | None = None) -> None:
        await self._moderate("ban", room_id, user_id, reason)

    async def unban(self, room_id: str, user_id: str, reason: str | None = None) -> None:
        await self._moderate("unban", room_id, user_id, reason)

    async def redact(self, room_id: str, event_id: str, reason: str | None = None) -> None:
        if not self.configured:
            return
        path = f"{_CLIENT_API}/rooms/{_room(room_id)}/redact/{_room(event_id)}/{uuid4().hex}"
        await self._request("PUT", path, {"reason": reason} if reason else {})

    async def _moderate(
        self,
        verb: str,
        room_id: str,
        user_id: str,
        reason: str | None,
    ) -> None:
        if not self.configured:
            return
        payload: dict[str, Any] = {"user_id": user_id}
        if reason:
            payload["reason"] = reason
        await self._request("POST", f"{_CLIENT_API}/rooms/{_room(room_id)}/{verb}", payload)

    # -- Transport --

    async def _provision(
        self,
        method: str,
        path: str,
        payload: dict[str, Any],
    ) -> dict[str, Any] | None:
        if not self.configured:
            return None
        try:
            return await self._request(method, path, payload)
        except AdapterFailureError as exc:
            if self._strict:
                raise
            logger.warning("%s; continuing without Synapse provisioning", exc)
            return None

    async def _request(self, method: str, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.request(
                method,
                f"{self._base_url}{path}",
                json=payload,
                headers={"Authorization": f"Bearer {self._access_token}"},
            )
        except httpx.HTTPError as exc:
            raise AdapterFailureError(
                _ADAPTER, f"Synapse request network failure: {exc}"
            ) from exc

        if response.is_error:
            raise AdapterFailureError(
                _ADAPTER, f"Synapse request failed: {response.status_code}"
            )
        if not response.content:
            return {}
        return response.json()
