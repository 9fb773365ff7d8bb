"""VoiceTokenService - short-lived SFU join tokens.

The token is an HS256 JWT (PyJWT) with claims:
  sub            product user id
  room           SFU room id of the voice channel
  video_quality  low | medium | high
  exp            expiry (TTL never below 60s)
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import jwt

from src.infra.auth.rbac import PrivilegedAction
from src.shared.errors import ValidationError
from src.shared.types import ChannelType, Scope, VoiceTokenGrant

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.authz.gateway.privileged import PrivilegedActionGateway
    from src.ports.scope_directory_port import ScopeDirectoryPort

MIN_TTL_SECONDS = 60
VIDEO_QUALITIES = frozenset({"low", "medium", "high"})
_ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class VoiceTokenService:
    def __init__(
        self,
        *,
        gateway: PrivilegedActionGateway,
        directory: ScopeDirectoryPort,
        secret: str,
        ttl_seconds: int = 3600,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._gateway = gateway
        self._directory = directory
        self._secret = secret
        self._ttl_seconds = max(MIN_TTL_SECONDS, ttl_seconds)
        self._clock = clock

    async def issue(
        self,
        actor_user_id: str,
        *,
        server_id: str,
        channel_id: str,
        video_quality: str = "medium",
    ) -> VoiceTokenGrant:
        """Issue a join token for a voice channel (voice.token.issue).

        Raises:
            ValidationError: Unknown quality, or channel is not a voice channel.
            ForbiddenScopeError: Actor lacks voice.token.issue at the channel.
        """
        if video_quality not in VIDEO_QUALITIES:
            raise ValidationError(f"unknown video_quality: {video_quality}", field="video_quality")

        async def effect() -> VoiceTokenGrant:
            channel = await self._directory.get_channel(channel_id)
            if (
                channel is None
                or channel.server_id != server_id
                or channel.channel_type is not ChannelType.VOICE
                or not channel.voice_sfu_room_id
            ):
                raise ValidationError(
                    "Channel is not configured as a voice channel", field="channel_id"
                )

            expires_at = self._clock() + timedelta(seconds=self._ttl_seconds)
            token = jwt.encode(
                {
                    "sub": actor_user_id,
                    "room": channel.voice_sfu_room_id,
                    "video_quality": video_quality,
                    "exp": int(expires_at.timestamp()),
                },
                self._secret,
                algorithm=_ALGORITHM,
            )
            return VoiceTokenGrant(
                channel_id=channel_id,
                server_id=server_id,
                sfu_room_id=channel.voice_sfu_room_id,
                participant_user_id=actor_user_id,
                token=token,
                expires_at=expires_at,
            )

        return await self._gateway.execute(
            actor_user_id=actor_user_id,
            action=PrivilegedAction.VOICE_TOKEN_ISSUE,
            scope=Scope(server_id=server_id, channel_id=channel_id),
            reason="voice_session_join",
            effect=effect,
            metadata={"videoQuality": video_quality},
        )


def decode_voice_token(token: str, secret: str) -> dict[str, object]:
    """Verify and decode a voice token (used by the SFU side and tests)."""
    return jwt.decode(token, secret, algorithms=[_ALGORITHM])
