"""Voice token endpoint: POST /api/v1/voice/token (voice.token.issue)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from fastapi import APIRouter, Request

from src.gateway.api.schemas import CamelModel

if TYPE_CHECKING:
    from src.authz.voice.token import VoiceTokenService


class VoiceTokenRequest(CamelModel):
    server_id: str
    channel_id: str
    video_quality: Literal["low", "medium", "high"] = "medium"


def create_voice_router(*, voice: VoiceTokenService) -> APIRouter:
    router = APIRouter(prefix="/api/v1/voice", tags=["voice"])

    @router.post("/token")
    async def issue_token(body: VoiceTokenRequest, request: Request) -> dict[str, Any]:
        grant = await voice.issue(
            request.state.user_id,
            server_id=body.server_id,
            channel_id=body.channel_id,
            video_quality=body.video_quality,
        )
        return grant.to_dict()

    return router
