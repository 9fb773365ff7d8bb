"""Server and channel provisioning endpoints.

- POST /api/v1/servers   -> space.create at hub scope
- POST /api/v1/channels  -> channel.create at server scope

Both accept an optional Idempotency-Key header; a replay with the same key
and body returns the stored response, a different body returns 409.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Header, Request

from src.gateway.api.schemas import CamelModel
from src.shared.types import ChannelType

if TYPE_CHECKING:
    from src.authz.provisioning.workflows import ProvisioningService


class CreateServerRequest(CamelModel):
    hub_id: str
    name: str


class CreateChannelRequest(CamelModel):
    server_id: str
    name: str
    type: ChannelType
    category_id: str | None = None


def create_provisioning_router(*, provisioning: ProvisioningService) -> APIRouter:
    router = APIRouter(prefix="/api/v1", tags=["provisioning"])

    @router.post("/servers", status_code=201)
    async def create_server(
        body: CreateServerRequest,
        request: Request,
        idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    ) -> dict[str, Any]:
        return await provisioning.create_server(
            request.state.user_id,
            hub_id=body.hub_id,
            name=body.name,
            idempotency_key=idempotency_key,
        )

    @router.post("/channels", status_code=201)
    async def create_channel(
        body: CreateChannelRequest,
        request: Request,
        idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    ) -> dict[str, Any]:
        return await provisioning.create_channel(
            request.state.user_id,
            server_id=body.server_id,
            name=body.name,
            channel_type=body.type,
            category_id=body.category_id,
            idempotency_key=idempotency_key,
        )

    return router
