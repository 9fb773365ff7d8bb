"""Space-owner delegation and ownership transfer endpoints.

- GET    /api/v1/servers/{id}/delegations
- POST   /api/v1/servers/{id}/delegations       -> 201
- DELETE /api/v1/delegations/{id}               -> 204
- POST   /api/v1/servers/{id}/ownership/transfer
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 -- pydantic resolves annotations at runtime
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request, Response

from src.gateway.api.schemas import CamelModel

if TYPE_CHECKING:
    from src.authz.delegation.service import DelegationService


class AssignDelegationRequest(CamelModel):
    assigned_user_id: str
    expires_at: datetime | None = None


class TransferOwnershipRequest(CamelModel):
    new_owner_user_id: str


def create_delegation_router(*, delegations: DelegationService) -> APIRouter:
    router = APIRouter(prefix="/api/v1", tags=["delegation"])

    @router.get("/servers/{server_id}/delegations")
    async def list_delegations(server_id: str, request: Request) -> dict[str, Any]:
        items = await delegations.list_assignments(request.state.user_id, server_id)
        return {"items": [item.to_dict() for item in items]}

    @router.post("/servers/{server_id}/delegations", status_code=201)
    async def assign_delegation(
        server_id: str,
        body: AssignDelegationRequest,
        request: Request,
    ) -> dict[str, Any]:
        assignment = await delegations.assign(
            request.state.user_id,
            server_id,
            body.assigned_user_id,
            body.expires_at,
        )
        return assignment.to_dict()

    @router.delete("/delegations/{assignment_id}", status_code=204)
    async def revoke_delegation(assignment_id: str, request: Request) -> Response:
        await delegations.revoke(request.state.user_id, assignment_id)
        return Response(status_code=204)

    @router.post("/servers/{server_id}/ownership/transfer")
    async def transfer_ownership(
        server_id: str,
        body: TransferOwnershipRequest,
        request: Request,
    ) -> dict[str, Any]:
        server = await delegations.transfer_ownership(
            request.state.user_id,
            server_id,
            body.new_owner_user_id,
        )
        return server.to_dict()

    return router
