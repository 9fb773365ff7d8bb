"""Role binding endpoints.

- POST   /api/v1/roles/grant           -> 201 binding (escalation rules apply)
- DELETE /api/v1/roles/bindings/{id}   -> 204
- GET    /api/v1/me/permissions        -> actions the caller holds at a scope
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request, Response

from src.gateway.api.schemas import CamelModel
from src.infra.auth.rbac import Role
from src.shared.types import Scope

if TYPE_CHECKING:
    from src.authz.roles.evaluator import PolicyService
    from src.authz.roles.grant import RoleGrantService


class GrantRoleRequest(CamelModel):
    product_user_id: str
    role: Role
    hub_id: str | None = None
    server_id: str | None = None
    channel_id: str | None = None


def create_roles_router(*, grants: RoleGrantService, policy: PolicyService) -> APIRouter:
    router = APIRouter(prefix="/api/v1", tags=["roles"])

    @router.post("/roles/grant", status_code=201)
    async def grant_role(body: GrantRoleRequest, request: Request) -> dict[str, Any]:
        binding = await grants.grant(
            request.state.user_id,
            body.product_user_id,
            body.role,
            Scope(hub_id=body.hub_id, server_id=body.server_id, channel_id=body.channel_id),
        )
        return binding.to_dict()

    @router.delete("/roles/bindings/{binding_id}", status_code=204)
    async def revoke_binding(binding_id: str, request: Request) -> Response:
        await grants.revoke(request.state.user_id, binding_id)
        return Response(status_code=204)

    @router.get("/me/permissions")
    async def my_permissions(
        request: Request,
        hubId: str | None = None,  # noqa: N803 -- query parameter name
        serverId: str | None = None,  # noqa: N803
        channelId: str | None = None,  # noqa: N803
    ) -> dict[str, Any]:
        scope = Scope(hub_id=hubId, server_id=serverId, channel_id=channelId)
        actions = await policy.allowed_actions(request.state.user_id, scope)
        return {
            "productUserId": request.state.user_id,
            **scope.to_dict(),
            "actions": sorted(action.value for action in actions),
        }

    return router
