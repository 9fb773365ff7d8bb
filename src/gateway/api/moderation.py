"""Moderation, channel control, report and audit log endpoints.

- POST  /api/v1/moderation/actions        -> 204
- PATCH /api/v1/channels/{id}/controls    -> 204
- POST  /api/v1/reports                   -> 201
- PATCH /api/v1/reports/{id}
- GET   /api/v1/audit-logs?serverId=...
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Query, Request, Response
from pydantic import Field

from src.authz.moderation.service import MAX_AUDIT_PAGE, MAX_SLOW_MODE_SECONDS, ModerationKind
from src.gateway.api.schemas import CamelModel, ReasonedRequest
from src.infra.auth.rbac import Role
from src.shared.types import ReportStatus

if TYPE_CHECKING:
    from src.authz.moderation.reports import ReportService
    from src.authz.moderation.service import ModerationService


class ModerationActionRequest(ReasonedRequest):
    action: ModerationKind
    server_id: str
    channel_id: str | None = None
    target_user_id: str | None = None
    target_message_id: str | None = None
    timeout_seconds: int | None = Field(default=None, gt=0)


class ChannelControlsRequest(ReasonedRequest):
    server_id: str | None = None
    lock: bool | None = None
    slow_mode_seconds: int | None = Field(default=None, ge=0, le=MAX_SLOW_MODE_SECONDS)
    posting_restricted_to_roles: list[Role] | None = None


class CreateReportRequest(CamelModel):
    server_id: str
    reason: str
    channel_id: str | None = None
    target_user_id: str | None = None
    target_message_id: str | None = None


class TransitionReportRequest(ReasonedRequest):
    status: ReportStatus


def create_moderation_router(
    *,
    moderation: ModerationService,
    reports: ReportService,
) -> APIRouter:
    router = APIRouter(prefix="/api/v1", tags=["moderation"])

    @router.post("/moderation/actions", status_code=204)
    async def moderation_action(body: ModerationActionRequest, request: Request) -> Response:
        await moderation.perform(
            request.state.user_id,
            body.action,
            server_id=body.server_id,
            reason=body.reason,
            channel_id=body.channel_id,
            target_user_id=body.target_user_id,
            target_message_id=body.target_message_id,
            timeout_seconds=body.timeout_seconds,
        )
        return Response(status_code=204)

    @router.patch("/channels/{channel_id}/controls", status_code=204)
    async def channel_controls(
        channel_id: str,
        body: ChannelControlsRequest,
        request: Request,
    ) -> Response:
        roles = body.posting_restricted_to_roles
        await moderation.set_channel_controls(
            request.state.user_id,
            channel_id,
            reason=body.reason,
            server_id=body.server_id,
            lock=body.lock,
            slow_mode_seconds=body.slow_mode_seconds,
            posting_restricted_to_roles=tuple(roles) if roles is not None else None,
        )
        return Response(status_code=204)

    @router.post("/reports", status_code=201)
    async def create_report(body: CreateReportRequest, request: Request) -> dict[str, Any]:
        report = await reports.create_report(
            request.state.user_id,
            server_id=body.server_id,
            reason=body.reason,
            channel_id=body.channel_id,
            target_user_id=body.target_user_id,
            target_message_id=body.target_message_id,
        )
        return report.to_dict()

    @router.patch("/reports/{report_id}")
    async def transition_report(
        report_id: str,
        body: TransitionReportRequest,
        request: Request,
    ) -> dict[str, Any]:
        report = await reports.transition_report(
            request.state.user_id,
            report_id,
            body.status,
            body.reason,
        )
        return report.to_dict()

    @router.get("/audit-logs")
    async def audit_logs(
        request: Request,
        server_id: str = Query(alias="serverId"),
        limit: int = Query(default=MAX_AUDIT_PAGE, ge=1, le=MAX_AUDIT_PAGE),
    ) -> dict[str, Any]:
        records = await moderation.list_audit_logs(request.state.user_id, server_id, limit)
        return {"items": [record.to_dict() for record in records]}

    return router
