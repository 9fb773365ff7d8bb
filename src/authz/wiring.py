"""Assemble the authorization services from a set of port adapters.

The composition root (src/main.py) passes PostgreSQL and Synapse adapters;
tests pass the in-memory fakes. Nothing here reads configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from src.authz.audit import AuditTrail
from src.authz.delegation.service import DelegationService
from src.authz.gateway.privileged import PrivilegedActionGateway
from src.authz.idempotency.executor import IdempotentWorkflowExecutor
from src.authz.moderation.reports import ReportService
from src.authz.moderation.service import ModerationService
from src.authz.provisioning.workflows import ProvisioningService
from src.authz.roles.evaluator import EffectiveRoleEvaluator, PolicyService
from src.authz.roles.grant import RoleGrantAuthorizer, RoleGrantService
from src.authz.scope.resolver import ScopeResolver
from src.authz.voice.token import VoiceTokenService

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from src.authz.metrics import AuthzMetrics
    from src.infra.resilience.retry import RetryPolicy
    from src.ports import (
        AuditLogPort,
        DelegationPort,
        IdempotencyPort,
        ReportPort,
        RoleBindingPort,
        RoomProvisioningPort,
        ScopeDirectoryPort,
    )


@dataclass(frozen=True)
class AuthzServices:
    policy: PolicyService
    evaluator: EffectiveRoleEvaluator
    authorizer: RoleGrantAuthorizer
    gateway: PrivilegedActionGateway
    grants: RoleGrantService
    delegations: DelegationService
    provisioning: ProvisioningService
    moderation: ModerationService
    reports: ReportService
    voice: VoiceTokenService


def build_authz_services(
    *,
    directory: ScopeDirectoryPort,
    bindings: RoleBindingPort,
    delegations: DelegationPort,
    audit_log: AuditLogPort,
    idempotency: IdempotencyPort,
    rooms: RoomProvisioningPort,
    reports: ReportPort,
    sfu_token_secret: str,
    voice_token_ttl_seconds: int = 3600,
    metrics: AuthzMetrics | None = None,
    retry_policy: RetryPolicy | None = None,
    clock: Callable[[], datetime] | None = None,
) -> AuthzServices:
    audit = AuditTrail(audit_log)
    resolver = ScopeResolver(directory)
    evaluator = EffectiveRoleEvaluator(
        bindings=bindings,
        delegations=delegations,
        directory=directory,
        audit=audit,
    )
    authorizer = RoleGrantAuthorizer(resolver=resolver, evaluator=evaluator)
    gateway = PrivilegedActionGateway(
        resolver=resolver,
        evaluator=evaluator,
        audit=audit,
        metrics=metrics,
    )
    executor = IdempotentWorkflowExecutor(idempotency, metrics=metrics)
    clock_kwargs = {"clock": clock} if clock is not None else {}

    return AuthzServices(
        policy=PolicyService(resolver=resolver, evaluator=evaluator),
        evaluator=evaluator,
        authorizer=authorizer,
        gateway=gateway,
        grants=RoleGrantService(
            authorizer=authorizer,
            bindings=bindings,
            audit=audit,
            metrics=metrics,
        ),
        delegations=DelegationService(
            delegations=delegations,
            directory=directory,
            authorizer=authorizer,
            evaluator=evaluator,
            audit=audit,
            **clock_kwargs,
        ),
        provisioning=ProvisioningService(
            executor=executor,
            gateway=gateway,
            directory=directory,
            rooms=rooms,
            retry_policy=retry_policy,
        ),
        moderation=ModerationService(
            gateway=gateway,
            directory=directory,
            rooms=rooms,
            audit_log=audit_log,
        ),
        reports=ReportService(reports=reports, directory=directory, gateway=gateway),
        voice=VoiceTokenService(
            gateway=gateway,
            directory=directory,
            secret=sfu_token_secret,
            ttl_seconds=voice_token_ttl_seconds,
            **clock_kwargs,
        ),
    )
