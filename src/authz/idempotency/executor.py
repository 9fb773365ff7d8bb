"""IdempotentWorkflowExecutor - replay-safe multi-step workflows.

run(key, payload, workflow):
  - no key              -> run workflow, no caching
  - stored, same hash   -> return stored response, workflow not run
  - stored, other hash  -> IdempotencyConflictError, workflow not run
  - absent              -> run workflow, then insert-if-absent

The request hash is SHA-256 over canonical JSON (sorted keys, compact
separators). Two concurrent first calls may both run the workflow; the
loser of the insert race still returns its own response. External effects
inside the workflow must therefore tolerate at-least-once execution.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import TYPE_CHECKING, Any

from src.shared.errors import IdempotencyConflictError
from src.shared.types import IdempotencyRecord

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from src.authz.metrics import AuthzMetrics
    from src.ports.idempotency_port import IdempotencyPort

logger = logging.getLogger(__name__)


def canonical_json(value: Any) -> str:
    """Deterministic JSON text: sorted keys, no whitespace, UTF-8 kept."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def request_hash(payload: Any) -> str:
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()


class IdempotentWorkflowExecutor:
    def __init__(self, store: IdempotencyPort, metrics: AuthzMetrics | None = None) -> None:
        self._store = store
        self._metrics = metrics

    async def run(
        self,
        key: str | None,
        payload: dict[str, Any],
        workflow: Callable[[], Awaitable[dict[str, Any]]],
    ) -> dict[str, Any]:
        """Execute workflow at most once per (key, payload).

        Raises:
            IdempotencyConflictError: key was used with a different payload.
        """
        if not key:
            return await workflow()

        digest = request_hash(payload)
        existing = await self._store.get(key)
        if existing is not None:
            if existing.request_hash != digest:
                self._count("conflict")
                logger.info("Idempotency key %s reused with a different payload", key)
                raise IdempotencyConflictError(key)
            self._count("replay")
            return existing.response

        self._count("miss")
        response = await workflow()
        # Normalize so the first caller sees exactly what a replay returns.
        normalized = json.loads(canonical_json(response))

        stored = await self._store.insert_if_absent(
            IdempotencyRecord(key=key, request_hash=digest, response=normalized)
        )
        if not stored:
            logger.info("Idempotency key %s stored concurrently by another request", key)
        return normalized

    def _count(self, result: str) -> None:
        if self._metrics is not None:
            self._metrics.record_idempotency(result)
