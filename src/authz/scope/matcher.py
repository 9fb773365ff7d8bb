"""Hierarchical scope matching.

A binding's scope covers a query scope when every axis (hub, server,
channel) independently matches:

  binding axis absent  -> wildcard, matches anything
  query axis absent    -> axis not being checked
  both present         -> must be equal

A hub-scoped binding therefore covers every server and channel in that hub,
while a fully-scoped binding covers exactly one channel.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.shared.types import Scope


def _axis_matches(bound: str | None, queried: str | None) -> bool:
    return bound is None or queried is None or bound == queried


def scope_matches(binding_scope: Scope, query_scope: Scope) -> bool:
    """Return True when binding_scope covers query_scope on all three axes."""
    return (
        _axis_matches(binding_scope.hub_id, query_scope.hub_id)
        and _axis_matches(binding_scope.server_id, query_scope.server_id)
        and _axis_matches(binding_scope.channel_id, query_scope.channel_id)
    )
