"""Root conftest - shared fixtures for all test layers.

Markers:
    @pytest.mark.unit        - No external deps
    @pytest.mark.smoke       - Fast subset
    @pytest.mark.integration - Needs running services
"""

from __future__ import annotations

import pytest

from tests.fakes.world import World, build_world


@pytest.fixture
def world() -> World:
    return build_world()
