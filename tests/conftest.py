"""Shared pytest fixtures."""

import pytest
from pathlib import Path


@pytest.fixture
def fixtures_dir():
    """Path to tests/fixtures/ containing .d.ts trees and override files."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture(params=["core/Foo.d.ts", "core/Object3D.d.ts", "math/Vector3.d.ts"])
def example_file(fixtures_dir, request):
    """Parametrized: one of the declaration fixtures."""
    return fixtures_dir / request.param


@pytest.fixture
def overrides_file(fixtures_dir):
    return fixtures_dir / "overrides.yaml"
