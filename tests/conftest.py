"""Pytest configuration and shared fixtures."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from app import app
from factories import FakeEngine
from services.engine import get_engine


@pytest.fixture
def fake_engine() -> FakeEngine:
    """Empty fake engine; tests fill in containers / inspects / stats."""
    return FakeEngine()


@pytest.fixture
def client(fake_engine: FakeEngine) -> Generator[TestClient, None, None]:
    """TestClient whose engine dependency is the fake engine."""
    app.dependency_overrides[get_engine] = lambda: fake_engine
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
