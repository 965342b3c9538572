"""Shared fixtures for API integration tests.

This module provides a TestClient wired to a fresh reconciler through
FastAPI's dependency override system.
"""

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_outbox, get_reconciler
from main import app


@pytest.fixture
def client_with_reconciler(fresh_reconciler, outbox):
    """Provide a TestClient with a fresh reconciler and outbox injected.

    Args:
        fresh_reconciler: A reconciler over an empty in-memory store.
        outbox: The outbox the reconciler sends into.

    Yields:
        A tuple of (TestClient, SyncReconciler, Outbox) for testing.

    Example:
        def test_something(client_with_reconciler):
            client, reconciler, outbox = client_with_reconciler
            response = client.get("/threads")
            assert response.status_code == 200
    """
    app.dependency_overrides[get_reconciler] = lambda: fresh_reconciler
    app.dependency_overrides[get_outbox] = lambda: outbox

    client = TestClient(app, raise_server_exceptions=False)

    yield client, fresh_reconciler, outbox

    app.dependency_overrides.clear()
