import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Avoid startup validation error when importing the app
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("ALLOW_CREDENTIALS", "false")
os.environ.setdefault("MATCH_STORE", "memory")


@pytest.fixture
def store():
    from scout.store import MemoryMatchStore

    return MemoryMatchStore()


@pytest.fixture
def client(store):
    """TestClient for the full app backed by an isolated in-memory store."""
    from fastapi.testclient import TestClient
    from scout.main import app
    from scout.store import get_store

    app.dependency_overrides[get_store] = lambda: store
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
