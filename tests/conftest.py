from __future__ import annotations

import asyncio
import dataclasses
from pathlib import Path
import sys

import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for imports like `import persistence...` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def sandbox_project(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """
    Redirect persistence paths to a temp project directory so tests never touch real ./data.
    """
    import persistence.factory as factory
    import persistence.paths as paths

    def _project_root() -> Path:
        return tmp_path

    def _data_dir() -> Path:
        p = tmp_path / "data"
        p.mkdir(parents=True, exist_ok=True)
        return p

    monkeypatch.setattr(paths, "project_root", _project_root)
    monkeypatch.setattr(paths, "data_dir", _data_dir)
    monkeypatch.setattr(factory, "data_dir", _data_dir)
    return tmp_path


@pytest.fixture
def test_settings():
    from settings import get_settings

    return dataclasses.replace(
        get_settings(),
        storage_backend="local",
        persist_to_disk=False,
        gemini_api_key=None,
        strict_validation=False,
        jwt_secret="test-secret",
        issuer="http://testserver",
    )


@pytest.fixture
def store():
    from persistence.local_store import LocalKeyedStore

    return LocalKeyedStore(None)


@pytest.fixture
def services(store, test_settings):
    from services import build_services

    return build_services(store, test_settings)


@pytest.fixture
def client(store, test_settings):
    from fastapi.testclient import TestClient

    import app as app_module

    return TestClient(app_module.create_app(store=store, settings=test_settings))


class YieldingStore:
    """
    Wraps a store and yields to the event loop inside every call, so concurrent
    coroutines interleave the way they would against a remote backend.
    """

    def __init__(self, inner) -> None:
        self._inner = inner

    async def get(self, key):
        await asyncio.sleep(0)
        value = await self._inner.get(key)
        await asyncio.sleep(0)
        return value

    async def set(self, key, value):
        await asyncio.sleep(0)
        await self._inner.set(key, value)

    async def delete(self, key):
        await asyncio.sleep(0)
        await self._inner.delete(key)

    async def list(self, prefix=""):
        await asyncio.sleep(0)
        return await self._inner.list(prefix)

    async def clear(self):
        await self._inner.clear()

    async def aclose(self):
        await self._inner.aclose()


@pytest.fixture
def yielding_store(store):
    return YieldingStore(store)


@pytest.fixture
def sign_in(client):
    """Signs a fresh mock user in; returns (user_id, auth headers)."""

    def _sign_in(email: str = "a@example.com") -> tuple[str, dict[str, str]]:
        r = client.post("/api/auth/sign-in", json={"email": email, "provider": "email"})
        assert r.status_code == 200
        payload = r.json()
        return payload["user"]["id"], {"Authorization": f"Bearer {payload['access_token']}"}

    return _sign_in
