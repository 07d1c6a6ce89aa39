from __future__ import annotations

from typing import Any, Optional

import pytest
from argon2 import PasswordHasher
from fastapi.testclient import TestClient

from todo_rpc.main import create_app
from todo_rpc.settings import Settings

USERNAME = "testuser"
PASSWORD = "password123"


def make_settings(db_path: str, **overrides: Any) -> Settings:
    values = dict(
        sqlite_db_path=db_path,
        db_pool_size=3,
        db_init_retries=2,
        db_init_delay_seconds=0.0,
        jwt_secret="api-test-signing-key-0123456789abc",
        jwt_secret_generated=False,
        token_expires_seconds=3600,
        seed_default_user=True,
        default_username=USERNAME,
        default_password=PASSWORD,
        cors_allow_origins=["*"],
        log_level="DEBUG",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def fast_hasher() -> PasswordHasher:
    # Minimum argon2 cost keeps the suite quick
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(str(tmp_path / "todos.db"))


@pytest.fixture
def client(settings, fast_hasher):
    app = create_app(settings, sleep=lambda _: None, password_hasher=fast_hasher)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def token(client) -> str:
    res = client.post("/auth/login", json={"username": USERNAME, "password": PASSWORD})
    assert res.status_code == 200
    return res.json()["token"]


class RpcCaller:
    """Small helper posting envelopes to /rpc with a bearer token."""

    def __init__(self, client: TestClient, token: str) -> None:
        self.client = client
        self.headers = {"Authorization": f"Bearer {token}"}
        self._next_id = 0

    def post(self, body: Any = None, content: Optional[bytes] = None):
        if content is not None:
            return self.client.post(
                "/rpc", content=content, headers={**self.headers, "Content-Type": "application/json"}
            )
        return self.client.post("/rpc", json=body, headers=self.headers)

    def call(self, method: str, params: Any = None) -> dict:
        self._next_id += 1
        envelope = {"jsonrpc": "2.0", "method": method, "id": self._next_id}
        if params is not None:
            envelope["params"] = params
        res = self.post(envelope)
        assert res.status_code == 200
        body = res.json()
        assert body["id"] == self._next_id
        return body


@pytest.fixture
def rpc(client, token) -> RpcCaller:
    return RpcCaller(client, token)
