"""Shared pytest fixtures for turso-pds tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import libsql_client
import pytest

from turso_pds.blobstore import LibsqlBlobStore
from turso_pds.config import DatabaseConfig
from turso_pds.db import setup_schema

_create_client = libsql_client.create_client


class RecordingClient:
    """A real ``libsql_client`` client that records the statements it is sent.

    Tests run against the library's own ``file:`` backend, which opens a
    fresh sqlite connection for every ``execute`` and a dedicated one for
    each ``transaction()``, the same session model as a remote server.
    Statements passed to ``execute`` are kept as ``(sql, args)``.
    """

    def __init__(self, url: str, auth_token: str | None = None) -> None:
        self.url = url
        self.auth_token = auth_token
        self.statements: list[tuple[str, list[Any]]] = []
        self.transactions_opened = 0
        self._client = _create_client(url, auth_token=auth_token)

    @property
    def closed(self) -> bool:
        return self._client.closed

    async def execute(self, stmt: str, args: list[Any] | None = None) -> Any:
        self.statements.append((stmt, list(args or [])))
        return await self._client.execute(stmt, args)

    def transaction(self) -> libsql_client.Transaction:
        self.transactions_opened += 1
        return self._client.transaction()

    async def close(self) -> None:
        await self._client.close()


MakeStore = Callable[[str], LibsqlBlobStore]


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "pds.db"


@pytest.fixture
def db_config(db_path: Path) -> DatabaseConfig:
    return DatabaseConfig(url=f"file:{db_path}", auth_token="test-token")


@pytest.fixture
def created_clients(monkeypatch: pytest.MonkeyPatch) -> list[RecordingClient]:
    """Record every client built through ``libsql_client.create_client``.

    Returns the list of clients created during the test.
    """
    created: list[RecordingClient] = []

    def _create(url: str, *, auth_token: str | None = None, **kwargs: Any):
        client = RecordingClient(url, auth_token=auth_token)
        created.append(client)
        return client

    monkeypatch.setattr(libsql_client, "create_client", _create)
    return created


@pytest.fixture
async def client(db_path: Path) -> AsyncGenerator[RecordingClient, None]:
    """A client on a fresh database file with the blob schema in place."""
    c = RecordingClient(f"file:{db_path}")
    await setup_schema(c)
    c.statements.clear()
    yield c
    await c.close()


@pytest.fixture
def make_store(client: RecordingClient) -> MakeStore:
    """Factory fixture for owner-bound stores sharing one client."""

    def _make(did: str) -> LibsqlBlobStore:
        return LibsqlBlobStore(client, did)

    return _make
