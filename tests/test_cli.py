"""Tests for the turso-pds admin CLI."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from turso_pds import cli
from turso_pds.blobstore import LibsqlBlobStore, content_id_for
from turso_pds.config import Settings
from turso_pds.errors import TursoPdsError

from .conftest import RecordingClient

runner = CliRunner()
OWNER = "did:plc:alice"


@pytest.fixture
def cli_db(db_path: Path, created_clients: list[RecordingClient], monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(cli, "settings", Settings(_env_file=None, database_url=f"file:{db_path}"))
    result = runner.invoke(cli.app, ["init-schema"])
    assert result.exit_code == 0, result.output
    return created_clients


@pytest.fixture
def upload(tmp_path: Path) -> Path:
    path = tmp_path / "hello.txt"
    path.write_bytes(b"hello")
    return path


def put(path: Path, *extra: str) -> str:
    result = runner.invoke(cli.app, ["put", str(path), "--owner", OWNER, *extra])
    assert result.exit_code == 0, result.output
    return result.stdout.strip()


def test_init_schema_closes_client(cli_db: list[RecordingClient]) -> None:
    assert len(cli_db) == 1
    assert cli_db[0].closed


def test_put_and_cat(cli_db, upload: Path, tmp_path: Path) -> None:
    cid = put(upload)
    assert cid == content_id_for(b"hello")

    out = tmp_path / "out.bin"
    result = runner.invoke(cli.app, ["cat", cid, "--owner", OWNER, "--output", str(out)])
    assert result.exit_code == 0, result.output
    assert out.read_bytes() == b"hello"

    result = runner.invoke(cli.app, ["cat", cid, "--owner", OWNER])
    assert result.exit_code == 0
    assert b"hello" in result.stdout_bytes


def test_status_and_promote(cli_db, upload: Path) -> None:
    cid = put(upload)

    result = runner.invoke(cli.app, ["promote", cid, "--owner", OWNER])
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli.app, ["status", cid, "--owner", OWNER])
    assert result.exit_code == 0
    assert "stored" in result.stdout
    assert "yes" in result.stdout


def test_put_permanent(cli_db, upload: Path) -> None:
    cid = put(upload, "--permanent")

    result = runner.invoke(cli.app, ["promote", cid, "--owner", "did:plc:mallory"])
    assert result.exit_code == 1


def test_promote_missing(cli_db) -> None:
    result = runner.invoke(cli.app, ["promote", "bafkreimissing", "--owner", OWNER])

    assert result.exit_code == 1
    assert "make permanent" in result.output


def test_quarantine_hides_blob(cli_db, upload: Path) -> None:
    cid = put(upload)

    assert runner.invoke(cli.app, ["quarantine", cid, "--owner", OWNER]).exit_code == 0
    result = runner.invoke(cli.app, ["cat", cid, "--owner", OWNER])
    assert result.exit_code == 1
    assert "Blob not found" in result.output

    assert runner.invoke(cli.app, ["unquarantine", cid, "--owner", OWNER]).exit_code == 0
    result = runner.invoke(cli.app, ["cat", cid, "--owner", OWNER])
    assert result.exit_code == 0


def test_rm_and_purge(cli_db, tmp_path: Path) -> None:
    cids = []
    for i in range(3):
        path = tmp_path / f"file{i}"
        path.write_bytes(f"content {i}".encode())
        cids.append(put(path))

    result = runner.invoke(cli.app, ["rm", cids[0], cids[1], "--owner", OWNER])
    assert result.exit_code == 0
    assert runner.invoke(cli.app, ["cat", cids[0], "--owner", OWNER]).exit_code == 1
    assert runner.invoke(cli.app, ["cat", cids[2], "--owner", OWNER]).exit_code == 0

    result = runner.invoke(cli.app, ["purge", "--owner", OWNER], input="n\n")
    assert "Aborted" in result.output
    assert runner.invoke(cli.app, ["cat", cids[2], "--owner", OWNER]).exit_code == 0

    result = runner.invoke(cli.app, ["purge", "--owner", OWNER, "--force"])
    assert result.exit_code == 0
    assert runner.invoke(cli.app, ["cat", cids[2], "--owner", OWNER]).exit_code == 1


def test_put_missing_file(cli_db, tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["put", str(tmp_path / "nope"), "--owner", OWNER])

    assert result.exit_code == 1


@pytest.mark.parametrize(
    ("args", "method"),
    [
        (["status", "bafkreiany"], "has_temp"),
        (["quarantine", "bafkreiany"], "quarantine"),
        (["unquarantine", "bafkreiany"], "unquarantine"),
        (["rm", "bafkreiany"], "delete"),
        (["rm", "bafkreione", "bafkreitwo"], "delete_many"),
        (["purge", "--force"], "delete_all"),
    ],
)
def test_store_errors_reported_on_every_command(
    cli_db, monkeypatch: pytest.MonkeyPatch, args: list[str], method: str
) -> None:
    async def _fail(self, *_):
        raise TursoPdsError("database unavailable")

    monkeypatch.setattr(LibsqlBlobStore, method, _fail)

    result = runner.invoke(cli.app, [*args, "--owner", OWNER])

    assert result.exit_code == 1
    assert "Error: database unavailable" in result.output
    assert not isinstance(result.exception, TursoPdsError)


def test_put_store_error(cli_db, upload: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    async def _fail(self, data):
        raise TursoPdsError("database unavailable")

    monkeypatch.setattr(LibsqlBlobStore, "put_temp", _fail)

    result = runner.invoke(cli.app, ["put", str(upload), "--owner", OWNER])

    assert result.exit_code == 1
    assert "Error: database unavailable" in result.output
