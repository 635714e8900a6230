"""Owner-scoped, content-addressed blob storage in a remote libSQL database.

Blobs move through three states:
1. Temporary: uploaded but not yet referenced by a committed record
2. Permanent: promoted once a record referencing the blob is committed
3. Quarantined: hidden from reads by an administrative hold (orthogonal to 1/2)

Each store instance is bound to one owner DID, and every statement it issues
is filtered by that DID.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable
from types import TracebackType
from typing import Any

import libsql_client
from multiformats import CID, multihash
from sqlalchemy import delete, false, literal_column, select, true, update
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.sql import ClauseElement

from turso_pds.config import DatabaseConfig
from turso_pds.db import create_db_client, execute
from turso_pds.errors import BlobNotFoundError, BlobPromotionError
from turso_pds.models import blobs
from turso_pds.sql import compile_query

logger = logging.getLogger(__name__)


def content_id_for(data: bytes) -> str:
    """Compute the CIDv1 (raw codec, sha2-256, base32) for a payload."""
    digest = multihash.digest(data, "sha2-256")
    return str(CID("base32", 1, "raw", digest))


ByteSource = bytes | bytearray | memoryview | AsyncIterable[bytes]


async def _read_all(data: ByteSource) -> bytes:
    """Collect a payload given as a byte buffer or an async stream of chunks."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    buf = bytearray()
    async for chunk in data:
        buf.extend(chunk)
    return bytes(buf)


async def _single_chunk(data: bytes) -> AsyncIterator[bytes]:
    yield data


def _as_bytes(value: Any) -> bytes:
    """Decode a BLOB column value; clients may hand back any buffer type."""
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    raise TypeError(f"Expected BLOB data, got {type(value).__name__}")


class LibsqlBlobStore:
    """Blob store for a single owner, backed by the ``blobs`` table.

    Usage:
        create_store = LibsqlBlobStore.creator(DatabaseConfig(url, auth_token))
        async with create_store("did:plc:alice") as store:
            key = await store.put_temp(b"hello")
            await store.make_permanent(key, key)
            data = await store.get_bytes(key)
    """

    def __init__(
        self,
        client: libsql_client.Client,
        did: str,
        *,
        timeout: float | None = None,
    ) -> None:
        self.client = client
        self.did = did
        self._timeout = timeout
        self._closed = False

    @classmethod
    def creator(cls, config: DatabaseConfig) -> Callable[[str], LibsqlBlobStore]:
        """Return a factory producing a store (with its own client) per owner DID."""

        def create(did: str) -> LibsqlBlobStore:
            return cls(create_db_client(config), did, timeout=config.timeout)

        return create

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.client.close()

    async def __aenter__(self) -> LibsqlBlobStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _run(self, statement: ClauseElement) -> Any:
        return await execute(self.client, compile_query(statement), timeout=self._timeout)

    def _owned(self, cid: str) -> list[ClauseElement]:
        return [blobs.c.cid == cid, blobs.c.did == self.did]

    # ── Writes ────────────────────────────────────────────────────────

    async def put_temp(self, data: ByteSource) -> str:
        """Stage an upload. Returns its CID, which doubles as the temp key.

        Re-uploading identical bytes overwrites the same row.
        """
        data = await _read_all(data)
        cid = content_id_for(data)

        stmt = insert(blobs).values(cid=cid, data=data, did=self.did, is_permanent=false())
        stmt = stmt.on_conflict_do_update(
            index_elements=[blobs.c.cid],
            set_={"data": stmt.excluded["data"], "did": stmt.excluded["did"]},
        )
        await self._run(stmt)
        logger.debug("Staged temp blob %s for %s (%d bytes)", cid, self.did, len(data))
        return cid

    async def put_permanent(self, cid: str, data: ByteSource) -> None:
        """Store bytes under a CID that is already known, as permanent."""
        data = await _read_all(data)
        cid = str(cid)

        stmt = insert(blobs).values(cid=cid, data=data, did=self.did, is_permanent=true())
        stmt = stmt.on_conflict_do_update(
            index_elements=[blobs.c.cid],
            set_={
                "data": stmt.excluded["data"],
                "did": stmt.excluded["did"],
                "is_permanent": true(),
            },
        )
        await self._run(stmt)
        logger.debug("Stored permanent blob %s for %s (%d bytes)", cid, self.did, len(data))

    async def make_permanent(self, key: str, cid: str) -> None:
        """Promote the owner's temp blob ``key``, storing it under ``cid``.

        Raises:
            BlobPromotionError: no row for ``key`` belongs to this owner.
        """
        stmt = (
            update(blobs)
            .where(*self._owned(str(key)))
            .values(cid=str(cid), is_permanent=true())
        )
        result = await self._run(stmt)
        if not result.rows_affected:
            raise BlobPromotionError(str(key), self.did)
        logger.debug("Made blob %s permanent as %s for %s", key, cid, self.did)

    async def quarantine(self, cid: str) -> None:
        await self._run(update(blobs).where(*self._owned(str(cid))).values(is_quarantined=true()))
        logger.info("Quarantined blob %s for %s", cid, self.did)

    async def unquarantine(self, cid: str) -> None:
        await self._run(update(blobs).where(*self._owned(str(cid))).values(is_quarantined=false()))
        logger.info("Unquarantined blob %s for %s", cid, self.did)

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_bytes(self, cid: str) -> bytes:
        """Return the blob payload.

        Raises:
            BlobNotFoundError: the blob is absent, owned by someone else, or
                quarantined. The three cases are indistinguishable.
        """
        stmt = select(blobs.c.data).where(*self._owned(str(cid)), ~blobs.c.is_quarantined)
        result = await self._run(stmt)
        if not result.rows:
            raise BlobNotFoundError(str(cid))
        return _as_bytes(result.rows[0][0])

    async def get_stream(self, cid: str) -> AsyncIterator[bytes]:
        """Return a single-shot async iterator over the payload.

        The payload is fully fetched before this returns, so a missing blob
        raises here rather than on iteration.
        """
        data = await self.get_bytes(cid)
        return _single_chunk(data)

    async def has_temp(self, key: str) -> bool:
        stmt = (
            select(literal_column("1"))
            .select_from(blobs)
            .where(*self._owned(str(key)), ~blobs.c.is_permanent)
        )
        result = await self._run(stmt)
        return len(result.rows) > 0

    async def has_stored(self, cid: str) -> bool:
        stmt = (
            select(literal_column("1"))
            .select_from(blobs)
            .where(*self._owned(str(cid)), blobs.c.is_permanent, ~blobs.c.is_quarantined)
        )
        result = await self._run(stmt)
        return len(result.rows) > 0

    # ── Deletes ───────────────────────────────────────────────────────

    async def delete(self, cid: str) -> None:
        await self._run(delete(blobs).where(*self._owned(str(cid))))

    async def delete_many(self, cids: Iterable[str]) -> None:
        """Delete several of the owner's blobs in one statement."""
        cid_strings = [str(c) for c in cids]
        if not cid_strings:
            return
        stmt = delete(blobs).where(blobs.c.cid.in_(cid_strings), blobs.c.did == self.did)
        await self._run(stmt)

    async def delete_all(self) -> None:
        """Purge every blob belonging to the owner."""
        await self._run(delete(blobs).where(blobs.c.did == self.did))
        logger.info("Deleted all blobs for %s", self.did)
