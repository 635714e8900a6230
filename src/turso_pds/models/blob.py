"""Blob model for owner-scoped, content-addressed attachment storage."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, LargeBinary, Text, false, func
from sqlalchemy.orm import Mapped, mapped_column

from turso_pds.models.base import Base


class Blob(Base):
    """One stored attachment.

    Rows are keyed by CID and scoped by the owning account's DID. A blob is
    temporary until promoted, and quarantine hides it from reads without
    deleting it.
    """

    __tablename__ = "blobs"

    cid: Mapped[str] = mapped_column(Text, primary_key=True)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    did: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime, server_default=func.current_timestamp()
    )
    is_permanent: Mapped[bool | None] = mapped_column(Boolean, server_default=false())
    is_quarantined: Mapped[bool | None] = mapped_column(Boolean, server_default=false())


blobs = Blob.__table__
