"""Database models for turso-pds."""

from turso_pds.models.base import Base
from turso_pds.models.blob import Blob, blobs

__all__ = [
    "Base",
    "Blob",
    "blobs",
]
