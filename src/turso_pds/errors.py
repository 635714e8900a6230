"""Exceptions raised by the blob store and the libSQL driver."""


class TursoPdsError(Exception):
    """Base class for turso-pds errors."""


class BlobNotFoundError(TursoPdsError, LookupError):
    """No visible blob for this owner.

    Quarantined and absent blobs raise the same error.
    """

    def __init__(self, cid: str) -> None:
        self.cid = cid
        super().__init__(f"Blob not found: {cid}")


class BlobPromotionError(TursoPdsError, LookupError):
    """Raised when a temporary blob to make permanent does not exist for the owner."""

    def __init__(self, key: str, did: str) -> None:
        self.key = key
        self.did = did
        super().__init__(f"Blob not found in storage to make permanent: {key} (owner {did})")


class UnsupportedOperationError(TursoPdsError, NotImplementedError):
    """Operation the libSQL transport cannot provide."""
