"""turso-pds: libSQL-backed blob storage and query driver for a PDS deployment."""

__version__ = "0.1.0"
