"""Declarative base for turso-pds models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
