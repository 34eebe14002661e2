"""
SQLAlchemy 2.0 async DeclarativeBase for ePack Export.

All models inherit from this Base.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ePack Export database models."""
    pass
