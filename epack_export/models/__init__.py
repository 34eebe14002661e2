"""
Models package — export all SQLAlchemy models.
"""

from epack_export.models.base import Base
from epack_export.models.rules_cache import RulesCacheEntry

__all__ = ["Base", "RulesCacheEntry"]
