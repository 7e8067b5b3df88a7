"""SQLAlchemy models for the Aetherium battle store."""

from .base import Base
from .battle import BattleRecord

__all__ = [
    "Base",
    "BattleRecord",
]
