"""Persistence adapters for battles and characters."""

from .json_store import InMemoryCharacterDirectory, JsonBattleRepository, JsonCharacterDirectory
from .sql_store import SqlBattleRepository

__all__ = [
    "InMemoryCharacterDirectory",
    "JsonBattleRepository",
    "JsonCharacterDirectory",
    "SqlBattleRepository",
]
