"""JSON-based repositories for battles and characters."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from aetherium.domain.enums import BattleResult, SettlementStatus
from aetherium.domain.errors import (
    BattleNotFoundError,
    CharacterNotFoundError,
    ConflictError,
    OngoingBattleExistsError,
    StorageError,
)
from aetherium.domain.models import Battle, BattleID, CharacterID, CharacterProfile

logger = logging.getLogger(__name__)


class JsonBattleRepository:
    """Persist battles as one JSON document per battle.

    Each repository instance holds a lock that makes every check-then-write
    atomic for callers sharing that instance, which is what the optimistic
    log-length check and the one-ongoing-battle rule rely on.  Scans skip
    unreadable records; a direct ``get`` still raises ``StorageError``.
    """

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)
        self._adapter: TypeAdapter[Battle] = TypeAdapter(Battle)
        self._lock = threading.Lock()

    def _path_for(self, battle_id: str) -> Path:
        return self.base_path / f"battle_{battle_id}.json"

    def create(self, battle: Battle) -> None:
        """Write a new battle unless the character already has one ongoing."""

        with self._lock:
            if battle.result == BattleResult.ONGOING:
                existing = self._find_ongoing_unlocked(battle.character_id)
                if existing is not None:
                    raise OngoingBattleExistsError(battle.character_id, existing.id)
            self._write(battle)

    def get(self, battle_id: BattleID) -> Battle:
        """Load a previously saved battle."""

        path = self._path_for(battle_id)
        if not path.exists():
            raise BattleNotFoundError(battle_id)
        return self._read(path)

    def update(self, battle: Battle, *, expected_log_length: int) -> None:
        """Overwrite a battle if nobody appended to its log in the meantime."""

        with self._lock:
            current = self.get(battle.id)
            if len(current.log) != expected_log_length:
                raise ConflictError(battle.id, expected_log_length, len(current.log))
            self._write(battle)

    def find_ongoing(self, character_id: CharacterID) -> Battle | None:
        with self._lock:
            return self._find_ongoing_unlocked(character_id)

    def list_for_character(self, character_id: CharacterID) -> list[Battle]:
        battles = [b for b in self._iter_battles() if b.character_id == character_id]
        return sorted(battles, key=lambda b: b.created_at, reverse=True)

    def list_pending_settlements(self) -> list[Battle]:
        pending = [
            b for b in self._iter_battles() if b.settlement_status == SettlementStatus.PENDING
        ]
        return sorted(pending, key=lambda b: b.completed_at or b.created_at)

    def list_battles(self) -> list[BattleID]:
        """Return all battle ids currently persisted in the repository."""

        prefix = "battle_"
        suffix = ".json"
        ids = [
            BattleID(path.name[len(prefix) : -len(suffix)])
            for path in self.base_path.glob("battle_*.json")
        ]
        return sorted(ids)

    def _find_ongoing_unlocked(self, character_id: CharacterID) -> Battle | None:
        for battle in self._iter_battles():
            if battle.character_id == character_id and battle.is_ongoing:
                return battle
        return None

    def _iter_battles(self) -> list[Battle]:
        battles: list[Battle] = []
        for battle_id in self.list_battles():
            try:
                battles.append(self.get(battle_id))
            except BattleNotFoundError:  # pragma: no cover - removed between glob and read
                continue
            except StorageError:
                logger.warning("skipping unreadable battle record %s", battle_id)
                continue
        return battles

    def _read(self, path: Path) -> Battle:
        try:
            return self._adapter.validate_json(path.read_bytes())
        except (OSError, ValidationError) as exc:
            logger.error("failed to read battle record %s", path)
            raise StorageError(f"Could not read {path.name}") from exc

    def _write(self, battle: Battle) -> None:
        path = self._path_for(battle.id)
        tmp = path.with_suffix(".json.tmp")
        try:
            tmp.write_bytes(self._adapter.dump_json(battle, indent=2))
            tmp.replace(path)
        except OSError as exc:
            logger.error("failed to write battle record %s", path)
            raise StorageError(f"Could not write {path.name}") from exc


class JsonCharacterDirectory:
    """Character profiles stored as JSON snapshots on disk."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)
        self._adapter: TypeAdapter[CharacterProfile] = TypeAdapter(CharacterProfile)

    def _path_for(self, character_id: str) -> Path:
        return self.base_path / f"character_{character_id}.json"

    def save(self, profile: CharacterProfile) -> Path:
        """Serialize a profile to disk and return the snapshot path."""

        path = self._path_for(profile.id)
        path.write_bytes(self._adapter.dump_json(profile, indent=2))
        return path

    def get_character(self, character_id: CharacterID) -> CharacterProfile:
        path = self._path_for(character_id)
        if not path.exists():
            raise CharacterNotFoundError(character_id)
        try:
            return self._adapter.validate_json(path.read_bytes())
        except (OSError, ValidationError) as exc:
            logger.error("failed to read character profile %s", path)
            raise StorageError(f"Could not read {path.name}") from exc


class InMemoryCharacterDirectory:
    """Dictionary-backed directory used for tests and local seeding."""

    def __init__(self, profiles: list[CharacterProfile] | None = None) -> None:
        self._profiles: dict[str, CharacterProfile] = {}
        for profile in profiles or []:
            self.save(profile)

    def save(self, profile: CharacterProfile) -> None:
        self._profiles[profile.id] = profile

    def get_character(self, character_id: CharacterID) -> CharacterProfile:
        try:
            return self._profiles[character_id]
        except KeyError as exc:
            raise CharacterNotFoundError(character_id) from exc
