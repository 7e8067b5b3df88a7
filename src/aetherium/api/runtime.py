"""Runtime primitives backing the Aetherium HTTP API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from sqlalchemy.engine import Engine

from aetherium.config import Settings, get_settings
from aetherium.database import (
    check_database_health,
    create_session_factory,
    engine_from_settings,
    init_db,
)
from aetherium.domain.enemies import EnemyCatalog
from aetherium.domain.errors import BattleError
from aetherium.domain.models import (
    Battle,
    BattleState,
    CharacterProfile,
    Combatant,
    EnemyTemplate,
    LogEntry,
)
from aetherium.domain.rules_config import DEFAULT_RULES, RulesConfig
from aetherium.interfaces import IBattleStore, IChainGateway, ICharacterDirectory
from aetherium.repository import JsonBattleRepository, JsonCharacterDirectory, SqlBattleRepository
from aetherium.services import BattleService, HttpChainGateway, LocalChainGateway

logger = logging.getLogger(__name__)


class SettlementManager:
    """Background loop that retries reward settlements left pending."""

    MIN_INTERVAL_SECONDS = 0.1

    def __init__(self, service: BattleService, *, interval_seconds: float) -> None:
        self._service = service
        self._interval = max(interval_seconds, self.MIN_INTERVAL_SECONDS)
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._sweep_lock = asyncio.Lock()

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._stop_event = asyncio.Event()
            loop = asyncio.get_running_loop()
            self._task = loop.create_task(self._run_loop(), name="aetherium-settlement-loop")

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        self._stop_event.set()
        await task
        self._task = None

    async def sweep(self) -> int:
        """Retry pending settlements once and return how many were settled."""

        async with self._sweep_lock:
            try:
                settled = await asyncio.to_thread(self._service.retry_pending_settlements)
            except BattleError:
                logger.exception("settlement sweep failed; retrying next interval")
                return 0
        if settled:
            logger.info("settled %d pending battle rewards", settled)
        return settled

    async def _run_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                    break
                except TimeoutError:
                    pass
                await self.sweep()
        finally:
            self._task = None


class ApiState:
    """Aggregated services shared by the FastAPI layer."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        rules: RulesConfig | None = None,
        store: IBattleStore | None = None,
        characters: ICharacterDirectory | None = None,
        chain: IChainGateway | None = None,
        catalog: EnemyCatalog | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.engine: Engine | None = None
        self.rules = rules or replace(DEFAULT_RULES, defend_decays=self.settings.defend_decays)
        self.store = store or self._build_store()
        self.characters = characters or JsonCharacterDirectory(self.settings.characters_dir)
        self.chain = chain or self._build_chain()
        self.battles = BattleService(
            self.store,
            self.characters,
            self.chain,
            catalog=catalog or EnemyCatalog(),
            rules=self.rules,
            rng_secret=self.settings.rng_secret,
        )
        self.settlements = SettlementManager(
            self.battles, interval_seconds=self.settings.settlement_retry_interval_seconds
        )

    def _build_store(self) -> IBattleStore:
        if self.settings.storage_backend == "sql":
            self.engine = engine_from_settings(self.settings)
            init_db(self.engine)
            return SqlBattleRepository(create_session_factory(self.engine))
        return JsonBattleRepository(self.settings.data_dir)

    def _build_chain(self) -> IChainGateway:
        if self.settings.chain_gateway_url:
            return HttpChainGateway(
                self.settings.chain_gateway_url, timeout=self.settings.chain_timeout_seconds
            )
        return LocalChainGateway(cooldown_seconds=self.settings.combat_cooldown_seconds)

    def database_status(self) -> str | None:
        """Connectivity of the SQL store, or None when the JSON store is in use."""

        if self.engine is None:
            return None
        return "connected" if check_database_health(self.engine) else "unavailable"

    async def startup(self) -> None:
        if self.settings.settlement_retry_enabled:
            self.settlements.start()

    async def shutdown(self) -> None:
        await self.settlements.stop()
        if isinstance(self.chain, HttpChainGateway):
            self.chain.close()
        if self.engine is not None:
            self.engine.dispose()


def build_state() -> ApiState:
    """Factory used by the API to initialize state."""

    return ApiState()


# --- JSON-friendly views --------------------------------------------------------


def combatant_dict(combatant: Combatant) -> dict[str, object]:
    return {
        "name": combatant.name,
        "level": combatant.level,
        "hp": combatant.hp,
        "max_hp": combatant.max_hp,
        "mp": combatant.mp,
        "max_mp": combatant.max_mp,
        "attack": combatant.attack,
        "defense": combatant.defense,
        "speed": combatant.speed,
    }


def state_dict(state: BattleState) -> dict[str, object]:
    return {
        "character": combatant_dict(state.character),
        "enemy": combatant_dict(state.enemy),
        "turn": state.turn,
        "current_turn": str(state.current_turn),
    }


def entry_dict(entry: LogEntry | None) -> dict[str, object] | None:
    if entry is None:
        return None
    return {
        "turn": entry.turn,
        "actor": str(entry.actor),
        "action": entry.action,
        "damage": entry.damage,
        "message": entry.message,
        "battle_state": state_dict(entry.battle_state),
    }


def enemy_dict(template: EnemyTemplate) -> dict[str, object]:
    stats = template.base_stats
    return {
        "type": str(template.key),
        "name": template.name,
        "level": template.level,
        "stats": {
            "hp": stats.hp,
            "mp": stats.mp,
            "attack": stats.attack,
            "defense": stats.defense,
            "speed": stats.speed,
        },
        "experience_reward": template.experience_reward,
        "token_reward": template.token_reward,
    }


def battle_summary_dict(battle: Battle) -> dict[str, object]:
    return {
        "id": battle.id,
        "character_id": battle.character_id,
        "enemy_type": battle.enemy_type,
        "enemy_name": battle.enemy_name,
        "result": str(battle.result),
        "experience_gained": battle.experience_gained,
        "tokens_earned": battle.tokens_earned,
        "turns": battle.log[-1].battle_state.turn - 1 if battle.log else 0,
        "created_at": battle.created_at,
        "completed_at": battle.completed_at,
        "settlement_status": str(battle.settlement_status),
    }


def battle_detail_dict(
    battle: Battle, character: CharacterProfile | None
) -> dict[str, object]:
    detail = battle_summary_dict(battle)
    stats = battle.enemy_base_stats
    detail.update(
        {
            "enemy_base_stats": {
                "hp": stats.hp,
                "mp": stats.mp,
                "attack": stats.attack,
                "defense": stats.defense,
                "speed": stats.speed,
            },
            "settlement_tx": battle.settlement_tx,
            "log": [entry_dict(entry) for entry in battle.log],
            "character": (
                {"name": character.name, "level": character.level}
                if character is not None
                else None
            ),
        }
    )
    return detail
