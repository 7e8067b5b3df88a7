"""Blockchain gateway adapters.

``HttpChainGateway`` talks to the chain-facing gateway service over HTTP.
``LocalChainGateway`` keeps the same contract in memory for development and
tests: it enforces the cooldown from recorded settlements and hands out
deterministic transaction references.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import httpx

from aetherium.domain.errors import ChainUnavailableError, SettlementFailedError

logger = logging.getLogger(__name__)


class LocalChainGateway:
    """In-process stand-in for the on-chain game manager."""

    def __init__(
        self,
        *,
        cooldown_seconds: float = 0.0,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._cooldown = timedelta(seconds=cooldown_seconds)
        self._clock = clock
        self._last_battle: dict[str, datetime] = {}
        self._settlements: dict[str, str] = {}
        self._lock = threading.Lock()
        self.fail_settlements = False

    @property
    def settlements(self) -> dict[str, str]:
        """Battle id to transaction reference for every settled battle."""

        return dict(self._settlements)

    def is_cooldown_active(self, wallet_address: str) -> bool:
        last = self._last_battle.get(wallet_address.lower())
        if last is None or not self._cooldown:
            return False
        return self._clock() - last < self._cooldown

    def settle_battle_reward(self, wallet_address: str, victory: bool, *, battle_id: str) -> str:
        if self.fail_settlements:
            raise SettlementFailedError(f"settlement rejected for battle {battle_id}")
        with self._lock:
            existing = self._settlements.get(battle_id)
            if existing is not None:
                return existing
            digest = hashlib.sha256(f"{battle_id}:{wallet_address}:{victory}".encode()).hexdigest()
            tx = f"0x{digest}"
            self._settlements[battle_id] = tx
            self._last_battle[wallet_address.lower()] = self._clock()
        logger.info("settled battle %s for %s (victory=%s)", battle_id, wallet_address, victory)
        return tx


class HttpChainGateway:
    """Client for the HTTP gateway in front of the game manager contract.

    Endpoints:
        GET  /players/{wallet}/can-battle        -> {"canBattle": bool}
        POST /battles/{battle_id}/settlement     -> {"transactionHash": str}
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def is_cooldown_active(self, wallet_address: str) -> bool:
        try:
            response = self._client.get(f"/players/{wallet_address}/can-battle")
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ChainUnavailableError(f"cooldown check failed for {wallet_address}") from exc
        return not bool(payload.get("canBattle", False))

    def settle_battle_reward(self, wallet_address: str, victory: bool, *, battle_id: str) -> str:
        try:
            response = self._client.post(
                f"/battles/{battle_id}/settlement",
                json={"player": wallet_address, "victory": victory},
                headers={"Idempotency-Key": battle_id},
            )
            response.raise_for_status()
            tx = response.json()["transactionHash"]
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            raise SettlementFailedError(f"settlement failed for battle {battle_id}") from exc
        return str(tx)
