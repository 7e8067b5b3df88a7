"""Battle domain for Aetherium.

This package hosts the pure rules layer.  It exposes:

* Dataclasses describing combatants, battle state, log entries and the
  persisted battle aggregate (see :mod:`models`).
* Enumerations and strongly-typed identifiers used across the rules layer.
* Rule configuration objects (see :mod:`rules_config`).
* Pure rule functions: stat derivation, the enemy catalog, the two action
  resolvers and the battle state machine.

Nothing in here touches storage or the network; services load a battle,
run these functions on a working copy and persist the result.
"""

from . import (
    actions,
    battle,
    enemies,
    enemy_ai,
    enums,
    errors,
    models,
    rules_config,
    stats,
)

__all__ = [
    "actions",
    "battle",
    "enemies",
    "enemy_ai",
    "enums",
    "errors",
    "models",
    "rules_config",
    "stats",
]
