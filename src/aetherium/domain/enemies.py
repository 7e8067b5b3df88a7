"""Enemy catalog: the closed set of enemy archetypes a battle can use."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from aetherium.domain.enums import EnemyType
from aetherium.domain.errors import EnemyNotFoundError
from aetherium.domain.models import Combatant, EnemyStats, EnemyTemplate

DEFAULT_ENEMY_TEMPLATES: tuple[EnemyTemplate, ...] = (
    EnemyTemplate(
        key=EnemyType.GOBLIN,
        name="Goblin",
        level=1,
        base_stats=EnemyStats(hp=30, mp=10, attack=8, defense=3, speed=12),
        experience_reward=25,
        token_reward=50,
    ),
    EnemyTemplate(
        key=EnemyType.ORC,
        name="Orc Warrior",
        level=3,
        base_stats=EnemyStats(hp=60, mp=5, attack=15, defense=8, speed=6),
        experience_reward=75,
        token_reward=150,
    ),
    EnemyTemplate(
        key=EnemyType.SKELETON,
        name="Skeleton Mage",
        level=4,
        base_stats=EnemyStats(hp=45, mp=40, attack=10, defense=5, speed=8),
        experience_reward=100,
        token_reward=200,
    ),
    EnemyTemplate(
        key=EnemyType.DRAGON,
        name="Young Dragon",
        level=10,
        base_stats=EnemyStats(hp=200, mp=80, attack=35, defense=20, speed=15),
        experience_reward=500,
        token_reward=1000,
    ),
)


class EnemyCatalog:
    """Read-only lookup of enemy templates keyed by type."""

    def __init__(self, templates: Iterable[EnemyTemplate] = DEFAULT_ENEMY_TEMPLATES) -> None:
        self._templates: dict[str, EnemyTemplate] = {
            str(template.key): template for template in templates
        }

    def lookup(self, enemy_type: str) -> EnemyTemplate:
        """Return the template for ``enemy_type`` or raise ``EnemyNotFoundError``."""

        try:
            return self._templates[str(enemy_type)]
        except KeyError as exc:
            raise EnemyNotFoundError(str(enemy_type)) from exc

    def __contains__(self, enemy_type: object) -> bool:
        return str(enemy_type) in self._templates

    def __iter__(self) -> Iterator[EnemyTemplate]:
        return iter(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)

    def keys(self) -> list[str]:
        return list(self._templates)


def spawn_enemy(template: EnemyTemplate) -> Combatant:
    """Create a full-health combatant from an enemy template."""

    stats = template.base_stats
    return Combatant(
        name=template.name,
        level=template.level,
        hp=stats.hp,
        max_hp=stats.hp,
        mp=stats.mp,
        max_mp=stats.mp,
        attack=stats.attack,
        defense=stats.defense,
        speed=stats.speed,
    )
