from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Archetype = Literal["ATTACK", "DEFENSE", "BUFF", "ECONOMY"]
Rarity = Literal["COMMON", "UNCOMMON", "RARE", "EPIC", "LEGENDARY"]

ARCHETYPES: tuple[Archetype, ...] = ("ATTACK", "DEFENSE", "BUFF", "ECONOMY")
RARITIES: tuple[Rarity, ...] = ("COMMON", "UNCOMMON", "RARE", "EPIC", "LEGENDARY")

# Archetypes that are consumed at the end of a round.
SHOP_PURGED: frozenset[Archetype] = frozenset({"BUFF", "ECONOMY"})

EconomyKind = Literal["gold_per_round", "extra_draw_next_round"]
BuffTarget = Literal["units", "tower"]


@dataclass(frozen=True)
class EconomyEffect:
    kind: EconomyKind
    amount: int


@dataclass(frozen=True)
class BuffEffect:
    multiplier: float
    target: BuffTarget


Effect = EconomyEffect | BuffEffect


@dataclass(frozen=True)
class CardDefinition:
    id: str
    name: str
    archetype: Archetype
    rarity: Rarity
    cost: int
    description: str = ""
    base_damage: int = 0
    base_hp_bonus: int = 0
    base_dps_bonus: int = 0
    upgrade_hp_bonus: int = 0
    upgrade_dps_bonus: int = 0
    collectible: bool = True
    effect: Effect | None = None


@dataclass(frozen=True)
class CardDatabase:
    """Immutable card catalog used by the engine."""

    cards: dict[str, CardDefinition]

    def archetype(self, card_id: str) -> Archetype | None:
        card = self.cards.get(card_id)
        if card is None:
            return None
        return card.archetype

    def archetypes(self) -> dict[str, Archetype]:
        return {cid: card.archetype for cid, card in self.cards.items()}

    def shop_pool(self) -> dict[Rarity, list[str]]:
        """Collectible card ids grouped by rarity, in stable id order."""
        pool: dict[Rarity, list[str]] = {r: [] for r in RARITIES}
        for cid in sorted(self.cards):
            card = self.cards[cid]
            if card.collectible:
                pool[card.rarity].append(cid)
        return pool
