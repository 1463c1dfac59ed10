from __future__ import annotations

from dataclasses import dataclass, field

from .economy import DEFAULT_REROLL_COST
from .types import BuffTarget


@dataclass(frozen=True)
class MatchConfig:
    board_slots: int = 7
    hand_size_per_round: int = 3
    max_draw_per_call: int = 3
    starting_gold: int = 3
    max_gold: int = 10
    tower_hp: int = 2000
    tower_dps: int = 10
    tower_upgrade_hp_bonus: int = 100
    tower_upgrade_dps_bonus: int = 5
    reroll_cost: int = DEFAULT_REROLL_COST


@dataclass
class BoardSlot:
    card_id: str | None = None
    stack_count: int = 0

    @property
    def empty(self) -> bool:
        return self.card_id is None

    def clear(self) -> None:
        self.card_id = None
        self.stack_count = 0


@dataclass(frozen=True)
class PendingBuff:
    card_id: str
    multiplier: float
    target: BuffTarget


def empty_board(slots: int) -> list[BoardSlot]:
    return [BoardSlot() for _ in range(slots)]


@dataclass
class PlayerState:
    deck: list[str]
    hand: list[str]
    board: list[BoardSlot]
    discard: list[str] = field(default_factory=list)
    gold: int = 0
    max_gold: int = 10
    gold_per_round: int = 0
    reroll_cost: int = DEFAULT_REROLL_COST
    tower_level: int = 1
    tower_hp: int = 2000
    tower_hp_max: int = 2000
    tower_dps: int = 10
    last_tower_upgrade_round: int = 0  # 0 = never upgraded
    shop: list[str] = field(default_factory=list)
    pending_extra_draws: int = 0
    pending_buffs: list[PendingBuff] = field(default_factory=list)
    ready: bool = False
    stats: dict[str, float] = field(default_factory=dict)

    def bump(self, stat: str, amount: float = 1) -> None:
        self.stats[stat] = self.stats.get(stat, 0) + amount


def new_player_state(deck: list[str], config: MatchConfig) -> PlayerState:
    return PlayerState(
        deck=deck,
        hand=[],
        board=empty_board(config.board_slots),
        gold=config.starting_gold,
        max_gold=config.max_gold,
        reroll_cost=config.reroll_cost,
        tower_hp=config.tower_hp,
        tower_hp_max=config.tower_hp,
        tower_dps=config.tower_dps,
    )
