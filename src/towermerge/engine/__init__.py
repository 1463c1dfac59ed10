"""Deterministic, synchronous match engine for towermerge.

IMPORTANT: Nothing in this package performs I/O or awaits; the async
service layer in towermerge.services wraps it.
"""

from .actions import (
    EndRoundAction,
    PlaceCardAction,
    ReadyAction,
    SellCardAction,
    ShopBuyAction,
    ShopRerollAction,
    UpgradeTowerAction,
)
from .board import MergeInfo, place_card_and_maybe_merge
from .economy import tower_upgrade_cost_for_round
from .errors import (
    EngineError,
    InsufficientGold,
    InvalidPhase,
    InvalidPlacement,
    InvalidPlayer,
    InvalidShopAction,
    UnknownArchetype,
)
from .match import MatchState, StepResult, finish_match, new_match, step
from .rounds import ShopTransitionResult, prepare_shop_transition
from .state import BoardSlot, MatchConfig, PlayerState
from .types import Archetype, CardDatabase, CardDefinition

__all__ = [
    "Archetype",
    "BoardSlot",
    "CardDatabase",
    "CardDefinition",
    "EndRoundAction",
    "EngineError",
    "InsufficientGold",
    "InvalidPhase",
    "InvalidPlacement",
    "InvalidPlayer",
    "InvalidShopAction",
    "MatchConfig",
    "MatchState",
    "MergeInfo",
    "PlaceCardAction",
    "PlayerState",
    "ReadyAction",
    "SellCardAction",
    "ShopBuyAction",
    "ShopRerollAction",
    "ShopTransitionResult",
    "StepResult",
    "UnknownArchetype",
    "UpgradeTowerAction",
    "finish_match",
    "new_match",
    "place_card_and_maybe_merge",
    "prepare_shop_transition",
    "step",
    "tower_upgrade_cost_for_round",
]
