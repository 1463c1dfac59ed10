from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PlaceCardAction:
    player: str
    hand_index: int
    board_index: int
    card_id: str


@dataclass(frozen=True)
class SellCardAction:
    player: str
    board_index: int


@dataclass(frozen=True)
class EndRoundAction:
    player: str


@dataclass(frozen=True)
class ReadyAction:
    player: str


@dataclass(frozen=True)
class UpgradeTowerAction:
    player: str


@dataclass(frozen=True)
class ShopBuyAction:
    player: str
    card_id: str


@dataclass(frozen=True)
class ShopRerollAction:
    player: str


Action = (
    PlaceCardAction
    | SellCardAction
    | EndRoundAction
    | ReadyAction
    | UpgradeTowerAction
    | ShopBuyAction
    | ShopRerollAction
)
