from __future__ import annotations

import random
from typing import Mapping

from .types import RARITIES, Rarity

DEFAULT_TOWER_UPGRADE_COST = 8
TOWER_UPGRADE_COST_FLOOR = 3
DEFAULT_REROLL_COST = 2
MAX_SHOP_OFFERS = 5

_SHOP_ROLL_ATTEMPTS = 5


def tower_upgrade_cost_for_round(current_round: int, last_upgrade_round: int) -> int:
    """Gold price of the next tower upgrade.

    The price starts at DEFAULT_TOWER_UPGRADE_COST and drops by one per round
    since the last upgrade (or since round 1 if the tower was never upgraded),
    never below TOWER_UPGRADE_COST_FLOOR. A last_upgrade_round of 0 means
    "never upgraded".
    """
    if last_upgrade_round <= 0:
        decay = max(0, current_round - 1)
    else:
        decay = max(0, current_round - last_upgrade_round)
    return max(TOWER_UPGRADE_COST_FLOOR, DEFAULT_TOWER_UPGRADE_COST - decay)


def base_gold_for_round(round_no: int) -> int:
    r = max(1, round_no)
    return min(3 + (r - 1), 10)


def shop_gold(round_no: int, gold_per_round: int, max_gold: int) -> int:
    gold = base_gold_for_round(round_no)
    if gold_per_round > 0:
        gold = min(gold + gold_per_round, max_gold)
    return gold


def sell_refund(card_cost: int) -> int:
    return max(0, card_cost // 2)


def shop_offer_count(tower_level: int) -> int:
    return min(MAX_SHOP_OFFERS, max(1, tower_level))


_RARITY_WEIGHTS: dict[int, tuple[int, int, int, int, int]] = {
    # COMMON, UNCOMMON, RARE, EPIC, LEGENDARY
    1: (80, 20, 0, 0, 0),
    2: (60, 25, 15, 0, 0),
    3: (40, 25, 20, 15, 0),
    4: (30, 15, 30, 20, 5),
    5: (25, 10, 35, 20, 10),
}
_DEFAULT_WEIGHTS = (15, 10, 30, 25, 20)


def shop_rarity_weights(tower_level: int) -> list[tuple[Rarity, int]]:
    weights = _RARITY_WEIGHTS.get(tower_level, _DEFAULT_WEIGHTS)
    return list(zip(RARITIES, weights))


def _pick_rarity(weights: list[tuple[Rarity, int]], rng: random.Random) -> Rarity:
    total = sum(w for _, w in weights)
    roll = rng.random() * total
    acc = 0
    for rarity, w in weights:
        acc += w
        if roll <= acc:
            return rarity
    return weights[0][0]


def roll_shop_offer(
    pool: Mapping[Rarity, list[str]], tower_level: int, rng: random.Random
) -> list[str]:
    """Roll shop_offer_count(tower_level) card ids weighted by rarity.

    Rarities with an empty pool are re-rolled a few times; an offer slot that
    keeps hitting empty pools stays unfilled.
    """
    weights = shop_rarity_weights(tower_level)
    offer: list[str] = []
    for _ in range(shop_offer_count(tower_level)):
        for _attempt in range(_SHOP_ROLL_ATTEMPTS):
            candidates = pool.get(_pick_rarity(weights, rng), [])
            if candidates:
                offer.append(rng.choice(candidates))
                break
    return offer
