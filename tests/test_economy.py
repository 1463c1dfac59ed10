from __future__ import annotations

import random

import pytest

from towermerge.engine.economy import (
    DEFAULT_TOWER_UPGRADE_COST,
    TOWER_UPGRADE_COST_FLOOR,
    base_gold_for_round,
    roll_shop_offer,
    sell_refund,
    shop_gold,
    shop_offer_count,
    tower_upgrade_cost_for_round,
)


@pytest.mark.parametrize(
    ("current_round", "last_upgrade_round", "expected"),
    [
        (1, 0, DEFAULT_TOWER_UPGRADE_COST),
        (5, 0, DEFAULT_TOWER_UPGRADE_COST - 4),
        (1, 1, DEFAULT_TOWER_UPGRADE_COST),
        (2, 1, DEFAULT_TOWER_UPGRADE_COST - 1),
        (3, 1, DEFAULT_TOWER_UPGRADE_COST - 2),
        (100, 1, 3),
        (100, 0, 3),
        (3, 5, DEFAULT_TOWER_UPGRADE_COST),
        (5, 5, DEFAULT_TOWER_UPGRADE_COST),
    ],
)
def test_tower_upgrade_cost(current_round: int, last_upgrade_round: int, expected: int) -> None:
    assert tower_upgrade_cost_for_round(current_round, last_upgrade_round) == expected


@pytest.mark.parametrize("last_upgrade_round", [1, 2, 7, 20])
def test_tower_upgrade_cost_decays_monotonically_to_floor(last_upgrade_round: int) -> None:
    costs = [tower_upgrade_cost_for_round(r, last_upgrade_round) for r in range(1, 60)]
    assert all(a >= b for a, b in zip(costs, costs[1:]))
    assert min(costs) == TOWER_UPGRADE_COST_FLOOR
    for r in range(1, last_upgrade_round + 1):
        assert costs[r - 1] == DEFAULT_TOWER_UPGRADE_COST


def test_base_gold_ramps_and_caps() -> None:
    assert [base_gold_for_round(r) for r in (0, 1, 2, 5, 8, 20)] == [3, 3, 4, 7, 10, 10]


def test_shop_gold_adds_income_under_cap() -> None:
    assert shop_gold(2, 0, 10) == 4
    assert shop_gold(2, 2, 12) == 6
    assert shop_gold(9, 4, 12) == 12


def test_sell_refund_is_half_cost() -> None:
    assert [sell_refund(c) for c in (0, 1, 3, 4, 7)] == [0, 0, 1, 2, 3]


def test_shop_offer_count_follows_tower_level() -> None:
    assert [shop_offer_count(lvl) for lvl in (0, 1, 3, 5, 9)] == [1, 1, 3, 5, 5]


def test_roll_shop_offer_respects_level_weights() -> None:
    pool = {
        "COMMON": ["c"],
        "UNCOMMON": ["u"],
        "RARE": ["r"],
        "EPIC": ["e"],
        "LEGENDARY": ["l"],
    }
    rng = random.Random(3)
    seen: set[str] = set()
    for _ in range(200):
        offer = roll_shop_offer(pool, 2, rng)
        assert len(offer) == 2
        seen.update(offer)
    # level 2 has no epic or legendary weight
    assert seen <= {"c", "u", "r"}
    assert "c" in seen


def test_roll_shop_offer_with_empty_pool() -> None:
    assert roll_shop_offer({}, 3, random.Random(0)) == []
