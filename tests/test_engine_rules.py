from __future__ import annotations

from collections import Counter

import pytest

from towermerge.engine.actions import (
    EndRoundAction,
    PlaceCardAction,
    ReadyAction,
    SellCardAction,
    ShopBuyAction,
    ShopRerollAction,
    UpgradeTowerAction,
)
from towermerge.engine.errors import InvalidPhase
from towermerge.engine.match import MatchState, finish_match, new_match, require_phase, step
from towermerge.engine.state import MatchConfig
from towermerge.paths import get_paths
from towermerge.services.content import ContentService


def _load_cards():
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load_cards_db()


def _match(deck_a: list[str], deck_b: list[str] | None = None, gold: int = 10) -> MatchState:
    cards = _load_cards()
    cfg = MatchConfig(starting_gold=gold)
    return new_match(cards, {"alice": deck_a, "bob": deck_b or ["goblin_raid"] * 6}, seed=11, config=cfg)


def _place(state: MatchState, player: str, board_index: int, hand_index: int = 0):
    card_id = state.players[player].hand[hand_index]
    return step(state, PlaceCardAction(player=player, hand_index=hand_index, board_index=board_index, card_id=card_id))


def _next_round(state: MatchState) -> None:
    assert step(state, EndRoundAction(player="alice")).ok
    assert step(state, ReadyAction(player="alice")).ok
    assert step(state, ReadyAction(player="bob")).ok


def test_new_match_deals_starting_hands() -> None:
    state = _match(["goblin_raid"] * 6)
    assert state.round == 1
    assert state.phase == "playing"
    for user_id in ("alice", "bob"):
        ps = state.players[user_id]
        assert len(ps.hand) == 3
        assert len(ps.deck) == 3
        assert len(ps.board) == 7
        assert all(s.empty for s in ps.board)
        assert ps.gold == 10


def test_place_card_charges_gold_and_reports_merge() -> None:
    state = _match(["goblin_raid"] * 6)
    assert _place(state, "alice", 0).ok
    assert _place(state, "alice", 1).ok
    res = _place(state, "alice", 2)
    assert res.ok

    ps = state.players["alice"]
    assert ps.gold == 10 - 3 * 2
    assert ps.hand == []
    assert [(s.card_id, s.stack_count) for s in ps.board if not s.empty] == [("goblin_raid", 2)]
    merge = [e for e in res.events if e["type"] == "BOARD_MERGE"]
    assert merge == [
        {
            "type": "BOARD_MERGE",
            "player": "alice",
            "card_id": "goblin_raid",
            "chosen_index": 0,
            "cleared_indices": [1, 2],
            "new_stack_count": 2,
        }
    ]
    assert ps.stats["merges"] == 1
    assert ps.stats["cards_placed"] == 3


def test_place_without_gold_is_rejected() -> None:
    state = _match(["ogre_assault"] * 6, gold=3)
    res = _place(state, "alice", 0)
    assert not res.ok
    assert res.error is not None and "gold" in res.error
    assert len(state.players["alice"].hand) == 3
    assert state.players["alice"].gold == 3


def test_place_on_occupied_slot_is_rejected() -> None:
    state = _match(["goblin_raid"] * 6)
    ps = state.players["alice"]
    assert _place(state, "alice", 4).ok
    # a lone copy on slot 4 has no merge partner
    res = _place(state, "alice", 4)
    assert not res.ok
    assert res.events == []
    assert len(ps.hand) == 2
    assert ps.gold == 8
    assert ps.board[4].stack_count == 1


def test_place_card_during_shop_is_invalid_phase() -> None:
    state = _match(["goblin_raid"] * 6)
    hand_card = state.players["alice"].hand[0]
    assert step(state, EndRoundAction(player="bob")).ok
    assert state.phase == "shop_transition"
    res = step(state, PlaceCardAction(player="alice", hand_index=0, board_index=0, card_id=hand_card))
    assert not res.ok
    assert res.error is not None and "shop_transition" in res.error


def test_end_round_moves_hand_to_deck_and_opens_shop() -> None:
    state = _match(["goblin_raid"] * 3 + ["battle_frenzy"] * 3)
    ps = state.players["alice"]
    before = Counter(ps.deck + ps.hand)
    res = step(state, EndRoundAction(player="alice"))
    assert res.ok

    assert ps.hand == []
    assert Counter(ps.deck) == before
    assert ps.gold == 4  # base gold for round 2
    assert len(ps.shop) == 1
    assert state.round == 1
    assert [e["player"] for e in res.events if e["type"] == "SHOP_OPENED"] == ["alice", "bob"]


def test_buff_and_economy_cards_are_purged_at_round_end() -> None:
    deck = ["battle_frenzy", "gold_mine", "reinforced_walls"] * 2
    state = _match(deck)
    ps = state.players["alice"]
    placed = []
    for slot in range(3):
        placed.append(ps.hand[0])
        assert _place(state, "alice", slot).ok

    assert step(state, EndRoundAction(player="alice")).ok
    remaining = [s.card_id for s in ps.board if not s.empty]
    assert all(c == "reinforced_walls" for c in remaining)
    assert Counter(ps.discard) == Counter(c for c in placed if c != "reinforced_walls")


def test_ready_from_all_players_starts_next_round() -> None:
    state = _match(["goblin_raid"] * 6)
    assert step(state, EndRoundAction(player="alice")).ok
    assert step(state, ReadyAction(player="alice")).ok
    assert state.phase == "shop_transition"

    res = step(state, ReadyAction(player="bob"))
    assert res.ok
    assert state.phase == "playing"
    assert state.round == 2
    assert len(state.players["alice"].hand) == 3
    assert {"type": "ROUND_STARTED", "round": 2} in res.events


def test_ready_outside_shop_is_invalid_phase() -> None:
    state = _match(["goblin_raid"] * 6)
    res = step(state, ReadyAction(player="alice"))
    assert not res.ok


def test_extra_draw_applies_next_round() -> None:
    state = _match(["arcane_insight"] * 8)
    assert _place(state, "alice", 0).ok
    assert state.players["alice"].pending_extra_draws == 2
    _next_round(state)
    ps = state.players["alice"]
    assert len(ps.hand) == 5
    assert ps.pending_extra_draws == 0
    assert "arcane_insight" in ps.discard


def test_gold_mine_adds_round_income() -> None:
    state = _match(["gold_mine"] * 6)
    assert _place(state, "alice", 0).ok
    ps = state.players["alice"]
    assert ps.gold_per_round == 2
    assert ps.max_gold == 12
    assert step(state, EndRoundAction(player="bob")).ok
    assert ps.gold == 6


def test_tower_upgrade_uses_schedule() -> None:
    state = _match(["goblin_raid"] * 6)
    res = step(state, UpgradeTowerAction(player="alice"))
    assert res.ok
    ps = state.players["alice"]
    assert ps.gold == 2
    assert ps.tower_level == 2
    assert ps.last_tower_upgrade_round == 1
    assert ps.tower_hp_max == 2100
    assert ps.tower_dps == 15

    again = step(state, UpgradeTowerAction(player="alice"))
    assert not again.ok
    assert ps.tower_level == 2
    assert ps.gold == 2


def test_tower_upgrade_is_cheaper_after_waiting() -> None:
    state = _match(["goblin_raid"] * 6, gold=10)
    _next_round(state)
    _next_round(state)
    ps = state.players["alice"]
    ps.gold = 10
    res = step(state, UpgradeTowerAction(player="alice"))
    assert res.ok
    assert [e["cost"] for e in res.events if e["type"] == "TOWER_UPGRADED"] == [6]


def test_shop_buy_puts_card_on_top_of_deck() -> None:
    state = _match(["goblin_raid"] * 6)
    assert step(state, EndRoundAction(player="alice")).ok
    ps = state.players["alice"]
    ps.shop = ["ogre_assault"]
    ps.gold = 20

    assert not step(state, ShopBuyAction(player="alice", card_id="siege_golem")).ok
    assert step(state, ShopBuyAction(player="alice", card_id="ogre_assault")).ok
    assert ps.deck[0] == "ogre_assault"
    assert ps.shop == []
    assert ps.gold == 16


def test_shop_reroll_costs_gold() -> None:
    state = _match(["goblin_raid"] * 6)
    assert step(state, EndRoundAction(player="alice")).ok
    ps = state.players["alice"]
    ps.gold = 3
    assert step(state, ShopRerollAction(player="alice")).ok
    assert ps.gold == 1
    assert len(ps.shop) == 1
    assert not step(state, ShopRerollAction(player="alice")).ok


def test_sell_defense_refunds_and_removes_bonus() -> None:
    state = _match(["reinforced_walls"] * 6)
    ps = state.players["alice"]
    assert _place(state, "alice", 0).ok
    assert ps.tower_hp_max == 2020
    assert ps.gold == 7

    res = step(state, SellCardAction(player="alice", board_index=0))
    assert res.ok
    assert ps.board[0].empty
    assert ps.gold == 8
    assert ps.tower_hp_max == 2000
    assert ps.tower_hp == 2000
    assert ps.discard == ["reinforced_walls"]

    assert not step(state, SellCardAction(player="alice", board_index=0)).ok


def test_unknown_player_is_rejected() -> None:
    state = _match(["goblin_raid"] * 6)
    res = step(state, EndRoundAction(player="mallory"))
    assert not res.ok
    assert res.error is not None and "mallory" in res.error
    assert state.phase == "playing"


def test_finished_match_is_terminal() -> None:
    state = _match(["goblin_raid"] * 6)
    assert finish_match(state, "bob").ok
    assert state.phase == "finished"
    assert state.winner == "bob"
    res = step(state, EndRoundAction(player="alice"))
    assert not res.ok
    assert res.error == "Match already ended."
    assert not finish_match(state, "alice").ok


def test_finished_phase_raises_invalid_phase() -> None:
    state = _match(["goblin_raid"] * 6)
    require_phase(state, "playing")
    assert finish_match(state, None).ok
    with pytest.raises(InvalidPhase, match="already ended"):
        require_phase(state, "playing", "shop_transition")
    # every action kind goes through the same phase check
    for action in (
        PlaceCardAction(player="alice", hand_index=0, board_index=0, card_id=state.players["alice"].hand[0]),
        SellCardAction(player="alice", board_index=0),
        ReadyAction(player="alice"),
        UpgradeTowerAction(player="alice"),
        ShopBuyAction(player="alice", card_id="goblin_raid"),
        ShopRerollAction(player="alice"),
    ):
        res = step(state, action)
        assert not res.ok
        assert res.error == "Match already ended."
    assert state.players["alice"].gold == 10
