from __future__ import annotations

from towermerge.engine.actions import Action, EndRoundAction, PlaceCardAction, ReadyAction, UpgradeTowerAction
from towermerge.engine.economy import tower_upgrade_cost_for_round
from towermerge.engine.match import MatchState, new_match, replay, step
from towermerge.engine.serialize import snapshot
from towermerge.paths import get_paths
from towermerge.services.content import ContentService


def _content() -> ContentService:
    paths = get_paths()
    return ContentService(paths.data_dir, paths.schema_dir)


def _choose_actions(state: MatchState) -> list[Action]:
    if state.phase == "shop_transition":
        actions: list[Action] = []
        for user_id in state.seats:
            ps = state.players[user_id]
            if ps.gold >= tower_upgrade_cost_for_round(state.round, ps.last_tower_upgrade_round):
                actions.append(UpgradeTowerAction(player=user_id))
            actions.append(ReadyAction(player=user_id))
        return actions

    actions = []
    for user_id in state.seats:
        ps = state.players[user_id]
        for slot, s in enumerate(ps.board):
            if s.empty and ps.hand:
                # Greedy: always try the first card; rejected plays still land in the log
                actions.append(PlaceCardAction(player=user_id, hand_index=0, board_index=slot, card_id=ps.hand[0]))
                break
    actions.append(EndRoundAction(player=state.seats[0]))
    return actions


def test_engine_determinism_replay() -> None:
    content = _content()
    cards = content.load_cards_db()
    starters = content.load_starter_decks()
    decks = {"alice": starters["starter_raiders"], "bob": starters["starter_wardens"]}

    seed = 424242
    state1 = new_match(cards, decks, seed=seed)

    for _ in range(10):
        for a in _choose_actions(state1):
            step(state1, a)

    snap1 = snapshot(state1)
    assert state1.round > 1

    state2 = replay(cards, decks, seed=seed, actions=list(state1.action_log))
    snap2 = snapshot(state2)

    assert snap1 == snap2
