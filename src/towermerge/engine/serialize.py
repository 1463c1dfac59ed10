from __future__ import annotations


from .actions import (
    Action,
    EndRoundAction,
    PlaceCardAction,
    ReadyAction,
    SellCardAction,
    ShopBuyAction,
    ShopRerollAction,
    UpgradeTowerAction,
)
from .economy import tower_upgrade_cost_for_round
from .effects import outgoing_damage
from .match import MatchState
from .state import BoardSlot, PlayerState


def action_to_dict(a: Action) -> dict[str, object]:
    if isinstance(a, PlaceCardAction):
        return {
            "type": "place_card",
            "player": a.player,
            "hand_index": a.hand_index,
            "board_index": a.board_index,
            "card_id": a.card_id,
        }
    if isinstance(a, SellCardAction):
        return {"type": "sell_card", "player": a.player, "board_index": a.board_index}
    if isinstance(a, EndRoundAction):
        return {"type": "end_round", "player": a.player}
    if isinstance(a, ReadyAction):
        return {"type": "ready", "player": a.player}
    if isinstance(a, UpgradeTowerAction):
        return {"type": "upgrade_tower", "player": a.player}
    if isinstance(a, ShopBuyAction):
        return {"type": "shop_buy", "player": a.player, "card_id": a.card_id}
    if isinstance(a, ShopRerollAction):
        return {"type": "shop_reroll", "player": a.player}
    # should be unreachable
    return {"type": "unknown"}


def _slot_to_dict(s: BoardSlot) -> dict[str, object]:
    return {"card_id": s.card_id, "stack_count": s.stack_count}


def _player_to_dict(p: PlayerState) -> dict[str, object]:
    return {
        "deck": list(p.deck),
        "hand": list(p.hand),
        "discard": list(p.discard),
        "board": [_slot_to_dict(s) for s in p.board],
        "shop": list(p.shop),
        "gold": p.gold,
        "max_gold": p.max_gold,
        "gold_per_round": p.gold_per_round,
        "reroll_cost": p.reroll_cost,
        "tower_level": p.tower_level,
        "tower_hp": p.tower_hp,
        "tower_hp_max": p.tower_hp_max,
        "tower_dps": p.tower_dps,
        "last_tower_upgrade_round": p.last_tower_upgrade_round,
        "pending_extra_draws": p.pending_extra_draws,
        "pending_buffs": [
            {"card_id": b.card_id, "multiplier": b.multiplier, "target": b.target} for b in p.pending_buffs
        ],
        "ready": p.ready,
        "stats": dict(sorted(p.stats.items())),
    }


def snapshot(state: MatchState) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the current match state."""
    return {
        "match_id": state.match_id,
        "seed": state.seed,
        "round": state.round,
        "phase": state.phase,
        "winner": state.winner,
        "seats": list(state.seats),
        "players": {u: _player_to_dict(state.players[u]) for u in state.seats},
        "action_log": [action_to_dict(a) for a in state.action_log],
    }


def _summary(state: MatchState, user_id: str) -> dict[str, object]:
    p = state.players[user_id]
    return {
        "user_id": user_id,
        "seat": state.seats.index(user_id),
        "tower_level": p.tower_level,
        "tower_hp": p.tower_hp,
        "tower_hp_max": p.tower_hp_max,
        "board": [_slot_to_dict(s) for s in p.board],
        "outgoing_damage": outgoing_damage(p, state.cards.cards),
    }


def player_view(state: MatchState, user_id: str) -> dict[str, object]:
    """What one participant is allowed to see: their own zones plus public summaries."""
    p = state.players[user_id]
    me = _player_to_dict(p)
    me["user_id"] = user_id
    me["tower_upgrade_cost"] = tower_upgrade_cost_for_round(state.round, p.last_tower_upgrade_round)
    return {
        "match_id": state.match_id,
        "phase": state.phase,
        "round": state.round,
        "winner": state.winner,
        "self": me,
        "players": [_summary(state, u) for u in state.seats],
    }


def match_result(state: MatchState) -> dict[str, object]:
    return {
        "match_id": state.match_id,
        "winner": state.winner,
        "rounds": state.round,
        "players": [
            {
                "user_id": u,
                "seat": i,
                "tower_level": state.players[u].tower_level,
                "stats": {k: float(v) for k, v in sorted(state.players[u].stats.items())},
            }
            for i, u in enumerate(state.seats)
        ],
    }
