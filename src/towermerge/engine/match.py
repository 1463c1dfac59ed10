from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Iterable, Literal, Mapping, Sequence

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
from .board import place_card_and_maybe_merge, validate_placement
from .economy import roll_shop_offer, sell_refund, shop_gold, tower_upgrade_cost_for_round
from .effects import apply_card_effect, apply_defense_bonus
from .errors import (
    EngineError,
    InsufficientGold,
    InvalidPhase,
    InvalidPlacement,
    InvalidPlayer,
    InvalidShopAction,
)
from .rounds import draw_up_to, prepare_shop_transition, rng_shuffler
from .state import MatchConfig, PlayerState, new_player_state
from .types import CardDatabase, CardDefinition

Event = dict[str, object]
MatchPhase = Literal["playing", "shop_transition", "finished"]


@dataclass
class StepResult:
    ok: bool
    events: list[Event]
    error: str | None = None


@dataclass
class MatchState:
    match_id: str
    cards: CardDatabase
    config: MatchConfig
    seed: int
    rng: random.Random
    players: dict[str, PlayerState]
    seats: list[str]
    round: int = 1
    phase: MatchPhase = "playing"
    winner: str | None = None
    action_log: list[Action] = field(default_factory=list)
    event_log: list[Event] = field(default_factory=list)

    def player(self, user_id: str) -> PlayerState:
        ps = self.players.get(user_id)
        if ps is None:
            raise InvalidPlayer(f"{user_id} is not part of this match.")
        return ps

    def emit(self, event: Event) -> None:
        self.event_log.append(event)


def require_phase(state: MatchState, *allowed: MatchPhase) -> None:
    if state.phase == "finished":
        raise InvalidPhase("Match already ended.")
    if state.phase not in allowed:
        raise InvalidPhase(f"Not allowed during {state.phase}.")


def _card(state: MatchState, card_id: str) -> CardDefinition:
    card = state.cards.cards.get(card_id)
    if card is None:
        raise InvalidPlacement(f"Unknown card: {card_id}")
    return card


def _spend(ps: PlayerState, cost: int, what: str) -> None:
    if ps.gold < cost:
        raise InsufficientGold(f"Not enough gold to {what} (need {cost}, have {ps.gold}).")
    ps.gold -= cost
    ps.bump("gold_spent", cost)


def _place_card(state: MatchState, action: PlaceCardAction) -> None:
    require_phase(state, "playing")
    ps = state.player(action.player)
    validate_placement(ps, action.hand_index, action.board_index, action.card_id)
    card = _card(state, action.card_id)
    _spend(ps, card.cost, f"play {card.id}")

    merges = place_card_and_maybe_merge(ps, action.hand_index, action.board_index, action.card_id)
    ps.bump("cards_placed")
    state.emit(
        {
            "type": "CARD_PLACED",
            "player": action.player,
            "card_id": card.id,
            "board_index": action.board_index,
        }
    )
    for m in merges:
        ps.bump("merges")
        state.emit(
            {
                "type": "BOARD_MERGE",
                "player": action.player,
                "card_id": m.card_id,
                "chosen_index": m.chosen_index,
                "cleared_indices": list(m.cleared_indices),
                "new_stack_count": m.new_stack_count,
            }
        )

    apply_defense_bonus(ps, card)
    effect_event = apply_card_effect(ps, card)
    if effect_event is not None:
        effect_event["player"] = action.player
        state.emit(effect_event)


def _sell_card(state: MatchState, action: SellCardAction) -> None:
    require_phase(state, "playing")
    ps = state.player(action.player)
    if action.board_index < 0 or action.board_index >= len(ps.board):
        raise InvalidShopAction("Invalid board slot.")
    slot = ps.board[action.board_index]
    if slot.card_id is None:
        raise InvalidShopAction("Nothing to sell in that slot.")

    card_id = slot.card_id
    card = state.cards.cards.get(card_id)
    refund = sell_refund(card.cost) if card is not None else 0
    if card is not None:
        # A tier-n slot stands for 3 ** (n - 1) placed copies.
        apply_defense_bonus(ps, card, copies=-(3 ** (slot.stack_count - 1)))
    ps.gold += refund
    ps.discard.append(card_id)
    slot.clear()
    ps.bump("cards_sold")
    state.emit(
        {
            "type": "CARD_SOLD",
            "player": action.player,
            "card_id": card_id,
            "board_index": action.board_index,
            "refund": refund,
        }
    )


def _end_round(state: MatchState, action: EndRoundAction) -> None:
    require_phase(state, "playing")
    state.player(action.player)
    archetypes = state.cards.archetypes()
    shuffle = rng_shuffler(state.rng)
    pool = state.cards.shop_pool()

    state.emit({"type": "ROUND_ENDED", "round": state.round, "by": action.player})
    for user_id in state.seats:
        ps = state.players[user_id]
        buffs = [{"card_id": b.card_id, "multiplier": b.multiplier, "target": b.target} for b in ps.pending_buffs]
        ps.pending_buffs = []
        result = prepare_shop_transition(ps, archetypes, shuffle)
        for card_id in result.unknown:
            state.emit({"type": "UNKNOWN_ARCHETYPE", "player": user_id, "card_id": card_id})
        ps.gold = shop_gold(state.round + 1, ps.gold_per_round, ps.max_gold)
        ps.shop = roll_shop_offer(pool, ps.tower_level, state.rng)
        ps.ready = False
        state.emit(
            {
                "type": "SHOP_OPENED",
                "player": user_id,
                "discarded": list(result.discarded),
                "consumed_buffs": buffs,
                "gold": ps.gold,
                "shop": list(ps.shop),
            }
        )
    state.phase = "shop_transition"


def _ready(state: MatchState, action: ReadyAction) -> None:
    require_phase(state, "shop_transition")
    ps = state.player(action.player)
    ps.ready = True
    state.emit({"type": "PLAYER_READY", "player": action.player})
    if not all(state.players[u].ready for u in state.seats):
        return

    state.round += 1
    for user_id in state.seats:
        p = state.players[user_id]
        desired = state.config.hand_size_per_round + p.pending_extra_draws
        drawn = draw_up_to(p, desired, state.config, state.rng)
        p.pending_extra_draws = 0
        p.ready = False
        state.emit({"type": "CARDS_DRAWN", "player": user_id, "count": len(drawn)})
    state.phase = "playing"
    state.emit({"type": "ROUND_STARTED", "round": state.round})


def _upgrade_tower(state: MatchState, action: UpgradeTowerAction) -> None:
    require_phase(state, "playing", "shop_transition")
    ps = state.player(action.player)
    cost = tower_upgrade_cost_for_round(state.round, ps.last_tower_upgrade_round)
    _spend(ps, cost, "upgrade the tower")

    hp = state.config.tower_upgrade_hp_bonus
    dps = state.config.tower_upgrade_dps_bonus
    for card_id in {s.card_id for s in ps.board if s.card_id is not None}:
        card = state.cards.cards.get(card_id)
        if card is not None:
            hp += card.upgrade_hp_bonus
            dps += card.upgrade_dps_bonus

    ps.tower_level += 1
    ps.tower_hp_max += hp
    ps.tower_hp = min(ps.tower_hp_max, ps.tower_hp + hp)
    ps.tower_dps += dps
    ps.reroll_cost = state.config.reroll_cost
    ps.last_tower_upgrade_round = state.round
    ps.bump("tower_upgrades")
    state.emit(
        {
            "type": "TOWER_UPGRADED",
            "player": action.player,
            "cost": cost,
            "tower_level": ps.tower_level,
            "round": state.round,
        }
    )


def _shop_buy(state: MatchState, action: ShopBuyAction) -> None:
    require_phase(state, "shop_transition")
    ps = state.player(action.player)
    if action.card_id not in ps.shop:
        raise InvalidShopAction(f"{action.card_id} is not on offer.")
    card = _card(state, action.card_id)
    _spend(ps, card.cost, f"buy {card.id}")
    ps.shop.remove(action.card_id)
    ps.deck.insert(0, action.card_id)
    ps.bump("cards_bought")
    state.emit({"type": "SHOP_BOUGHT", "player": action.player, "card_id": action.card_id})


def _shop_reroll(state: MatchState, action: ShopRerollAction) -> None:
    require_phase(state, "shop_transition")
    ps = state.player(action.player)
    _spend(ps, ps.reroll_cost, "reroll the shop")
    ps.shop = roll_shop_offer(state.cards.shop_pool(), ps.tower_level, state.rng)
    ps.bump("rerolls")
    state.emit({"type": "SHOP_REROLLED", "player": action.player, "shop": list(ps.shop)})


_HANDLERS = {
    PlaceCardAction: _place_card,
    SellCardAction: _sell_card,
    EndRoundAction: _end_round,
    ReadyAction: _ready,
    UpgradeTowerAction: _upgrade_tower,
    ShopBuyAction: _shop_buy,
    ShopRerollAction: _shop_reroll,
}


def step(state: MatchState, action: Action) -> StepResult:
    """Apply a single action to the match state.

    This mutates `state` in-place but remains deterministic for a given
    (seed, initial decks, action sequence). Rejected actions leave the state
    untouched and come back with ok=False and a user-facing message.
    """
    # Log first, so replay has a full record of attempted actions
    state.action_log.append(action)
    handler = _HANDLERS.get(type(action))
    if handler is None:
        return StepResult(ok=False, events=[], error="Unknown action.")

    start = len(state.event_log)
    try:
        handler(state, action)  # type: ignore[operator]
    except EngineError as e:
        del state.event_log[start:]
        return StepResult(ok=False, events=[], error=str(e))
    return StepResult(ok=True, events=state.event_log[start:])


def finish_match(state: MatchState, winner: str | None, reason: str = "external") -> StepResult:
    """Enter the terminal phase; the win/loss rule itself lives outside the engine."""
    if state.phase == "finished":
        return StepResult(ok=False, events=[], error="Match already ended.")
    if winner is not None and winner not in state.players:
        return StepResult(ok=False, events=[], error=f"{winner} is not part of this match.")
    state.winner = winner
    state.phase = "finished"
    event: Event = {"type": "GAME_ENDED", "winner": winner, "reason": reason, "round": state.round}
    state.emit(event)
    return StepResult(ok=True, events=[event])


def new_match(
    cards: CardDatabase,
    decks: Mapping[str, Sequence[str]],
    seed: int,
    config: MatchConfig | None = None,
    match_id: str = "local",
) -> MatchState:
    cfg = config or MatchConfig()
    if len(decks) < 2:
        raise ValueError("A match needs at least two players.")
    for user_id, deck in decks.items():
        missing = sorted({cid for cid in deck if cid not in cards.cards})
        if missing:
            raise ValueError(f"Deck for {user_id} has unknown cards: {', '.join(missing)}")

    rng = random.Random(seed)
    shuffle = rng_shuffler(rng)
    seats = list(decks.keys())
    players = {user_id: new_player_state(shuffle(list(decks[user_id])), cfg) for user_id in seats}

    state = MatchState(
        match_id=match_id,
        cards=cards,
        config=cfg,
        seed=seed,
        rng=rng,
        players=players,
        seats=seats,
    )
    for user_id in seats:
        draw_up_to(players[user_id], cfg.hand_size_per_round, cfg, rng)
    state.emit({"type": "ROUND_STARTED", "round": state.round})
    return state


def replay(
    cards: CardDatabase,
    decks: Mapping[str, Sequence[str]],
    seed: int,
    actions: Iterable[Action],
    config: MatchConfig | None = None,
    match_id: str = "local",
) -> MatchState:
    state = new_match(cards=cards, decks=decks, seed=seed, config=config, match_id=match_id)
    for a in actions:
        step(state, a)
        if state.phase == "finished":
            break
    return state
