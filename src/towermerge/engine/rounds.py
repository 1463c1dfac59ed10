"""Per-player state changes at round boundaries."""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Mapping

from .errors import UnknownArchetype
from .state import MatchConfig, PlayerState
from .types import SHOP_PURGED, Archetype

Shuffler = Callable[[list[str]], list[str]]


@dataclass
class ShopTransitionResult:
    state: PlayerState
    discarded: list[str] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)


def rng_shuffler(rng: random.Random) -> Shuffler:
    def _shuffle(items: list[str]) -> list[str]:
        out = list(items)
        rng.shuffle(out)
        return out

    return _shuffle


def prepare_shop_transition(
    state: PlayerState,
    archetype_lookup: Mapping[str, Archetype],
    shuffle: Shuffler,
    *,
    strict: bool = False,
) -> ShopTransitionResult:
    """Return the hand to a reshuffled deck and purge consumables from the board.

    deck becomes shuffle(deck + hand) and hand is emptied. BUFF and ECONOMY
    cards leave the board for the discard pile; ATTACK and DEFENSE cards stay
    with their stack_count. Cards missing from `archetype_lookup` stay on the
    board and are listed in `result.unknown`, unless `strict` is set, in which
    case UnknownArchetype is raised.

    Nothing is mutated if the shuffler does not return a permutation of its
    input or a strict check fails.
    """
    pool = state.deck + state.hand
    shuffled = list(shuffle(list(pool)))
    if Counter(shuffled) != Counter(pool):
        raise ValueError("Shuffler must return a permutation of its input.")

    purge: list[int] = []
    unknown: list[str] = []
    for i, slot in enumerate(state.board):
        if slot.card_id is None:
            continue
        archetype = archetype_lookup.get(slot.card_id)
        if archetype is None:
            unknown.append(slot.card_id)
        elif archetype in SHOP_PURGED:
            purge.append(i)
    if strict and unknown:
        raise UnknownArchetype(unknown)

    state.deck = shuffled
    state.hand = []
    result = ShopTransitionResult(state=state, unknown=unknown)
    for i in purge:
        slot = state.board[i]
        assert slot.card_id is not None
        state.discard.append(slot.card_id)
        result.discarded.append(slot.card_id)
        slot.clear()
    return result


def draw_cards(
    state: PlayerState,
    count: int,
    config: MatchConfig,
    rng: random.Random,
    hand_limit: int | None = None,
) -> list[str]:
    """Draw up to `count` cards from the front of the deck.

    At most config.max_draw_per_call cards are drawn, and drawing stops at
    `hand_limit` (config.hand_size_per_round by default). An empty deck is
    refilled from the shuffled discard pile.
    """
    limit = config.hand_size_per_round if hand_limit is None else hand_limit
    drawn: list[str] = []
    for _ in range(min(count, config.max_draw_per_call)):
        if len(state.hand) >= limit:
            break
        if not state.deck and state.discard:
            state.deck = rng_shuffler(rng)(state.discard)
            state.discard = []
        if not state.deck:
            break
        card_id = state.deck.pop(0)
        state.hand.append(card_id)
        drawn.append(card_id)
    return drawn


def draw_up_to(
    state: PlayerState, desired_total: int, config: MatchConfig, rng: random.Random
) -> list[str]:
    drawn: list[str] = []
    while len(state.hand) < desired_total:
        batch = draw_cards(state, desired_total - len(state.hand), config, rng, hand_limit=desired_total)
        if not batch:
            break
        drawn.extend(batch)
    return drawn
