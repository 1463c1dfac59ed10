from __future__ import annotations

from .state import PendingBuff, PlayerState
from .types import BuffEffect, CardDefinition, EconomyEffect

Event = dict[str, object]


def apply_card_effect(state: PlayerState, card: CardDefinition) -> Event | None:
    """Register the round effect of a freshly placed BUFF or ECONOMY card."""
    eff = card.effect
    if card.archetype == "ECONOMY" and isinstance(eff, EconomyEffect):
        amount = max(0, eff.amount)
        if eff.kind == "extra_draw_next_round":
            state.pending_extra_draws += amount
        elif eff.kind == "gold_per_round":
            state.gold_per_round += amount
            state.max_gold += amount
        return {"type": "ECONOMY_APPLIED", "card_id": card.id, "kind": eff.kind, "amount": amount}

    if card.archetype == "BUFF" and isinstance(eff, BuffEffect):
        state.pending_buffs.append(
            PendingBuff(card_id=card.id, multiplier=eff.multiplier, target=eff.target)
        )
        return {
            "type": "BUFF_QUEUED",
            "card_id": card.id,
            "multiplier": eff.multiplier,
            "target": eff.target,
        }
    return None


def apply_defense_bonus(state: PlayerState, card: CardDefinition, copies: int = 1) -> None:
    """Add (or with negative copies, remove) a DEFENSE card's tower bonuses."""
    if card.archetype != "DEFENSE":
        return
    hp = card.base_hp_bonus * copies
    dps = card.base_dps_bonus * copies
    if hp:
        state.tower_hp_max = max(0, state.tower_hp_max + hp)
        state.tower_hp = min(state.tower_hp_max, max(0, state.tower_hp + hp))
    if dps:
        state.tower_dps = max(0, state.tower_dps + dps)


def outgoing_damage(state: PlayerState, cards: dict[str, CardDefinition]) -> int:
    """Board attack power: base damage scaled by stack_count per ATTACK slot."""
    total = 0
    for slot in state.board:
        if slot.card_id is None:
            continue
        card = cards.get(slot.card_id)
        if card is None or card.archetype != "ATTACK":
            continue
        total += card.base_damage * slot.stack_count
    return total
