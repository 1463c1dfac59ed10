"""Board placement and triple-merge resolution.

Three slots holding the same card at the same tier collapse into one slot at
the next tier. Merges cascade: a fresh tier-2 card may complete a tier-2
triple, and so on.

Tie-break contract: the merge group is the one owning the lowest-indexed
participating slot, the three lowest-indexed slots of that group take part,
and the lowest of them keeps the card.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

from .errors import InvalidPlacement
from .state import BoardSlot, PlayerState


@dataclass(frozen=True)
class MergeInfo:
    card_id: str
    chosen_index: int
    cleared_indices: tuple[int, ...]
    new_stack_count: int


def _slots_holding(board: list[BoardSlot], card_id: str, stack_count: int) -> list[int]:
    return [i for i, s in enumerate(board) if s.card_id == card_id and s.stack_count == stack_count]


def has_merge_path(board: list[BoardSlot], board_index: int, card_id: str) -> bool:
    """True if a fresh copy of card_id dropped on an occupied slot completes a triple."""
    slot = board[board_index]
    if slot.card_id != card_id or slot.stack_count != 1:
        return False
    return len(_slots_holding(board, card_id, 1)) >= 2


def find_triple(board: list[BoardSlot]) -> list[int] | None:
    groups: dict[tuple[str, int], list[int]] = defaultdict(list)
    for i, slot in enumerate(board):
        if slot.card_id is not None:
            groups[(slot.card_id, slot.stack_count)].append(i)
    for i, slot in enumerate(board):
        if slot.card_id is None:
            continue
        indices = groups[(slot.card_id, slot.stack_count)]
        if len(indices) >= 3:
            return indices[:3]
    return None


def _merge(board: list[BoardSlot], indices: list[int]) -> MergeInfo:
    keep, *cleared = sorted(indices)
    kept = board[keep]
    assert kept.card_id is not None
    kept.stack_count += 1
    for idx in cleared:
        board[idx].clear()
    return MergeInfo(
        card_id=kept.card_id,
        chosen_index=keep,
        cleared_indices=tuple(cleared),
        new_stack_count=kept.stack_count,
    )


def resolve_merges(board: list[BoardSlot]) -> list[MergeInfo]:
    merges: list[MergeInfo] = []
    # Each merge frees two slots, so this terminates.
    while True:
        triple = find_triple(board)
        if triple is None:
            return merges
        merges.append(_merge(board, triple))


def validate_placement(state: PlayerState, hand_index: int, board_index: int, card_id: str) -> None:
    if hand_index < 0 or hand_index >= len(state.hand):
        raise InvalidPlacement("Invalid hand index.")
    if state.hand[hand_index] != card_id:
        raise InvalidPlacement(f"Hand slot {hand_index} does not hold {card_id}.")
    if board_index < 0 or board_index >= len(state.board):
        raise InvalidPlacement("Invalid board slot.")
    if not state.board[board_index].empty and not has_merge_path(state.board, board_index, card_id):
        raise InvalidPlacement("Board slot is occupied.")


def place_card_and_maybe_merge(
    state: PlayerState, hand_index: int, board_index: int, card_id: str
) -> list[MergeInfo]:
    """Move hand[hand_index] onto board[board_index] and resolve merges.

    Raises InvalidPlacement without touching `state` if the hand index or
    card id is wrong, the slot is out of range, or the slot is occupied and
    no merge path exists. Returns one MergeInfo per merge, in order.
    """
    validate_placement(state, hand_index, board_index, card_id)

    state.hand.pop(hand_index)
    board = state.board
    target = board[board_index]
    merges: list[MergeInfo] = []

    if target.empty:
        target.card_id = card_id
        target.stack_count = 1
    else:
        # The incoming card is the third copy: it pairs with the target and
        # the lowest-indexed other tier-1 copy.
        partner = next(i for i in _slots_holding(board, card_id, 1) if i != board_index)
        keep, drop = sorted((board_index, partner))
        board[keep].stack_count += 1
        board[drop].clear()
        merges.append(
            MergeInfo(
                card_id=card_id,
                chosen_index=keep,
                cleared_indices=(drop,),
                new_stack_count=board[keep].stack_count,
            )
        )

    merges.extend(resolve_merges(board))
    return merges
