from __future__ import annotations


class EngineError(RuntimeError):
    """Base class for rule violations raised by the match engine.

    Engine operations validate before they mutate, so a raised EngineError
    always means the input state was left as it was.
    """


class InvalidPlacement(EngineError):
    pass


class InvalidPhase(EngineError):
    pass


class InvalidPlayer(EngineError):
    pass


class InsufficientGold(EngineError):
    pass


class InvalidShopAction(EngineError):
    pass


class UnknownArchetype(EngineError):
    """Board card with no archetype in the catalog.

    Only raised when a caller asks for strict shop transitions; by default the
    card stays on the board and is reported instead.
    """

    def __init__(self, card_ids: list[str]) -> None:
        super().__init__(f"Unknown archetype for: {', '.join(card_ids)}")
        self.card_ids = card_ids
