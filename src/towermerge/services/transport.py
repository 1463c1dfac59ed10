from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class Delivery:
    match_id: str
    user_id: str
    payload: dict[str, object]


class Transport(Protocol):
    async def publish(self, match_id: str, user_id: str, payload: dict[str, object]) -> None: ...


@dataclass
class InMemoryTransport:
    """Transport that keeps every delivery in memory.

    Real connection layers (websockets, SSE) can replace this later.
    """

    deliveries: list[Delivery] = field(default_factory=list)

    async def publish(self, match_id: str, user_id: str, payload: dict[str, object]) -> None:
        self.deliveries.append(Delivery(match_id=match_id, user_id=user_id, payload=payload))

    def for_user(self, user_id: str) -> list[Delivery]:
        return [d for d in self.deliveries if d.user_id == user_id]

    def latest(self, user_id: str) -> dict[str, object] | None:
        mine = self.for_user(user_id)
        return mine[-1].payload if mine else None
