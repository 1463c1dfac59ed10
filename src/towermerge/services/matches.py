"""Per-match single-writer coordination around the synchronous engine.

Every match owns an asyncio.Lock; an action for that match is validated,
applied and snapshotted while holding it. Publishing to clients happens in
background tasks after the lock is released, so a slow or failing transport
never stalls the action path.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from towermerge.engine.actions import Action
from towermerge.engine.match import MatchState, StepResult, finish_match, new_match, step
from towermerge.engine.serialize import action_to_dict, match_result, player_view
from towermerge.engine.state import MatchConfig
from towermerge.engine.types import CardDatabase
from towermerge.services.telemetry import TelemetryService
from towermerge.services.transport import Transport

logger = logging.getLogger(__name__)


class UnknownMatch(KeyError):
    pass


@dataclass
class MatchHandle:
    state: MatchState
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class MatchService:
    def __init__(
        self,
        cards: CardDatabase,
        transport: Transport,
        telemetry: TelemetryService | None = None,
        config: MatchConfig | None = None,
    ) -> None:
        self._cards = cards
        self._transport = transport
        self._telemetry = telemetry
        self._config = config or MatchConfig()
        self._matches: dict[str, MatchHandle] = {}
        self._pending: set[asyncio.Task[None]] = set()

    def create_match(self, match_id: str, decks: Mapping[str, Sequence[str]], seed: int) -> MatchState:
        if match_id in self._matches:
            raise ValueError(f"Match {match_id} already exists.")
        state = new_match(self._cards, decks, seed=seed, config=self._config, match_id=match_id)
        self._matches[match_id] = MatchHandle(state=state)
        logger.info("match %s created for %s", match_id, ", ".join(state.seats))
        self._record("match_created", {"players": list(state.seats), "seed": seed}, match_id)
        return state

    def get(self, match_id: str) -> MatchState:
        return self._handle(match_id).state

    def drop(self, match_id: str) -> None:
        self._handle(match_id)
        del self._matches[match_id]
        logger.info("match %s dropped", match_id)

    def match_ids(self) -> list[str]:
        return sorted(self._matches)

    def _handle(self, match_id: str) -> MatchHandle:
        handle = self._matches.get(match_id)
        if handle is None:
            raise UnknownMatch(match_id)
        return handle

    async def submit(self, match_id: str, user_id: str, action: Action) -> StepResult:
        """Apply `action` on behalf of the authenticated `user_id`."""
        handle = self._handle(match_id)
        payloads: dict[str, dict[str, object]] = {}
        async with handle.lock:
            state = handle.state
            if action.player != user_id:
                result = StepResult(ok=False, events=[], error="Action does not belong to this player.")
            else:
                result = step(state, action)
            if result.ok:
                payloads = {u: player_view(state, u) for u in state.seats}

        if not result.ok:
            logger.info("match %s: rejected %s from %s: %s", match_id, type(action).__name__, user_id, result.error)
            await self._record_off_loop(
                "action_rejected",
                {"user_id": user_id, "action": action_to_dict(action), "error": result.error},
                match_id,
            )
            return result

        for ev in result.events:
            if ev.get("type") == "UNKNOWN_ARCHETYPE":
                logger.warning("match %s: %s kept unknown card %s on board", match_id, ev["player"], ev["card_id"])
        self._schedule(match_id, payloads)
        return result

    async def finish(self, match_id: str, winner: str | None, reason: str = "external") -> StepResult:
        handle = self._handle(match_id)
        async with handle.lock:
            result = finish_match(handle.state, winner, reason)
            payloads = {u: player_view(handle.state, u) for u in handle.state.seats} if result.ok else {}
            summary = match_result(handle.state)
        if result.ok:
            logger.info("match %s finished, winner=%s", match_id, winner)
            await self._record_off_loop("match_finished", summary, match_id)
            self._schedule(match_id, payloads)
        return result

    def _schedule(self, match_id: str, payloads: dict[str, dict[str, object]]) -> None:
        task = asyncio.create_task(self._publish_all(match_id, payloads))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish_all(self, match_id: str, payloads: dict[str, dict[str, object]]) -> None:
        for user_id, payload in payloads.items():
            try:
                await self._transport.publish(match_id, user_id, payload)
            except Exception:
                logger.exception("match %s: failed to publish state to %s", match_id, user_id)

    async def drain(self) -> None:
        """Wait until every scheduled publication has completed."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def _record(self, event_type: str, payload: Mapping[str, object], match_id: str) -> None:
        if self._telemetry is not None:
            self._telemetry.log(event_type, payload, match_id=match_id)

    async def _record_off_loop(self, event_type: str, payload: Mapping[str, object], match_id: str) -> None:
        # Appends happen on a worker thread, off the event loop.
        if self._telemetry is not None:
            await asyncio.to_thread(self._record, event_type, payload, match_id)
