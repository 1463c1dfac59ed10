from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator

from towermerge.engine.types import (
    ARCHETYPES,
    RARITIES,
    BuffEffect,
    CardDatabase,
    CardDefinition,
    EconomyEffect,
    Effect,
)


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.path])
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int):
        raise ContentError(f"Expected int for {key}")
    return v


def _optional_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if v is None:
        return 0
    if not isinstance(v, int):
        raise ContentError(f"Expected int for {key}")
    return v


# Buff targets as written by designers, folded into what the round logic uses.
_BUFF_TARGETS = {
    "units": "units",
    "next_attack": "units",
    "all_attacks_next_round": "units",
    "units_next_round": "units",
    "tower": "tower",
    "next_defense": "tower",
    "tower_next_round": "tower",
}


def _parse_effect(archetype: str, raw: object) -> Effect | None:
    if not isinstance(raw, dict):
        return None
    if archetype == "ECONOMY":
        kind = _require_str(raw, "kind")
        if kind not in ("gold_per_round", "extra_draw_next_round"):
            raise ContentError(f"Unknown economy effect: {kind}")
        return EconomyEffect(kind=kind, amount=_require_int(raw, "amount"))  # type: ignore[arg-type]
    if archetype == "BUFF":
        mul = raw.get("multiplier", 1)
        if not isinstance(mul, (int, float)):
            raise ContentError("multiplier must be a number")
        target = _BUFF_TARGETS.get(str(raw.get("target", "units")), "units")
        return BuffEffect(multiplier=float(mul), target=target)  # type: ignore[arg-type]
    return None


def _parse_card(item: Mapping[str, object]) -> CardDefinition:
    archetype = _require_str(item, "archetype")
    rarity = _require_str(item, "rarity")
    # trust schema, but keep the engine safe if someone skips it
    if archetype not in ARCHETYPES:
        raise ContentError(f"Unknown archetype: {archetype}")
    if rarity not in RARITIES:
        raise ContentError(f"Unknown rarity: {rarity}")
    description = item.get("description", "")
    return CardDefinition(
        id=_require_str(item, "id"),
        name=_require_str(item, "name"),
        archetype=archetype,  # type: ignore[arg-type]
        rarity=rarity,  # type: ignore[arg-type]
        cost=_require_int(item, "cost"),
        description=description if isinstance(description, str) else "",
        base_damage=_optional_int(item, "base_damage"),
        base_hp_bonus=_optional_int(item, "base_hp_bonus"),
        base_dps_bonus=_optional_int(item, "base_dps_bonus"),
        upgrade_hp_bonus=_optional_int(item, "upgrade_hp_bonus"),
        upgrade_dps_bonus=_optional_int(item, "upgrade_dps_bonus"),
        collectible=bool(item.get("collectible", True)),
        effect=_parse_effect(archetype, item.get("effect")),
    )


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def load_cards_db(self) -> CardDatabase:
        cards_path = self._data_dir / "cards.json"
        schema_path = self._schema_dir / "cards.schema.json"
        raw = _load_json(cards_path)
        schema = _load_json(schema_path)
        validate_json(raw, schema, context=str(cards_path))

        if not isinstance(raw, dict):
            raise ContentError("cards.json must be an object")
        raw_cards = raw.get("cards")
        if not isinstance(raw_cards, list):
            raise ContentError("cards.json.cards must be a list")

        cards: dict[str, CardDefinition] = {}
        for item in raw_cards:
            if not isinstance(item, dict):
                continue
            card = _parse_card(item)
            if card.id in cards:
                raise ContentError(f"Duplicate card id: {card.id}")
            cards[card.id] = card
        return CardDatabase(cards=cards)

    def load_starter_decks(self) -> dict[str, list[str]]:
        path = self._data_dir / "decks.json"
        raw = _load_json(path)
        validate_json(raw, _load_json(self._schema_dir / "decks.schema.json"), context=str(path))
        if not isinstance(raw, dict) or not isinstance(raw.get("decks"), dict):
            raise ContentError("decks.json.decks must be an object")
        decks: dict[str, list[str]] = {}
        for deck_id, entries in raw["decks"].items():
            cards: list[str] = []
            for e in entries:
                cards.extend([_require_str(e, "card_id")] * _require_int(e, "count"))
            decks[deck_id] = cards
        return decks

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        cards = self.load_cards_db()
        for deck_id, deck in self.load_starter_decks().items():
            missing = sorted({cid for cid in deck if cid not in cards.cards})
            if missing:
                raise ContentError(f"Deck {deck_id} references unknown cards: {', '.join(missing)}")
