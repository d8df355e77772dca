import json
import logging
import time
from pathlib import Path

from engine.game_state import GameState
from storage.config import AUTOSAVE_MAX_AGE_SEC, AUTOSAVE_SLOT, SAVE_FORMAT_VERSION, SLOT_COUNT

logger = logging.getLogger(__name__)

SAVE_PREFIX = "savegame_slot"
SAVE_SUFFIX = ".json"


def _slot_path(slot: int) -> Path:
    return Path(__file__).with_name(f"{SAVE_PREFIX}{slot}{SAVE_SUFFIX}")


def _valid_slot(slot) -> int:
    """Clamp to AUTOSAVE_SLOT..SLOT_COUNT; garbage means slot 1."""
    try:
        return min(max(int(slot), AUTOSAVE_SLOT), SLOT_COUNT)
    except (TypeError, ValueError):
        return 1


def has_saved_game(slot: int = 1) -> bool:
    return _slot_path(_valid_slot(slot)).is_file()


def _read_payload(path: Path) -> dict:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("save file is not an object")
    if payload.get("version") != SAVE_FORMAT_VERSION:
        raise ValueError(f"unsupported save version {payload.get('version')!r}")
    return payload


def save_game(state: GameState, slot: int = 1, now: float | None = None) -> bool:
    slot = _valid_slot(slot)
    payload = {
        "version": SAVE_FORMAT_VERSION,
        "timestamp": time.time() if now is None else now,
        "gameState": state.to_dict(),
    }
    path = _slot_path(slot)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        logger.warning("Failed to save game to slot %d: %s", slot, exc)
        return False
    logger.info("Saved game to slot %d", slot)
    return True


def load_game(slot: int = 1, now: float | None = None) -> GameState | None:
    slot = _valid_slot(slot)
    path = _slot_path(slot)
    if not path.is_file():
        return None
    try:
        payload = _read_payload(path)
        age = (time.time() if now is None else now) - float(payload["timestamp"])
        if slot == AUTOSAVE_SLOT and age > AUTOSAVE_MAX_AGE_SEC:
            logger.info("Discarding stale autosave (%.0f s old)", age)
            clear_game(slot)
            return None
        state = GameState.from_dict(payload["gameState"])
    except Exception as exc:
        logger.warning("Failed to load game from slot %d: %s", slot, exc)
        return None
    logger.info("Loaded game from slot %d", slot)
    return state


def clear_game(slot: int = 1) -> bool:
    path = _slot_path(_valid_slot(slot))
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Failed to clear slot %s: %s", slot, exc)
        return False
    return True


def list_slot_status() -> list[dict]:
    """Summaries of the autosave and every manual slot, for slot pickers."""
    rows = []
    for slot in range(AUTOSAVE_SLOT, SLOT_COUNT + 1):
        path = _slot_path(slot)
        row = {"slot": slot, "exists": path.is_file()}
        row.update(dict.fromkeys(("timestamp", "variant", "difficulty", "moves")))
        if row["exists"]:
            try:
                payload = _read_payload(path)
                game = payload["gameState"]
                row.update(
                    timestamp=payload["timestamp"],
                    variant=game["variant"],
                    difficulty=game["difficulty"],
                    moves=game["moves"],
                )
            except (OSError, ValueError, KeyError) as exc:
                logger.warning("Unreadable save in slot %d: %s", slot, exc)
                row["exists"] = False
        rows.append(row)
    return rows
