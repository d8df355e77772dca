import json
import logging
from pathlib import Path

from storage.config import DIFFICULTY_ORDER, VARIANT_ORDER

logger = logging.getLogger(__name__)

STATS_PATH = Path(__file__).with_name("stats.json")

BUCKET_DEFAULTS = {
    "games_started": 0,
    "games_won": 0,
    "games_lost": 0,
    "total_duration_sec": 0.0,
    "total_moves": 0,
    "best_score": 0,
    "current_streak": 0,
    "best_streak": 0,
}


def profile_key(variant: str, difficulty: str) -> str:
    return f"{variant}-{difficulty}"


def profile_order() -> tuple[str, ...]:
    return tuple(profile_key(v, d) for v in VARIANT_ORDER for d in DIFFICULTY_ORDER)


def _coerce(value, default):
    """Cast to the default's type, clamped at zero."""
    kind = type(default)
    try:
        return max(kind(0), kind(value))
    except (TypeError, ValueError):
        return default


def _clean_bucket(raw) -> dict:
    bucket = dict(BUCKET_DEFAULTS)
    if isinstance(raw, dict):
        for key, default in BUCKET_DEFAULTS.items():
            bucket[key] = _coerce(raw.get(key, default), default)
    return bucket


def _sanitize(data) -> dict:
    data = data if isinstance(data, dict) else {}
    profiles = data.get("by_profile")
    if not isinstance(profiles, dict):
        profiles = {}
    return {
        "overall": _clean_bucket(data.get("overall")),
        "by_profile": {key: _clean_bucket(profiles.get(key)) for key in profile_order()},
    }


def load_stats() -> dict:
    try:
        raw = json.loads(STATS_PATH.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return _sanitize(None)
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable stats file %s: %s", STATS_PATH, exc)
        return _sanitize(None)
    return _sanitize(raw)


def save_stats(stats):
    STATS_PATH.parent.mkdir(parents=True, exist_ok=True)
    with STATS_PATH.open("w", encoding="utf-8") as f:
        json.dump(_sanitize(stats), f, ensure_ascii=False, indent=2)


def _update(stats, variant: str, difficulty: str, update) -> dict:
    stats = _sanitize(stats)
    profile = stats["by_profile"].setdefault(profile_key(variant, difficulty), dict(BUCKET_DEFAULTS))
    for bucket in (stats["overall"], profile):
        update(bucket)
    return stats


def record_game_started(stats, variant, difficulty):
    def update(bucket):
        bucket["games_started"] += 1

    return _update(stats, variant, difficulty, update)


def record_game_won(stats, variant, difficulty, duration_sec, moves, score):
    def update(bucket):
        bucket["games_won"] += 1
        bucket["total_duration_sec"] += max(0.0, float(duration_sec))
        bucket["total_moves"] += max(0, int(moves))
        bucket["best_score"] = max(bucket["best_score"], int(score))
        bucket["current_streak"] += 1
        bucket["best_streak"] = max(bucket["best_streak"], bucket["current_streak"])

    return _update(stats, variant, difficulty, update)


def record_game_lost(stats, variant, difficulty):
    def update(bucket):
        bucket["games_lost"] += 1
        bucket["current_streak"] = 0

    return _update(stats, variant, difficulty, update)


def record_finished_game(stats, game_stats: dict):
    """Fold a finished GameState.get_game_stats() result into the stats."""
    variant = game_stats["variant"]
    difficulty = game_stats["difficulty"]
    if not game_stats["gameWon"]:
        return record_game_lost(stats, variant, difficulty)
    return record_game_won(
        stats,
        variant,
        difficulty,
        game_stats["gameTime"] / 1000.0,
        game_stats["moves"],
        game_stats["adjustedScore"],
    )
