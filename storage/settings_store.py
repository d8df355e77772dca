import configparser
import logging
from pathlib import Path

from storage.config import BOOL_CHOICES, DIFFICULTY_ORDER, SLOT_COUNT, VARIANT_ORDER

logger = logging.getLogger(__name__)

SETTINGS_PATH = Path(__file__).with_name("settings.ini")
SECTION = "game"

DEFAULT_SETTINGS = {
    "variant": "klondike",
    "difficulty": "medium",
    "show_hints": "true",
    "auto_complete": "true",
    "save_slot": "1",
}

ALLOWED_VALUES = {
    "variant": VARIANT_ORDER,
    "difficulty": DIFFICULTY_ORDER,
    "show_hints": BOOL_CHOICES,
    "auto_complete": BOOL_CHOICES,
    "save_slot": tuple(str(n) for n in range(1, SLOT_COUNT + 1)),
}


def _clamp_slot(value: str) -> str:
    try:
        slot = int(value)
    except ValueError:
        return DEFAULT_SETTINGS["save_slot"]
    return str(min(max(slot, 1), SLOT_COUNT))


def _sanitize(settings) -> dict[str, str]:
    data = {}
    for key, default in DEFAULT_SETTINGS.items():
        value = str(settings.get(key, default)).strip().lower()
        if key == "save_slot":
            value = _clamp_slot(value)
        data[key] = value if value in ALLOWED_VALUES[key] else default
    return data


def as_bool(value) -> bool:
    return str(value).strip().lower() == "true"


def load_settings() -> dict[str, str]:
    parser = configparser.ConfigParser()
    try:
        found = parser.read(SETTINGS_PATH, encoding="utf-8")
    except configparser.Error as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", SETTINGS_PATH, exc)
        return dict(DEFAULT_SETTINGS)
    if not found or not parser.has_section(SECTION):
        return dict(DEFAULT_SETTINGS)
    return _sanitize(parser[SECTION])


def save_settings(settings) -> dict[str, str]:
    data = _sanitize(settings)
    parser = configparser.ConfigParser()
    parser.read_dict({SECTION: data})
    SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
    with SETTINGS_PATH.open("w", encoding="utf-8") as f:
        parser.write(f)
    logger.debug("Saved settings to %s", SETTINGS_PATH)
    return data
