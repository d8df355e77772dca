from engine.cards import KLONDIKE, SPIDER, VARIANTS
from engine.difficulty import DIFFICULTY_ORDER

VARIANT_ORDER = VARIANTS
VARIANT_NAMES = {KLONDIKE: "Klondike", SPIDER: "Spider"}
BOOL_CHOICES = ("true", "false")

SLOT_COUNT = 3
AUTOSAVE_SLOT = 0
# Autosaves older than this are discarded on load.
AUTOSAVE_MAX_AGE_SEC = 24 * 60 * 60
SAVE_FORMAT_VERSION = "1.0"
