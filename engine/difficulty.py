from __future__ import annotations

import math
import random
from dataclasses import dataclass

from engine.cards import KLONDIKE, SPIDER
from engine.deck import Deal, Deck
from hints.hint_system import HintSystem

EASY = "easy"
MEDIUM = "medium"
HARD = "hard"
DIFFICULTY_ORDER = (EASY, MEDIUM, HARD)
DEFAULT_DIFFICULTY = MEDIUM

FEATURES = ("winnable_deals", "show_hints", "auto_complete")


@dataclass(frozen=True, slots=True)
class DifficultyProfile:
    name: str
    description: str
    draw_count: int
    winnable_deals: bool
    show_hints: bool
    auto_complete: bool
    # -1 means unlimited.
    undo_limit: int
    score_multiplier: float
    spider_suits: int


DIFFICULTIES = {
    EASY: DifficultyProfile(
        name="Easy",
        description="Winnable deals with helpful features",
        draw_count=1,
        winnable_deals=True,
        show_hints=True,
        auto_complete=True,
        undo_limit=-1,
        score_multiplier=0.8,
        spider_suits=1,
    ),
    MEDIUM: DifficultyProfile(
        name="Medium",
        description="Classic rules with random deals",
        draw_count=1,
        winnable_deals=False,
        show_hints=True,
        auto_complete=True,
        undo_limit=10,
        score_multiplier=1.0,
        spider_suits=2,
    ),
    HARD: DifficultyProfile(
        name="Hard",
        description="Draw three with low cards buried",
        draw_count=3,
        winnable_deals=False,
        show_hints=False,
        auto_complete=False,
        undo_limit=3,
        score_multiplier=1.5,
        spider_suits=4,
    ),
}


class DifficultyManager:
    def __init__(self, difficulty: str = DEFAULT_DIFFICULTY):
        self.difficulties = DIFFICULTIES
        self.current_difficulty = DEFAULT_DIFFICULTY
        self.set_difficulty(difficulty)
        self.hint_system = HintSystem()

    def set_difficulty(self, difficulty: str) -> bool:
        if difficulty in self.difficulties:
            self.current_difficulty = difficulty
            return True
        return False

    def get_current_difficulty(self) -> DifficultyProfile:
        return self.difficulties[self.current_difficulty]

    def get_all_difficulties(self) -> dict[str, DifficultyProfile]:
        return dict(self.difficulties)

    def is_feature_enabled(self, feature: str) -> bool:
        if feature not in FEATURES:
            return False
        return bool(getattr(self.get_current_difficulty(), feature))

    def get_draw_count(self) -> int:
        return self.get_current_difficulty().draw_count

    def get_score_multiplier(self) -> float:
        return self.get_current_difficulty().score_multiplier

    def get_undo_limit(self) -> int:
        return self.get_current_difficulty().undo_limit

    def get_spider_suits(self) -> int:
        return self.get_current_difficulty().spider_suits

    def calculate_score(self, base_score: int) -> int:
        return math.floor(base_score * self.get_score_multiplier())

    def can_show_hints(self) -> bool:
        return self.is_feature_enabled("show_hints")

    def can_auto_complete(self) -> bool:
        return self.is_feature_enabled("auto_complete")

    def can_undo(self, current_undo_count: int) -> bool:
        limit = self.get_undo_limit()
        return limit == -1 or current_undo_count < limit

    def create_game_deal(self, variant: str = KLONDIKE, rng: random.Random | None = None) -> Deal:
        deck = Deck(rng=rng)
        if variant == SPIDER:
            return deck.spider_deal(self.get_spider_suits())
        if variant != KLONDIKE:
            raise ValueError(f"Unknown variant: {variant}")
        if self.is_feature_enabled("winnable_deals"):
            return deck.winnable_deal()
        if self.current_difficulty == HARD:
            return deck.hard_deal()
        return deck.standard_deal()
