from __future__ import annotations

import logging
import math
import random
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

from engine.cards import (
    FOUNDATION,
    KLONDIKE,
    SPIDER,
    STOCK,
    SUITS,
    TABLEAU,
    WASTE,
    Card,
    decode_pile,
    encode_pile,
    last_of,
)
from engine.deck import Deal
from engine.difficulty import DEFAULT_DIFFICULTY, DIFFICULTIES, DifficultyManager
from engine.rules import VariantRules, rules_for

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100

FOUNDATION_POINTS = 10
WASTE_TO_TABLEAU_POINTS = 5
FOUNDATION_TO_TABLEAU_PENALTY = 15

MAX_TIME_BONUS = 1000
BONUS_FREE_MINUTES = 2
BONUS_DECAY_PER_MINUTE = 10


@dataclass(frozen=True, slots=True)
class MoveRecord:
    from_area: str
    from_index: int
    to_area: str
    to_index: int
    card: Card

    def to_dict(self) -> dict:
        return {
            "from": f"{self.from_area}-{self.from_index}",
            "to": f"{self.to_area}-{self.to_index}",
            "card": str(self.card),
        }


class GameState:
    """
    The whole table of one game: piles, counters, clock and undo history.

    Commands (move_cards, draw_from_stock, undo_last_move, auto_complete)
    either complete fully or return False without touching anything.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self.reset()

    def reset(self, variant: str = KLONDIKE):
        self.variant = variant
        self.rules: VariantRules = rules_for(variant)
        self.difficulty = DEFAULT_DIFFICULTY
        self.draw_count = 1
        self.spider_suits: int | None = None

        self.tableau: list[list[Card]] = [[] for _ in range(self.rules.tableau_count)]
        self.foundation: list[list[Card]] = [[] for _ in SUITS] if self.rules.has_foundation else []
        self.completed_sequences: list[list[Card]] = []
        self.stock: list[Card] = []
        self.waste: list[Card] = []

        self.moves = 0
        self.score = 0
        self.start_time: float | None = None
        self.end_time: float | None = None
        self.game_won = False
        self.game_lost = False
        self.stock_cycles = 0
        self.empty_columns_created = 0

        self.move_history: deque[dict] = deque(maxlen=HISTORY_LIMIT)
        self.auto_complete_available = False

    # Game setup ------------------------------------------------------

    def new_game(
        self,
        difficulty: str = DEFAULT_DIFFICULTY,
        variant: str = KLONDIKE,
        seed: int | None = None,
        rng: random.Random | None = None,
    ):
        if difficulty not in DIFFICULTIES:
            raise ValueError(f"Unknown difficulty: {difficulty}")
        rules_for(variant)
        manager = DifficultyManager(difficulty)
        deal = manager.create_game_deal(variant, rng if rng is not None else random.Random(seed))
        self.load_deal(deal, difficulty=difficulty, variant=variant)
        logger.info(
            "New %s game (%s): %d cards in tableau, %d in stock",
            variant,
            difficulty,
            sum(len(column) for column in self.tableau),
            len(self.stock),
        )

    def load_deal(self, deal: Deal, difficulty: str = DEFAULT_DIFFICULTY, variant: str = KLONDIKE):
        self.reset(variant)
        profile = DIFFICULTIES[difficulty]
        self.difficulty = difficulty
        self.draw_count = profile.draw_count
        if variant == SPIDER:
            self.spider_suits = profile.spider_suits
        self.tableau = deal.tableau
        if self.rules.has_foundation:
            self.foundation = deal.foundation or [[] for _ in SUITS]
        self.completed_sequences = deal.completed_sequences
        self.stock = deal.stock
        self.waste = deal.waste
        self.start_time = self.clock()
        self.check_auto_complete()

    # Pile access -----------------------------------------------------

    def get_card_array(self, area: str, index: int = 0) -> list[Card] | None:
        if area == TABLEAU:
            piles = self.tableau
        elif area == FOUNDATION:
            piles = self.foundation
        elif area == WASTE:
            return self.waste
        elif area == STOCK:
            return self.stock
        else:
            return None
        if not isinstance(index, int) or index < 0 or index >= len(piles):
            return None
        return piles[index]

    def total_cards(self) -> int:
        piles = [*self.tableau, *self.foundation, *self.completed_sequences, self.stock, self.waste]
        return sum(len(pile) for pile in piles)

    def expected_total_cards(self) -> int:
        return self.rules.expected_total_cards(self)

    def can_move_to_any_foundation(self, card: Card) -> bool:
        return any(card.can_place_on_foundation(pile) for pile in self.foundation)

    def foundation_index_for(self, card: Card) -> int | None:
        if not self.foundation:
            return None
        idx = card.suit_index
        if card.can_place_on_foundation(self.foundation[idx]):
            return idx
        return None

    # Commands --------------------------------------------------------

    def is_valid_move(self, cards: list[Card], to_area: str, to_index: int) -> bool:
        if not cards:
            return False
        if to_area == FOUNDATION:
            return self.rules.validate_foundation_move(cards, self.foundation, to_index)
        if to_area == TABLEAU:
            target = self.get_card_array(TABLEAU, to_index)
            if target is None:
                return False
            return self.rules.validate_tableau_move(cards, last_of(target))
        return False

    def move_cards(self, from_area: str, from_index: int, to_area: str, to_index: int, card_count: int = 1) -> bool:
        if self.game_won:
            return False
        source = self.get_card_array(from_area, from_index)
        target = self.get_card_array(to_area, to_index)
        if source is None or target is None or source is target:
            return False
        if to_area not in (TABLEAU, FOUNDATION):
            return False
        if not source or card_count < 1 or card_count > len(source):
            return False
        if from_area != TABLEAU and card_count != 1:
            return False

        cards = source[-card_count:]
        if not all(card.face_up for card in cards):
            return False
        if not self.is_valid_move(cards, to_area, to_index):
            return False

        self.record_snapshot()
        del source[-card_count:]
        target.extend(cards)

        if from_area == TABLEAU:
            if source and not source[-1].face_up:
                source[-1].face_up = True
            elif not source:
                self.empty_columns_created += 1

        self.update_score(from_area, to_area, card_count)
        self.moves += 1
        logger.debug(
            "Moved %d card(s) %s[%d] -> %s[%d]: %s",
            card_count,
            from_area,
            from_index,
            to_area,
            to_index,
            cards[0],
        )

        self.rules.after_move(self, [to_index] if to_area == TABLEAU else [])
        self.check_win_condition()
        self.check_auto_complete()
        return True

    def draw_from_stock(self) -> bool:
        if self.game_won:
            return False
        if self.variant == SPIDER:
            return self._deal_row()

        if not self.stock:
            if not self.waste:
                return False
            self.record_snapshot()
            self.stock = self.waste[::-1]
            self.waste = []
            for card in self.stock:
                card.face_up = False
            self.stock_cycles += 1
            logger.debug("Recycled waste into stock (cycle %d)", self.stock_cycles)
            self.check_auto_complete()
            return True

        self.record_snapshot()
        count = min(self.draw_count, len(self.stock))
        for _ in range(count):
            card = self.stock.pop()
            card.face_up = True
            self.waste.append(card)
        logger.debug("Drew %d card(s) from stock", count)
        self.check_auto_complete()
        return True

    def _deal_row(self) -> bool:
        if not self.stock:
            return False
        self.record_snapshot()
        count = min(len(self.tableau), len(self.stock))
        for idx in range(count):
            card = self.stock.pop()
            card.face_up = True
            self.tableau[idx].append(card)
        logger.debug("Dealt %d card(s) from stock", count)
        self.rules.after_move(self, range(count))
        self.check_win_condition()
        self.check_auto_complete()
        return True

    def auto_complete(self) -> list[MoveRecord]:
        if not self.auto_complete_available:
            return []

        moves = []
        made_move = True
        while made_move:
            made_move = False
            for col, column in enumerate(self.tableau):
                if not column:
                    continue
                top = column[-1]
                idx = self.foundation_index_for(top)
                if idx is not None and self.move_cards(TABLEAU, col, FOUNDATION, idx, 1):
                    moves.append(MoveRecord(TABLEAU, col, FOUNDATION, idx, top.clone()))
                    made_move = True

            if self.waste:
                top = self.waste[-1]
                idx = self.foundation_index_for(top)
                if idx is not None and self.move_cards(WASTE, 0, FOUNDATION, idx, 1):
                    moves.append(MoveRecord(WASTE, 0, FOUNDATION, idx, top.clone()))
                    made_move = True
        return moves

    def undo_last_move(self) -> bool:
        if not self.move_history:
            return False
        snapshot = self.move_history.pop()
        self._apply(snapshot)
        logger.debug("Undo: %d snapshot(s) left", len(self.move_history))
        return True

    def mark_lost(self):
        if self.game_won or self.game_lost:
            return
        self.game_lost = True
        self.end_time = self.clock()

    # Scoring & detection ---------------------------------------------

    def update_score(self, from_area: str, to_area: str, card_count: int):
        if to_area == FOUNDATION:
            self.score += FOUNDATION_POINTS * card_count
        elif from_area == WASTE and to_area == TABLEAU:
            self.score += WASTE_TO_TABLEAU_POINTS * card_count
        elif from_area == FOUNDATION and to_area == TABLEAU:
            self.score -= FOUNDATION_TO_TABLEAU_PENALTY * card_count

    def check_win_condition(self) -> bool:
        if self.game_won:
            return True
        if not self.rules.check_win(self):
            return False
        self.game_won = True
        self.end_time = self.clock()
        bonus = self.calculate_time_bonus()
        self.score += bonus
        logger.info("Game won in %d moves, time bonus %d, score %d", self.moves, bonus, self.score)
        return True

    def calculate_time_bonus(self) -> int:
        if self.start_time is None or self.end_time is None:
            return 0
        minutes = (self.end_time - self.start_time) / 60.0
        if minutes <= BONUS_FREE_MINUTES:
            return MAX_TIME_BONUS
        return max(0, MAX_TIME_BONUS - math.floor((minutes - BONUS_FREE_MINUTES) * BONUS_DECAY_PER_MINUTE))

    def check_auto_complete(self) -> bool:
        self.auto_complete_available = self.rules.compute_auto_complete(self)
        return self.auto_complete_available

    # Undo history ----------------------------------------------------

    def create_snapshot(self) -> dict:
        return self.to_dict()

    def record_snapshot(self):
        self.move_history.append(self.create_snapshot())

    # Queries ---------------------------------------------------------

    def get_game_stats(self) -> dict:
        current = self.end_time if self.end_time is not None else self.clock()
        game_time = int(round((current - self.start_time) * 1000)) if self.start_time is not None else 0
        multiplier = DIFFICULTIES[self.difficulty].score_multiplier
        return {
            "moves": self.moves,
            "score": self.score,
            "adjustedScore": math.floor(self.score * multiplier),
            "gameTime": game_time,
            "stockCycles": self.stock_cycles,
            "emptyColumnsCreated": self.empty_columns_created,
            "difficulty": self.difficulty,
            "variant": self.variant,
            "gameWon": self.game_won,
            "gameLost": self.game_lost,
        }

    def get_formatted_time(self) -> str:
        total_seconds = self.get_game_stats()["gameTime"] // 1000
        minutes, seconds = divmod(total_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"

    # Serialization ---------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "variant": self.variant,
            "difficulty": self.difficulty,
            "drawCount": self.draw_count,
            "spiderSuits": self.spider_suits,
            "tableau": [encode_pile(column) for column in self.tableau],
            "foundation": [encode_pile(pile) for pile in self.foundation],
            "completedSequences": [encode_pile(run) for run in self.completed_sequences],
            "stock": encode_pile(self.stock),
            "waste": encode_pile(self.waste),
            "moves": self.moves,
            "score": self.score,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "gameWon": self.game_won,
            "gameLost": self.game_lost,
            "stockCycles": self.stock_cycles,
            "emptyColumnsCreated": self.empty_columns_created,
            "autoCompleteAvailable": self.auto_complete_available,
        }

    def _apply(self, data: dict):
        variant = data["variant"]
        if variant != self.variant:
            self.variant = variant
            self.rules = rules_for(variant)
        self.difficulty = data["difficulty"]
        self.draw_count = int(data["drawCount"])
        self.spider_suits = data["spiderSuits"]
        self.tableau = [decode_pile(column) for column in data["tableau"]]
        self.foundation = [decode_pile(pile) for pile in data["foundation"]]
        self.completed_sequences = [decode_pile(run) for run in data["completedSequences"]]
        self.stock = decode_pile(data["stock"])
        self.waste = decode_pile(data["waste"])
        self.moves = int(data["moves"])
        self.score = int(data["score"])
        self.start_time = data["startTime"]
        self.end_time = data["endTime"]
        self.game_won = bool(data["gameWon"])
        self.game_lost = bool(data["gameLost"])
        self.stock_cycles = int(data["stockCycles"])
        self.empty_columns_created = int(data["emptyColumnsCreated"])
        self.auto_complete_available = bool(data["autoCompleteAvailable"])

    @staticmethod
    def from_dict(data: dict, clock: Callable[[], float] = time.time) -> GameState:
        state = GameState(clock=clock)
        state._apply(data)
        return state
