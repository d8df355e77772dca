from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from engine.cards import (
    ACE,
    KING,
    KLONDIKE,
    NUM_PER_SUIT,
    SPIDER,
    SUITS,
    Card,
    is_klondike_sequence,
    is_spider_sequence,
)
from engine.deck import KLONDIKE_COLUMNS, SPIDER_COLUMNS, spider_run_count

if TYPE_CHECKING:
    from engine.game_state import GameState

logger = logging.getLogger(__name__)

SPIDER_RUN_BONUS = 100


class VariantRules:
    """
    Rules shared by every variant. GameState picks one instance at game
    creation and routes all variant-specific decisions through it.
    """

    name = ""
    tableau_count = 0
    has_foundation = False
    has_waste = False

    def is_valid_sequence(self, cards: list[Card]) -> bool:
        raise NotImplementedError

    def can_place_on_tableau(self, card: Card, target: Card | None) -> bool:
        return card.can_place_on_tableau(target, self.name)

    def validate_tableau_move(self, cards: list[Card], target_top: Card | None) -> bool:
        if not cards:
            return False
        if len(cards) > 1 and not self.is_valid_sequence(cards):
            return False
        return self.can_place_on_tableau(cards[0], target_top)

    def validate_foundation_move(self, cards: list[Card], foundation: list[list[Card]], index: int) -> bool:
        return False

    def expected_total_cards(self, state: GameState) -> int:
        raise NotImplementedError

    def check_win(self, state: GameState) -> bool:
        raise NotImplementedError

    def compute_auto_complete(self, state: GameState) -> bool:
        return False

    def after_move(self, state: GameState, columns: Iterable[int]) -> int:
        """Post-move housekeeping on the touched columns; returns runs collected."""
        return 0


class KlondikeRules(VariantRules):
    name = KLONDIKE
    tableau_count = KLONDIKE_COLUMNS
    has_foundation = True
    has_waste = True

    def is_valid_sequence(self, cards):
        return is_klondike_sequence(cards)

    def validate_foundation_move(self, cards, foundation, index):
        if len(cards) != 1:
            return False
        if index < 0 or index >= len(foundation):
            return False
        card = cards[0]
        # Each foundation pile is bound to one suit, even while empty.
        if card.suit_index != index:
            return False
        return card.can_place_on_foundation(foundation[index])

    def expected_total_cards(self, state):
        return NUM_PER_SUIT * len(SUITS)

    def check_win(self, state):
        return sum(len(pile) for pile in state.foundation) == NUM_PER_SUIT * len(SUITS)

    def compute_auto_complete(self, state):
        if state.stock:
            return False
        for column in state.tableau:
            for card in column:
                if not card.face_up:
                    return False
        return all(state.can_move_to_any_foundation(card) for card in state.waste)


class SpiderRules(VariantRules):
    name = SPIDER
    tableau_count = SPIDER_COLUMNS

    def is_valid_sequence(self, cards):
        return is_spider_sequence(cards)

    def expected_total_cards(self, state):
        return spider_run_count(state.spider_suits) * NUM_PER_SUIT

    def check_win(self, state):
        return len(state.completed_sequences) >= spider_run_count(state.spider_suits)

    @staticmethod
    def completed_run_at_top(column: list[Card]) -> bool:
        if len(column) < NUM_PER_SUIT:
            return False
        run = column[-NUM_PER_SUIT:]
        if run[0].rank != KING or run[-1].rank != ACE:
            return False
        if not all(card.face_up for card in run):
            return False
        return is_spider_sequence(run)

    def after_move(self, state, columns):
        collected = 0
        for idx in columns:
            column = state.tableau[idx]
            while self.completed_run_at_top(column):
                run = column[-NUM_PER_SUIT:]
                del column[-NUM_PER_SUIT:]
                state.completed_sequences.append(run)
                state.score += SPIDER_RUN_BONUS
                collected += 1
                logger.debug("Collected %s run from column %d", run[0].suit, idx)
                if column and not column[-1].face_up:
                    column[-1].face_up = True
        return collected


_RULES = {
    KLONDIKE: KlondikeRules(),
    SPIDER: SpiderRules(),
}


def rules_for(variant: str) -> VariantRules:
    try:
        return _RULES[variant]
    except KeyError:
        raise ValueError(f"Unknown variant: {variant}") from None
