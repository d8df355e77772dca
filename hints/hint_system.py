from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from engine.cards import (
    ACE,
    FOUNDATION,
    KING,
    KLONDIKE,
    NUM_PER_SUIT,
    SPIDER,
    STOCK,
    SUITS,
    TABLEAU,
    WASTE,
    Card,
)
from engine.deck import looks_winnable, spider_run_count

if TYPE_CHECKING:
    from engine.game_state import GameState

HINT_COOLDOWN = 2.0

TABLEAU_TO_FOUNDATION = "tableau-to-foundation"
WASTE_TO_FOUNDATION = "waste-to-foundation"
WASTE_TO_TABLEAU = "waste-to-tableau"
TABLEAU_TO_TABLEAU = "tableau-to-tableau"
DRAW_STOCK = "draw-stock"
DEAL_STOCK = "deal-stock"
STOCK_KINDS = (DRAW_STOCK, DEAL_STOCK)

PRIORITY_TABLEAU_TO_FOUNDATION = 10
PRIORITY_WASTE_TO_FOUNDATION = 9
PRIORITY_WASTE_TO_EMPTY = 7
PRIORITY_WASTE_TO_TABLEAU = 5
PRIORITY_TABLEAU_BASE = 3
PRIORITY_STOCK = 1
BONUS_REVEAL = 3
BONUS_EMPTY_COLUMN = 2
BONUS_SAME_SUIT = 1

LONG_RUN_LENGTH = 4


@dataclass(frozen=True, slots=True)
class HintMove:
    """A legal move suggestion, ranked by heuristic priority."""

    kind: str
    from_area: str
    from_index: int
    to_area: str
    to_index: int
    priority: int
    card_count: int = 1
    card: Optional[Card] = None
    # Discovery order, used to break priority ties.
    order: int = 0

    def sort_key(self) -> tuple[int, int]:
        return -self.priority, self.order

    def to_notation(self) -> str:
        if self.kind in STOCK_KINDS:
            return f"{self.kind.upper()}"
        return (
            f"{self.from_area}{self.from_index}->{self.to_area}{self.to_index}"
            f" x{self.card_count} [{self.card}] p={self.priority}"
        )


def _klondike_link(lower: Card, upper: Card) -> bool:
    return upper.can_place_on_tableau(lower, KLONDIKE)


def _spider_link(lower: Card, upper: Card) -> bool:
    return upper.suit == lower.suit and upper.rank == lower.rank - 1


def movable_starts(column: list[Card], linked: Callable[[Card, Card], bool]) -> list[int]:
    """Return all indices that start a movable face-up run ending at the top."""
    n = len(column)
    if n == 0 or not column[-1].face_up:
        return []
    starts = [n - 1]
    for idx in range(n - 2, -1, -1):
        lower = column[idx]
        if not lower.face_up or not linked(lower, column[idx + 1]):
            break
        starts.append(idx)
    starts.reverse()
    return starts


def _exposes_hidden(column: list[Card], start: int) -> bool:
    return start > 0 and not column[start - 1].face_up


class HintSystem:
    def __init__(self, clock: Callable[[], float] = time.monotonic, cooldown: float = HINT_COOLDOWN):
        self.clock = clock
        self.cooldown = cooldown
        self.last_hint_time: Optional[float] = None

    def find_available_moves(self, state: GameState) -> list[HintMove]:
        if state.variant == SPIDER:
            moves = self._spider_moves(state)
        else:
            moves = self._klondike_moves(state)
        return sorted(moves, key=HintMove.sort_key)

    def _klondike_moves(self, state: GameState) -> list[HintMove]:
        moves: list[HintMove] = []

        def add(**kwargs):
            moves.append(HintMove(order=len(moves), **kwargs))

        for col, column in enumerate(state.tableau):
            if not column or not column[-1].face_up:
                continue
            top = column[-1]
            for f_idx, pile in enumerate(state.foundation):
                if f_idx == top.suit_index and top.can_place_on_foundation(pile):
                    add(
                        kind=TABLEAU_TO_FOUNDATION,
                        from_area=TABLEAU,
                        from_index=col,
                        to_area=FOUNDATION,
                        to_index=f_idx,
                        priority=PRIORITY_TABLEAU_TO_FOUNDATION,
                        card=top.clone(),
                    )

        if state.waste:
            top = state.waste[-1]
            for f_idx, pile in enumerate(state.foundation):
                if f_idx == top.suit_index and top.can_place_on_foundation(pile):
                    add(
                        kind=WASTE_TO_FOUNDATION,
                        from_area=WASTE,
                        from_index=0,
                        to_area=FOUNDATION,
                        to_index=f_idx,
                        priority=PRIORITY_WASTE_TO_FOUNDATION,
                        card=top.clone(),
                    )
            for col, column in enumerate(state.tableau):
                target = column[-1] if column else None
                if top.can_place_on_tableau(target, KLONDIKE):
                    add(
                        kind=WASTE_TO_TABLEAU,
                        from_area=WASTE,
                        from_index=0,
                        to_area=TABLEAU,
                        to_index=col,
                        priority=PRIORITY_WASTE_TO_TABLEAU if column else PRIORITY_WASTE_TO_EMPTY,
                        card=top.clone(),
                    )

        for from_col, column in enumerate(state.tableau):
            for start in movable_starts(column, _klondike_link):
                moving = column[start]
                for to_col, dest in enumerate(state.tableau):
                    if to_col == from_col:
                        continue
                    # Shifting a whole column into an empty one changes nothing.
                    if start == 0 and not dest:
                        continue
                    if not moving.can_place_on_tableau(dest[-1] if dest else None, KLONDIKE):
                        continue
                    priority = PRIORITY_TABLEAU_BASE
                    if _exposes_hidden(column, start):
                        priority += BONUS_REVEAL
                    if not dest and moving.rank == KING:
                        priority += BONUS_EMPTY_COLUMN
                    add(
                        kind=TABLEAU_TO_TABLEAU,
                        from_area=TABLEAU,
                        from_index=from_col,
                        to_area=TABLEAU,
                        to_index=to_col,
                        priority=priority,
                        card_count=len(column) - start,
                        card=moving.clone(),
                    )

        if state.stock or state.waste:
            add(
                kind=DRAW_STOCK,
                from_area=STOCK,
                from_index=0,
                to_area=WASTE,
                to_index=0,
                priority=PRIORITY_STOCK,
            )
        return moves

    def _spider_moves(self, state: GameState) -> list[HintMove]:
        moves: list[HintMove] = []
        for from_col, column in enumerate(state.tableau):
            for start in movable_starts(column, _spider_link):
                moving = column[start]
                for to_col, dest in enumerate(state.tableau):
                    if to_col == from_col:
                        continue
                    if start == 0 and not dest:
                        continue
                    top = dest[-1] if dest else None
                    if not moving.can_place_on_tableau(top, SPIDER):
                        continue
                    priority = PRIORITY_TABLEAU_BASE
                    if _exposes_hidden(column, start):
                        priority += BONUS_REVEAL
                    if start == 0:
                        priority += BONUS_EMPTY_COLUMN
                    if top is not None and top.suit == moving.suit:
                        priority += BONUS_SAME_SUIT
                    moves.append(
                        HintMove(
                            kind=TABLEAU_TO_TABLEAU,
                            from_area=TABLEAU,
                            from_index=from_col,
                            to_area=TABLEAU,
                            to_index=to_col,
                            priority=priority,
                            card_count=len(column) - start,
                            card=moving.clone(),
                            order=len(moves),
                        )
                    )

        if state.stock:
            moves.append(
                HintMove(
                    kind=DEAL_STOCK,
                    from_area=STOCK,
                    from_index=0,
                    to_area=TABLEAU,
                    to_index=0,
                    priority=PRIORITY_STOCK,
                    card_count=min(len(state.stock), len(state.tableau)),
                    order=len(moves),
                )
            )
        return moves

    def get_best_move(self, state: GameState) -> Optional[HintMove]:
        now = self.clock()
        if self.last_hint_time is not None and now - self.last_hint_time < self.cooldown:
            return None
        moves = self.find_available_moves(state)
        self.last_hint_time = now
        return moves[0] if moves else None

    def get_all_moves(self, state: GameState) -> list[HintMove]:
        return self.find_available_moves(state)

    def reset_cooldown(self):
        self.last_hint_time = None

    def is_game_stuck(self, state: GameState) -> bool:
        meaningful = [move for move in self.find_available_moves(state) if move.kind not in STOCK_KINDS]
        return not meaningful and not state.stock

    def analyze_game_state(self, state: GameState) -> dict:
        moves = self.find_available_moves(state)
        hidden_aces = 0
        hidden_cards = 0
        for column in state.tableau:
            for card in column[:-1]:
                if not card.face_up:
                    hidden_cards += 1
                    if card.rank == ACE:
                        hidden_aces += 1
        empty_columns = sum(1 for column in state.tableau if not column)

        analysis = {
            "availableMoves": len(moves),
            "buriedAces": hidden_aces,
            "hiddenCards": hidden_cards,
            "emptyColumns": empty_columns,
            "suggestions": [],
        }
        if state.variant == SPIDER:
            self._analyze_spider(state, moves, analysis)
        else:
            self._analyze_klondike(state, analysis)
        return analysis

    @staticmethod
    def _analyze_klondike(state: GameState, analysis: dict):
        exposed_kings = 0
        for column in state.tableau:
            if column and column[-1].face_up and column[-1].rank == KING:
                exposed_kings += 1
        foundation_cards = sum(len(pile) for pile in state.foundation)
        progress = foundation_cards / (NUM_PER_SUIT * len(SUITS)) * 100.0
        analysis["exposedKings"] = exposed_kings
        analysis["foundationProgress"] = progress
        analysis["likelyWinnable"] = looks_winnable(state.tableau, state.stock)

        suggestions = analysis["suggestions"]
        if analysis["emptyColumns"] > 0 and exposed_kings == 0:
            suggestions.append("Try to expose a King to fill empty columns")
        if analysis["buriedAces"] > 2:
            suggestions.append("Focus on revealing buried Aces")
        if not analysis["likelyWinnable"]:
            suggestions.append("Several Aces are still buried or in the stock; this deal may not be winnable")
        if progress < 20 and analysis["availableMoves"] > 5:
            suggestions.append("Build foundations when possible for easier endgame")

    @staticmethod
    def _analyze_spider(state: GameState, moves: list[HintMove], analysis: dict):
        potential_runs = 0
        for column in state.tableau:
            length = 1
            for i in range(1, len(column)):
                lower = column[i - 1]
                upper = column[i]
                if lower.face_up and upper.face_up and _spider_link(lower, upper):
                    length += 1
                    continue
                if length >= LONG_RUN_LENGTH:
                    potential_runs += 1
                length = 1
            if column and length >= LONG_RUN_LENGTH:
                potential_runs += 1

        expected = spider_run_count(state.spider_suits or 1)
        progress = len(state.completed_sequences) / expected * 100.0
        analysis["potentialRuns"] = potential_runs
        analysis["sequenceProgress"] = progress

        suggestions = analysis["suggestions"]
        tableau_moves = sum(1 for move in moves if move.kind not in STOCK_KINDS)
        if tableau_moves == 0 and state.stock:
            suggestions.append("No moves left on the table, deal a new row from the stock")
        if analysis["emptyColumns"] > 0:
            suggestions.append("Use empty columns to sort cards into same-suit runs")
        if potential_runs > 0:
            suggestions.append("Extend your longest same-suit runs toward a full King-to-Ace sequence")
        if analysis["hiddenCards"] > 20:
            suggestions.append("Work on the columns with the most face-down cards")
