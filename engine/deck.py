from __future__ import annotations

import random
from dataclasses import dataclass, field

from engine.cards import ACE, KING, NUM_PER_SUIT, SUITS, Card

KLONDIKE_COLUMNS = 7
SPIDER_COLUMNS = 10
SPIDER_SUIT_ORDER = ("spades", "hearts", "clubs", "diamonds")
SPIDER_SUIT_COUNTS = (1, 2, 4)

WINNABLE_MIN_STEPS = 15
WINNABLE_MAX_STEPS = 25
WINNABLE_MAX_CARDS_PER_STEP = 3
HARD_STOCK_RANK = 3
HARD_BURY_RANK = 2
HARD_BURY_DEPTH = 2
WINNABLE_MAX_BURIED_ACES = 2


def ceil_div(x, y):
    return (x + y - 1) // y


def buried_ace_count(tableau, stock) -> int:
    """Face-down Aces below the tableau tops plus every Ace still in the stock."""
    count = sum(1 for column in tableau for card in column[:-1] if not card.face_up and card.rank == ACE)
    return count + sum(1 for card in stock if card.rank == ACE)


def looks_winnable(tableau, stock) -> bool:
    return buried_ace_count(tableau, stock) <= WINNABLE_MAX_BURIED_ACES


def spider_run_count(suits: int) -> int:
    """Number of King-to-Ace runs in a Spider pool."""
    return 4 if suits == 1 else 8


@dataclass(frozen=True, slots=True)
class ConstructionStep:
    """One foundation->tableau step taken while building a winnable deal."""

    suit_index: int
    column: int
    cards: tuple[Card, ...]


@dataclass(slots=True)
class Deal:
    tableau: list[list[Card]]
    stock: list[Card]
    foundation: list[list[Card]] = field(default_factory=list)
    waste: list[Card] = field(default_factory=list)
    completed_sequences: list[list[Card]] = field(default_factory=list)
    construction: tuple[ConstructionStep, ...] = ()

    def card_count(self) -> int:
        piles = [*self.tableau, *self.foundation, *self.completed_sequences, self.stock, self.waste]
        return sum(len(pile) for pile in piles)


def build_spider_pool(suits: int) -> list[Card]:
    if suits not in SPIDER_SUIT_COUNTS:
        raise ValueError(f"Unsupported spider suit count: {suits}")
    runs = spider_run_count(suits)
    cards = []
    for i in range(suits):
        count = ceil_div(runs, suits - i)
        runs -= count
        for _ in range(count):
            for rank in range(ACE, KING + 1):
                cards.append(Card(rank, SPIDER_SUIT_ORDER[i]))
    return cards


def set_tableau_face_states(tableau: list[list[Card]]):
    for column in tableau:
        for i, card in enumerate(column):
            card.face_up = i == len(column) - 1


class Deck:
    """A shuffled card pool and the dealers that lay it out."""

    def __init__(self, seed: int | None = None, rng: random.Random | None = None):
        self.rng = rng if rng is not None else random.Random(seed)
        self.cards: list[Card] = []
        self.create_deck()

    def create_deck(self):
        self.cards = [Card(rank, suit) for suit in SUITS for rank in range(ACE, KING + 1)]

    def shuffle(self):
        # Fisher-Yates.
        cards = self.cards
        for i in range(len(cards) - 1, 0, -1):
            j = self.rng.randrange(i + 1)
            cards[i], cards[j] = cards[j], cards[i]

    def standard_deal(self) -> Deal:
        self.create_deck()
        self.shuffle()
        cards = self.cards
        tableau = [[] for _ in range(KLONDIKE_COLUMNS)]
        idx = 0
        for col in range(KLONDIKE_COLUMNS):
            for row in range(col + 1):
                card = cards[idx]
                card.face_up = row == col
                tableau[col].append(card)
                idx += 1
        stock = cards[idx:]
        for card in stock:
            card.face_up = False
        return Deal(tableau=tableau, stock=stock, foundation=[[] for _ in SUITS])

    def winnable_deal(self) -> Deal:
        rng = self.rng
        foundation = [[Card(rank, suit, True) for rank in range(ACE, KING + 1)] for suit in SUITS]
        tableau = [[] for _ in range(KLONDIKE_COLUMNS)]
        construction = []

        for _ in range(rng.randint(WINNABLE_MIN_STEPS, WINNABLE_MAX_STEPS)):
            suit_index = rng.randrange(len(SUITS))
            column = rng.randrange(KLONDIKE_COLUMNS)
            count = rng.randint(1, WINNABLE_MAX_CARDS_PER_STEP)
            pile = foundation[suit_index]
            if not pile:
                continue
            moved = []
            while pile and len(moved) < count:
                card = pile.pop()
                tableau[column].append(card)
                moved.append(card.clone())
            construction.append(ConstructionStep(suit_index=suit_index, column=column, cards=tuple(moved)))

        set_tableau_face_states(tableau)

        remaining = [card for pile in foundation for card in pile]
        for i in range(len(remaining) - 1, 0, -1):
            j = rng.randrange(i + 1)
            remaining[i], remaining[j] = remaining[j], remaining[i]
        for card in remaining:
            card.face_up = False

        self.cards = [card for column in tableau for card in column] + remaining
        return Deal(
            tableau=tableau,
            stock=remaining,
            foundation=[[] for _ in SUITS],
            construction=tuple(construction),
        )

    def hard_deal(self) -> Deal:
        deal = self.standard_deal()
        self.bury_important_cards(deal.tableau, deal.stock)
        return deal

    @staticmethod
    def bury_important_cards(tableau: list[list[Card]], stock: list[Card]):
        # Bottom of the stock is index 0, so low cards come out last.
        important = [card for card in stock if card.rank <= HARD_STOCK_RANK]
        others = [card for card in stock if card.rank > HARD_STOCK_RANK]
        stock[:] = important + others

        for column in tableau:
            if len(column) <= 1:
                continue
            for i in range(len(column) - 1, 0, -1):
                card = column[i]
                if not (card.face_up and card.rank <= HARD_BURY_RANK):
                    continue
                column.pop(i)
                column.insert(max(0, i - HARD_BURY_DEPTH), card)
                card.face_up = False
                column[-1].face_up = True
                break

    def spider_deal(self, suits: int) -> Deal:
        self.cards = build_spider_pool(suits)
        self.shuffle()
        stock = list(self.cards)
        stock_rows = 5 if len(stock) > NUM_PER_SUIT * 4 else 2
        dealt = len(stock) - stock_rows * SPIDER_COLUMNS

        tableau = [[] for _ in range(SPIDER_COLUMNS)]
        dest = 0
        while dealt > 0:
            card = stock.pop()
            card.face_up = False
            tableau[dest].append(card)
            dest = (dest + 1) % SPIDER_COLUMNS
            dealt -= 1
        for card in stock:
            card.face_up = False
        for column in tableau:
            if column:
                column[-1].face_up = True
        return Deal(tableau=tableau, stock=stock)
