from __future__ import annotations

KLONDIKE = "klondike"
SPIDER = "spider"
VARIANTS = (KLONDIKE, SPIDER)

TABLEAU = "tableau"
FOUNDATION = "foundation"
WASTE = "waste"
STOCK = "stock"

ACE = 1
JACK = 11
QUEEN = 12
KING = 13
NUM_PER_SUIT = 13

# Foundation pile i holds SUITS[i].
SUITS = ("hearts", "diamonds", "clubs", "spades")
RED_SUITS = ("hearts", "diamonds")
SUIT_SYMBOLS = {"hearts": "♥", "diamonds": "♦", "clubs": "♣", "spades": "♠"}
RANK_NAMES = {ACE: "A", JACK: "J", QUEEN: "Q", KING: "K"}


def last_of(lst):
    return lst[-1] if lst else None


class Card:
    """A playing card; rank and suit are fixed, orientation is not."""

    __slots__ = ("rank", "suit", "face_up")

    def __init__(self, rank: int, suit: str, face_up: bool = False):
        if not ACE <= rank <= KING:
            raise ValueError(f"Invalid rank: {rank}")
        if suit not in SUITS:
            raise ValueError(f"Invalid suit: {suit}")
        self.rank = rank
        self.suit = suit
        self.face_up = face_up

    @property
    def id(self) -> str:
        return f"{self.suit}-{self.rank}"

    @property
    def rank_name(self) -> str:
        return RANK_NAMES.get(self.rank, str(self.rank))

    @property
    def suit_symbol(self) -> str:
        return SUIT_SYMBOLS[self.suit]

    @property
    def suit_index(self) -> int:
        return SUITS.index(self.suit)

    def is_red(self) -> bool:
        return self.suit in RED_SUITS

    def flip(self):
        self.face_up = not self.face_up

    def clone(self) -> Card:
        return Card(self.rank, self.suit, self.face_up)

    def can_place_on_tableau(self, other: Card | None, variant: str = KLONDIKE) -> bool:
        if variant == SPIDER:
            if other is None:
                return True
            return self.rank == other.rank - 1
        if other is None:
            return self.rank == KING
        return self.is_red() != other.is_red() and self.rank == other.rank - 1

    def can_place_on_foundation(self, pile: list[Card]) -> bool:
        if not pile:
            return self.rank == ACE
        top = pile[-1]
        return self.suit == top.suit and self.rank == top.rank + 1

    def game_str(self) -> str:
        if not self.face_up:
            return "---"
        return f"{self.rank_name:>2}{self.suit_symbol}"

    def to_dict(self) -> dict:
        return {"suit": self.suit, "rank": self.rank, "faceUp": self.face_up, "id": self.id}

    @staticmethod
    def from_dict(data: dict) -> Card:
        return Card(int(data["rank"]), str(data["suit"]), bool(data["faceUp"]))

    def __eq__(self, other):
        if not isinstance(other, Card):
            return NotImplemented
        return (self.rank, self.suit, self.face_up) == (other.rank, other.suit, other.face_up)

    def __hash__(self):
        return hash((self.rank, self.suit))

    def __str__(self):
        text = f"{self.rank_name}{self.suit_symbol}"
        if not self.face_up:
            return text + " (face down)"
        return text

    def __repr__(self):
        return f"Card({self.rank}, {self.suit!r}, face_up={self.face_up})"


def encode_pile(pile: list[Card]) -> list[dict]:
    return [card.to_dict() for card in pile]


def decode_pile(data: list[dict]) -> list[Card]:
    return [Card.from_dict(item) for item in data]


def is_klondike_sequence(cards: list[Card]) -> bool:
    for i in range(1, len(cards)):
        lower = cards[i - 1]
        upper = cards[i]
        if upper.is_red() == lower.is_red() or upper.rank != lower.rank - 1:
            return False
    return True


def is_spider_sequence(cards: list[Card]) -> bool:
    for i in range(1, len(cards)):
        lower = cards[i - 1]
        upper = cards[i]
        if upper.suit != lower.suit or upper.rank != lower.rank - 1:
            return False
    return True
