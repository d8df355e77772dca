import unittest

from engine.cards import Card
from engine.game_state import GameState
from hints.hint_system import STOCK_KINDS, HintSystem


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def visible(rank, suit):
    return Card(rank, suit, True)


def hidden(rank, suit):
    return Card(rank, suit, False)


def apply_hint(state, move):
    if move.kind in STOCK_KINDS:
        return state.draw_from_stock()
    return state.move_cards(move.from_area, move.from_index, move.to_area, move.to_index, move.card_count)


def spade_run(low=1, high=13):
    return [visible(rank, "spades") for rank in range(high, low - 1, -1)]


def make_spider(tableau=None, stock=None, suits=2, clock=None):
    state = GameState(clock=clock or FakeClock())
    state.reset("spider")
    state.spider_suits = suits
    state.start_time = state.clock()
    tableau = list(tableau or [])
    tableau += [[] for _ in range(10 - len(tableau))]
    state.tableau = tableau
    state.stock = stock or []
    return state


class SpiderDealTestCase(unittest.TestCase):
    def test_new_game_uses_profile_suit_count(self):
        expectations = {"easy": (1, 52, 20), "medium": (2, 104, 50), "hard": (4, 104, 50)}
        for difficulty, (suits, total, stock) in expectations.items():
            with self.subTest(difficulty=difficulty):
                state = GameState(clock=FakeClock())
                state.new_game(difficulty, "spider", seed=3)
                self.assertEqual(suits, state.spider_suits)
                self.assertEqual(10, len(state.tableau))
                self.assertEqual([], state.foundation)
                self.assertEqual(total, state.total_cards())
                self.assertEqual(total, state.expected_total_cards())
                self.assertEqual(stock, len(state.stock))


class SpiderMoveTestCase(unittest.TestCase):
    def test_single_card_ignores_suit(self):
        state = make_spider(tableau=[[visible(5, "hearts")], [visible(6, "spades")]])
        self.assertTrue(state.move_cards("tableau", 0, "tableau", 1, 1))
        self.assertEqual(0, state.score)

    def test_multi_card_needs_same_suit(self):
        state = make_spider(tableau=[[visible(7, "spades"), visible(6, "hearts")], [visible(8, "spades")]])
        self.assertFalse(state.move_cards("tableau", 0, "tableau", 1, 2))

        state = make_spider(tableau=[[visible(7, "spades"), visible(6, "spades")], [visible(8, "hearts")]])
        self.assertTrue(state.move_cards("tableau", 0, "tableau", 1, 2))

    def test_empty_column_takes_any_card(self):
        state = make_spider(tableau=[[visible(3, "hearts"), visible(12, "spades")]])
        self.assertTrue(state.move_cards("tableau", 0, "tableau", 5, 1))
        self.assertEqual([(12, "spades")], [(c.rank, c.suit) for c in state.tableau[5]])

    def test_no_foundation_moves(self):
        state = make_spider(tableau=[[visible(1, "spades")]])
        self.assertFalse(state.move_cards("tableau", 0, "foundation", 0, 1))

    def test_completed_run_is_collected(self):
        column = [hidden(3, "hearts")] + spade_run(low=2)
        state = make_spider(tableau=[column, [visible(1, "spades")]])
        self.assertTrue(state.move_cards("tableau", 1, "tableau", 0, 1))
        self.assertEqual(1, len(state.completed_sequences))
        self.assertEqual(list(range(13, 0, -1)), [c.rank for c in state.completed_sequences[0]])
        self.assertEqual([(3, "hearts")], [(c.rank, c.suit) for c in state.tableau[0]])
        self.assertTrue(state.tableau[0][0].face_up)
        self.assertEqual(100, state.score)
        self.assertEqual(1, state.empty_columns_created)
        self.assertFalse(state.game_won)

    def test_last_run_wins(self):
        state = make_spider(tableau=[spade_run(low=2), [visible(1, "spades")]], suits=1)
        state.completed_sequences = [spade_run() for _ in range(3)]
        self.assertTrue(state.move_cards("tableau", 1, "tableau", 0, 1))
        self.assertTrue(state.game_won)
        self.assertEqual(100 + 1000, state.score)

    def test_no_auto_complete(self):
        state = make_spider(tableau=[[visible(1, "spades")]])
        state.check_auto_complete()
        self.assertFalse(state.auto_complete_available)
        self.assertEqual([], state.auto_complete())


class SpiderStockTestCase(unittest.TestCase):
    def test_deal_row_puts_one_card_on_each_column(self):
        tableau = [[visible(13, "clubs")] for _ in range(10)]
        stock = [hidden(rank, "hearts") for rank in range(1, 13)]
        state = make_spider(tableau=tableau, stock=stock)
        before = state.to_dict()
        self.assertTrue(state.draw_from_stock())
        self.assertEqual(2, len(state.stock))
        self.assertTrue(all(len(column) == 2 and column[-1].face_up for column in state.tableau))
        self.assertEqual(12, state.tableau[0][-1].rank)
        self.assertEqual(0, state.moves)
        self.assertTrue(state.undo_last_move())
        self.assertEqual(before, state.to_dict())

    def test_deal_row_allows_empty_columns(self):
        stock = [hidden(rank, "hearts") for rank in range(1, 11)]
        state = make_spider(stock=stock)
        self.assertTrue(state.draw_from_stock())
        self.assertEqual([], state.stock)
        self.assertTrue(all(len(column) == 1 for column in state.tableau))

    def test_deal_row_can_complete_run(self):
        stock = [hidden(5, "hearts") for _ in range(9)] + [hidden(1, "spades")]
        tableau = [spade_run(low=2)] + [[visible(13, "hearts")] for _ in range(9)]
        state = make_spider(tableau=tableau, stock=stock)
        self.assertTrue(state.draw_from_stock())
        self.assertEqual(1, len(state.completed_sequences))
        self.assertEqual([], state.tableau[0])
        self.assertEqual(100, state.score)

    def test_empty_stock(self):
        state = make_spider()
        self.assertFalse(state.draw_from_stock())


class SpiderPlayTestCase(unittest.TestCase):
    def test_hint_moves_are_legal_and_undoable(self):
        state = GameState(clock=FakeClock())
        state.new_game("medium", "spider", seed=11)
        hints = HintSystem()
        snapshots = []
        for _ in range(40):
            moves = hints.get_all_moves(state)
            if not moves:
                break
            snapshots.append(state.to_dict())
            self.assertTrue(apply_hint(state, moves[0]))
            self.assertEqual(104, state.total_cards())
        while snapshots:
            self.assertTrue(state.undo_last_move())
            self.assertEqual(snapshots.pop(), state.to_dict())


if __name__ == "__main__":
    unittest.main()
