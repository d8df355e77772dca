import unittest

from engine.cards import Card
from engine.game_state import GameState
from hints.hint_system import (
    DEAL_STOCK,
    DRAW_STOCK,
    TABLEAU_TO_FOUNDATION,
    TABLEAU_TO_TABLEAU,
    WASTE_TO_TABLEAU,
    HintSystem,
    movable_starts,
)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def visible(rank, suit):
    return Card(rank, suit, True)


def hidden(rank, suit):
    return Card(rank, suit, False)


def make_state(variant, tableau, stock=None, waste=None, suits=2):
    state = GameState(clock=FakeClock())
    state.reset(variant)
    if variant == "spider":
        state.spider_suits = suits
    tableau = list(tableau)
    tableau += [[] for _ in range(state.rules.tableau_count - len(tableau))]
    state.tableau = tableau
    state.stock = stock or []
    state.waste = waste or []
    return state


def klondike_position():
    tableau = [
        [visible(1, "hearts")],
        [visible(13, "spades")],
        [],
        [hidden(5, "clubs"), visible(9, "diamonds")],
        [hidden(2, "clubs"), visible(13, "diamonds")],
        [visible(4, "clubs")],
        [visible(8, "clubs")],
    ]
    return make_state("klondike", tableau, stock=[hidden(6, "hearts")], waste=[visible(12, "hearts")])


def spider_filler(count):
    return [[visible(13, "clubs")] for _ in range(count)]


class KlondikeHintTestCase(unittest.TestCase):
    def test_moves_ranked_by_priority(self):
        moves = HintSystem().find_available_moves(klondike_position())
        summary = [(m.kind, m.from_index, m.to_index, m.priority) for m in moves]
        self.assertEqual(
            [
                (TABLEAU_TO_FOUNDATION, 0, 0, 10),
                (TABLEAU_TO_TABLEAU, 4, 2, 8),
                (WASTE_TO_TABLEAU, 0, 1, 5),
                (TABLEAU_TO_TABLEAU, 6, 3, 3),
                (DRAW_STOCK, 0, 0, 1),
            ],
            summary,
        )

    def test_equal_priorities_keep_discovery_order(self):
        state = GameState(clock=FakeClock())
        state.new_game("medium", seed=31)
        moves = HintSystem().find_available_moves(state)
        for first, second in zip(moves, moves[1:]):
            self.assertGreaterEqual(first.priority, second.priority)
            if first.priority == second.priority:
                self.assertLess(first.order, second.order)

    def test_king_moves_to_empty_column_only_when_it_uncovers_something(self):
        state = make_state("klondike", [[visible(13, "spades")], []])
        self.assertEqual([], HintSystem().find_available_moves(state))

    def test_waste_king_to_empty_column(self):
        state = make_state("klondike", [[]] + [[visible(3, "spades")] for _ in range(6)], waste=[visible(13, "hearts")])
        moves = HintSystem().find_available_moves(state)
        self.assertEqual(WASTE_TO_TABLEAU, moves[0].kind)
        self.assertEqual(7, moves[0].priority)

    def test_movable_starts_follow_alternating_run(self):
        column = [hidden(2, "clubs"), visible(9, "spades"), visible(8, "hearts"), visible(7, "clubs")]

        def link(lower, upper):
            return upper.can_place_on_tableau(lower, "klondike")

        self.assertEqual([1, 2, 3], movable_starts(column, link))
        self.assertEqual([], movable_starts([hidden(2, "clubs")], link))

    def test_hint_keeps_its_own_card_copy(self):
        state = klondike_position()
        best = HintSystem().find_available_moves(state)[0]
        state.tableau[0][-1].flip()
        self.assertTrue(best.card.face_up)
        self.assertIsNot(state.tableau[0][-1], best.card)

    def test_notation(self):
        moves = HintSystem().find_available_moves(klondike_position())
        self.assertEqual("tableau0->foundation0 x1 [A♥] p=10", moves[0].to_notation())
        self.assertEqual("DRAW-STOCK", moves[-1].to_notation())


class SpiderHintTestCase(unittest.TestCase):
    def test_reveal_and_same_suit_bonuses(self):
        tableau = [
            [hidden(4, "hearts"), visible(7, "spades"), visible(6, "spades")],
            [visible(8, "spades")],
            [visible(8, "hearts")],
        ] + spider_filler(7)
        state = make_state("spider", tableau, stock=[hidden(2, "clubs")])
        moves = HintSystem().find_available_moves(state)
        summary = [(m.kind, m.from_index, m.to_index, m.card_count, m.priority) for m in moves]
        self.assertEqual(
            [
                (TABLEAU_TO_TABLEAU, 0, 1, 2, 7),
                (TABLEAU_TO_TABLEAU, 0, 2, 2, 6),
                (DEAL_STOCK, 0, 0, 1, 1),
            ],
            summary,
        )

    def test_emptying_a_column_is_rewarded(self):
        tableau = [[visible(7, "spades")], [visible(8, "hearts")]] + spider_filler(8)
        moves = HintSystem().find_available_moves(make_state("spider", tableau))
        self.assertEqual(1, len(moves))
        self.assertEqual(5, moves[0].priority)

    def test_stuck_only_without_stock(self):
        hints = HintSystem()
        self.assertTrue(hints.is_game_stuck(make_state("spider", spider_filler(10))))
        self.assertFalse(hints.is_game_stuck(make_state("spider", spider_filler(10), stock=[hidden(1, "spades")])))

    def test_analysis(self):
        state = make_state("spider", [[hidden(1, "hearts")] + [visible(r, "spades") for r in (10, 9, 8, 7)]], suits=1)
        state.completed_sequences = [[visible(r, "spades") for r in range(13, 0, -1)]]
        analysis = HintSystem().analyze_game_state(state)
        self.assertEqual(1, analysis["potentialRuns"])
        self.assertEqual(25.0, analysis["sequenceProgress"])
        self.assertEqual(9, analysis["emptyColumns"])
        self.assertEqual(1, analysis["buriedAces"])
        self.assertIn("Use empty columns to sort cards into same-suit runs", analysis["suggestions"])
        self.assertIn("Extend your longest same-suit runs toward a full King-to-Ace sequence", analysis["suggestions"])


class HintCooldownTestCase(unittest.TestCase):
    def test_best_move_respects_cooldown(self):
        clock = FakeClock(100.0)
        hints = HintSystem(clock=clock)
        state = klondike_position()
        self.assertEqual(TABLEAU_TO_FOUNDATION, hints.get_best_move(state).kind)
        clock.now = 101.0
        self.assertIsNone(hints.get_best_move(state))
        clock.now = 102.5
        self.assertIsNotNone(hints.get_best_move(state))
        hints.reset_cooldown()
        self.assertIsNotNone(hints.get_best_move(state))

    def test_get_all_moves_ignores_cooldown(self):
        hints = HintSystem(clock=FakeClock())
        state = klondike_position()
        hints.get_best_move(state)
        self.assertEqual(5, len(hints.get_all_moves(state)))


class KlondikeAnalysisTestCase(unittest.TestCase):
    def test_counts(self):
        analysis = HintSystem().analyze_game_state(klondike_position())
        self.assertEqual(5, analysis["availableMoves"])
        self.assertEqual(2, analysis["hiddenCards"])
        self.assertEqual(1, analysis["emptyColumns"])
        self.assertEqual(2, analysis["exposedKings"])
        self.assertEqual(0.0, analysis["foundationProgress"])
        self.assertTrue(analysis["likelyWinnable"])
        self.assertEqual([], analysis["suggestions"])

    def test_suggestions(self):
        tableau = [
            [],
            [hidden(1, "hearts"), visible(9, "clubs")],
            [hidden(1, "spades"), visible(9, "hearts")],
            [hidden(1, "clubs"), visible(5, "clubs")],
        ]
        analysis = HintSystem().analyze_game_state(make_state("klondike", tableau))
        self.assertEqual(3, analysis["buriedAces"])
        self.assertFalse(analysis["likelyWinnable"])
        self.assertIn("Try to expose a King to fill empty columns", analysis["suggestions"])
        self.assertIn("Focus on revealing buried Aces", analysis["suggestions"])
        self.assertIn(
            "Several Aces are still buried or in the stock; this deal may not be winnable", analysis["suggestions"]
        )

    def test_stuck_klondike(self):
        state = make_state("klondike", [[visible(5, "clubs")], [visible(5, "spades")]])
        self.assertTrue(HintSystem().is_game_stuck(state))


if __name__ == "__main__":
    unittest.main()
