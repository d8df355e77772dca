from __future__ import annotations

import argparse
import logging

from engine.cards import FOUNDATION, SPIDER, TABLEAU, WASTE
from engine.difficulty import DIFFICULTY_ORDER, DifficultyManager
from engine.game_state import GameState
from storage import game_store, stats_store
from storage.config import VARIANT_NAMES, VARIANT_ORDER
from storage.settings_store import ALLOWED_VALUES, as_bool, load_settings, save_settings

logger = logging.getLogger(__name__)

PILE_PREFIXES = {"t": TABLEAU, "f": FOUNDATION}

HELP = (
    "Commands:\n"
    "  mv <from> <to> [count]   piles: t0..t9 tableau, f0..f3 foundation, w waste\n"
    "  draw                     draw from stock (deals a row in spider)\n"
    "  undo | hint | auto | new | stats\n"
    "  save [slot] | load [slot] | slots | set [key value] | help | quit"
)


def parse_pile(token: str) -> tuple[str, int]:
    token = token.strip().lower()
    if token == "w":
        return WASTE, 0
    area = PILE_PREFIXES.get(token[:1])
    if area is None:
        raise ValueError(f"Unknown pile: {token}")
    return area, int(token[1:])


def render(state: GameState) -> str:
    lines = []
    stats = state.get_game_stats()
    header = (
        f"{VARIANT_NAMES[state.variant]} {state.difficulty}  "
        f"Score: {stats['score']}  Moves: {stats['moves']}  Time: {state.get_formatted_time()}"
    )
    lines.append(header)
    if state.variant == SPIDER:
        lines.append(f"Completed: {len(state.completed_sequences)}        Stock: {len(state.stock)}")
    else:
        tops = "  ".join(
            f"f{i}:{pile[-1].game_str() if pile else ' . '}" for i, pile in enumerate(state.foundation)
        )
        waste = state.waste[-1].game_str() if state.waste else " . "
        lines.append(f"Stock: {len(state.stock):2d}  Waste: {waste}    {tops}")
    lines.append("-" + "".join(f"--t{i}--" for i in range(len(state.tableau))))
    row = 0
    while True:
        has = False
        line = f"{row:2d}:"
        for column in state.tableau:
            if len(column) <= row:
                line += "      "
                continue
            has = True
            line += f"  {column[row].game_str():>4}"
        if not has:
            break
        lines.append(line)
        row += 1
    return "\n".join(lines)


def _describe_slot(row: dict) -> str:
    label = "autosave" if row["slot"] == 0 else f"slot {row['slot']}"
    if not row["exists"]:
        return f"{label}: empty"
    return f"{label}: {VARIANT_NAMES.get(row['variant'], row['variant'])} {row['difficulty']}, {row['moves']} moves"


class CommandLineSession:
    def __init__(
        self,
        variant: str,
        difficulty: str,
        seed: int | None = None,
        settings: dict | None = None,
    ):
        self.variant = variant
        self.seed = seed
        self.settings = load_settings() if settings is None else dict(settings)
        self.manager = DifficultyManager(difficulty)
        self.state = GameState()
        self.undos_used = 0
        self.finished = False
        self.new_game()

    def new_game(self):
        self.state.new_game(self.manager.current_difficulty, self.variant, seed=self.seed)
        self.seed = None
        self.undos_used = 0
        self.finished = False
        self.manager.hint_system.reset_cooldown()
        stats = stats_store.load_stats()
        stats_store.save_stats(stats_store.record_game_started(stats, self.variant, self.manager.current_difficulty))

    def _finish(self):
        if self.finished:
            return
        self.finished = True
        stats = stats_store.load_stats()
        stats_store.save_stats(stats_store.record_finished_game(stats, self.state.get_game_stats()))

    def _check_end(self) -> str:
        if self.state.game_won:
            self._finish()
            return f"You win! Final score {self.manager.calculate_score(self.state.score)}"
        # A non-empty waste can still be recycled into the stock.
        if self.manager.hint_system.is_game_stuck(self.state) and not self.state.waste:
            self.state.mark_lost()
            self._finish()
            return "No moves left. Game over."
        return ""

    def _slot(self, args) -> int:
        if args and args[0].isdigit():
            return int(args[0])
        return int(self.settings["save_slot"])

    def _set(self, args) -> str:
        if not args:
            return "\n".join(f"{key} = {value}" for key, value in self.settings.items())
        key = args[0].lower()
        if len(args) != 2 or key not in ALLOWED_VALUES:
            return "Unknown setting!"
        value = args[1].lower()
        if value not in ALLOWED_VALUES[key]:
            return f"Allowed values for {key}: {', '.join(ALLOWED_VALUES[key])}"
        try:
            self.settings = save_settings({**self.settings, key: value})
        except OSError as exc:
            logger.warning("Failed to save settings: %s", exc)
            return "Save failed!"
        return f"{key} = {value}"

    def execute(self, command: str) -> str:
        parts = command.split()
        if not parts:
            return ""
        name, args = parts[0].lower(), parts[1:]
        state = self.state

        if name == "mv":
            try:
                from_area, from_index = parse_pile(args[0])
                to_area, to_index = parse_pile(args[1])
                count = int(args[2]) if len(args) > 2 else 1
            except (IndexError, ValueError):
                return "Invalid pile!"
            if not state.move_cards(from_area, from_index, to_area, to_index, count):
                return "Cannot move!"
            return self._check_end()
        if name in ("draw", "deal"):
            if not state.draw_from_stock():
                return "No card left!"
            return self._check_end()
        if name == "undo":
            if not self.manager.can_undo(self.undos_used):
                return f"Undo limit reached ({self.manager.get_undo_limit()} allowed)."
            if not state.undo_last_move():
                return "Cannot undo!"
            self.undos_used += 1
            self.finished = state.game_won or state.game_lost
            return ""
        if name == "hint":
            if not (as_bool(self.settings["show_hints"]) and self.manager.can_show_hints()):
                return "Hints are not available in this difficulty mode."
            move = self.manager.hint_system.get_best_move(state)
            if move is None:
                return "No hint right now."
            return f"Hint: {move.to_notation()}"
        if name == "auto":
            if not (as_bool(self.settings["auto_complete"]) and self.manager.can_auto_complete()):
                return "Auto-complete is not available in this difficulty mode."
            moves = state.auto_complete()
            if not moves:
                return "Auto-complete is not possible yet."
            return self._check_end() or f"Auto-completed {len(moves)} card(s)."
        if name == "new":
            self.new_game()
            return "New game."
        if name == "stats":
            analysis = self.manager.hint_system.analyze_game_state(state)
            lines = [f"{k}: {v}" for k, v in state.get_game_stats().items()]
            lines.extend(analysis["suggestions"])
            return "\n".join(lines)
        if name == "save":
            slot = self._slot(args)
            return "Saved." if game_store.save_game(state, slot) else "Save failed!"
        if name == "load":
            loaded = game_store.load_game(self._slot(args))
            if loaded is None:
                return "Nothing to load!"
            self.state = loaded
            self.variant = loaded.variant
            self.manager.set_difficulty(loaded.difficulty)
            self.undos_used = 0
            self.finished = loaded.game_won or loaded.game_lost
            return "Loaded."
        if name == "slots":
            return "\n".join(_describe_slot(row) for row in game_store.list_slot_status())
        if name == "set":
            return self._set(args)
        if name == "help":
            return HELP
        return "Invalid command!"


def _parse_args(settings: dict) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play Klondike or Spider solitaire in the terminal.")
    parser.add_argument("--variant", choices=VARIANT_ORDER, default=settings["variant"], help="Game variant.")
    parser.add_argument("--difficulty", choices=DIFFICULTY_ORDER, default=settings["difficulty"], help="Difficulty.")
    parser.add_argument("--seed", type=int, default=None, help="Deal seed for a reproducible game.")
    parser.add_argument("--log-level", default="WARNING", help="Logging level.")
    return parser.parse_args()


def main():
    settings = load_settings()
    args = _parse_args(settings)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING), format="%(message)s")

    session = CommandLineSession(args.variant, args.difficulty, seed=args.seed, settings=settings)
    print(HELP)
    while True:
        print(render(session.state))
        try:
            command = input("> ")
        except EOFError:
            break
        if command.strip().lower() in ("quit", "exit", "q"):
            break
        message = session.execute(command)
        if message:
            print(message)
    if session.state.moves and not session.finished:
        game_store.save_game(session.state, slot=0)


if __name__ == "__main__":
    main()
