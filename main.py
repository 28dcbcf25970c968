"""
Main entry point for the Circus Board turn engine.
Plays a complete game in the console with a fair die and an instant mover,
then prints the leaderboard.
"""

import argparse
import asyncio
import logging
import random

from circus.config import AI_ROLL_DELAY, DEFAULT_BOARD_ID, LEADERBOARD_DIR, configure_logging
from circus.engine.definitions import load_board
from circus.engine.events import (
    DICE_ROLLED,
    GAME_STARTED,
    ROLL_FAILED,
    GameEvent,
)
from circus.engine.leaderboard import JsonFileLeaderboardStore
from circus.engine.turn_engine import InstantMover, RandomDiceRoller, TurnEngine
from circus.engine.utils import print_session

logger = logging.getLogger(__name__)


class ConsoleListener:
    """Prints what happens so a game can be followed in the terminal."""

    def __init__(self):
        self.player_names: list[str] = []

    def _name(self, player_index: int) -> str:
        if 0 <= player_index < len(self.player_names):
            return self.player_names[player_index]
        return f"Player {player_index + 1}"

    def on_event(self, event: GameEvent) -> None:
        p = event.payload
        if event.type == GAME_STARTED:
            self.player_names = list(p["player_names"])
            print(f"Game started on {p['board_id']}: {', '.join(p['player_names'])}")
        elif event.type == DICE_ROLLED:
            print(f"  {self._name(p['player_index'])} rolled {p['face']} "
                  f"({p['from_index']} -> {p['target_index']})")
        elif event.type == ROLL_FAILED:
            print(f"  {self._name(p['player_index'])} dropped the die ({p['raw_face']!r})")

    def on_tile_effect(self, event: GameEvent) -> None:
        p = event.payload
        print(f"  {p['tile_name']}! {p['kind']} -> tile {p['result_index']}")

    def on_turn_skipped(self, event: GameEvent) -> None:
        print(f"  {self._name(event.payload['player_index'])} sits this turn out")

    def on_game_won(self, event: GameEvent) -> None:
        p = event.payload
        print(f"\n*** {p['winner_name']} wins! {p['score']} points "
              f"({p['total_rolls']} rolls, {p['elapsed_seconds']:.1f}s) ***")


# Game clock advance per turn in the demo (no real frames to measure)
SECONDS_PER_TURN = 3.0


async def play_demo(board_id: str, players: list[str], bots: list[str], seed: int | None, max_turns: int) -> None:
    board = load_board(board_id)
    store = JsonFileLeaderboardStore(LEADERBOARD_DIR)
    rng = random.Random(seed)

    engine = TurnEngine(
        board,
        players + [{"display_name": name, "is_ai_controlled": True} for name in bots],
        store,
        mover=InstantMover(),
        dice_roller=RandomDiceRoller(rng),
        listener=ConsoleListener(),
        ai_roll_delay=AI_ROLL_DELAY,
    )
    engine.start()

    # The script presses "roll" for each human; bots follow on their own
    turns = 0
    while not engine.session.is_game_over and turns < max_turns:
        engine.tick(SECONDS_PER_TURN)
        await engine.play_turn()
        turns += 1

    if not engine.session.is_game_over:
        logger.warning("No winner after %d turns", turns)
    print_session(engine.session, board)
    print(store.load().format_text())


def main():
    parser = argparse.ArgumentParser(description="Play a Circus Board game in the console")
    parser.add_argument("--board", default=DEFAULT_BOARD_ID, help="Board id from circus/data/boards")
    parser.add_argument("--players", nargs="*", default=["Bingo"], help="Human player names in turn order")
    parser.add_argument("--bots", nargs="*", default=["Bongo"], help="AI players, seated after the humans")
    parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible game")
    parser.add_argument("--max-turns", type=int, default=1000)
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args()

    configure_logging(args.log_level or "WARNING")
    print("Circus Board - Turn Engine Demo")
    print("=" * 60)
    asyncio.run(play_demo(args.board, args.players, args.bots, args.seed, args.max_turns))


if __name__ == "__main__":
    main()
