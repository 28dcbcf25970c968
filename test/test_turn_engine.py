"""
TurnEngine: async driving with a scripted die and a recording mover.
Coroutines are run with asyncio.run so no async test plugin is needed.
"""

import asyncio

import pytest

from circus.engine.definitions import load_board
from circus.engine.events import GAME_WON, ROLL_FAILED, ROLL_STARTED, TURN_CHANGED
from circus.engine.leaderboard import JsonFileLeaderboardStore, LeaderboardStore, MemoryLeaderboardStore
from circus.engine.turn_engine import TurnEngine


class ScriptedDice:
    """Returns faces in order."""

    def __init__(self, faces):
        self.faces = list(faces)

    async def roll(self):
        return self.faces.pop(0)


class RecordingMover:
    """Records each requested step; yields to the loop like a real animation."""

    def __init__(self):
        self.steps = []

    async def move_player(self, player_index, tile_index):
        self.steps.append((player_index, tile_index))
        await asyncio.sleep(0)


class GatedMover(RecordingMover):
    """Holds the first step until released, so a second roll can arrive mid-turn."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def move_player(self, player_index, tile_index):
        self.steps.append((player_index, tile_index))
        self.started.set()
        await self.release.wait()


class RecordingListener:
    def __init__(self):
        self.events = []
        self.turns = []
        self.effects = []
        self.wins = []

    def on_event(self, event):
        self.events.append(event.type)

    def on_turn_changed(self, event):
        self.turns.append(event.payload["current_player_index"])

    def on_tile_effect(self, event):
        self.effects.append(event.payload["kind"])

    def on_game_won(self, event):
        self.wins.append(event.payload["winner_name"])


class BrokenRoller:
    async def roll(self):
        raise RuntimeError("die fell off the table")


class ExplodingStore(LeaderboardStore):
    """Fails with something other than OSError."""

    def load(self):
        raise RuntimeError("store offline")


class FailingStore(LeaderboardStore):
    def _read(self):
        return None

    def _write(self, document):
        raise OSError("read-only filesystem")

    def _delete(self):
        raise OSError("read-only filesystem")


def make_engine(players, faces, store=None, mover=None, listener=None, board_id="sideshow",
                dice_roller=None, ai_roll_delay=0.0):
    return TurnEngine(
        load_board(board_id),
        players,
        store or MemoryLeaderboardStore(),
        mover=mover or RecordingMover(),
        dice_roller=dice_roller or ScriptedDice(faces),
        listener=listener,
        ai_roll_delay=ai_roll_delay,
    )


def test_play_turn_awaits_each_step_in_order():
    mover = RecordingMover()
    engine = make_engine(["Alice", "Bob"], [3], mover=mover)
    engine.start()

    asyncio.run(engine.play_turn())

    assert mover.steps == [(0, 1), (0, 2), (0, 3)]
    assert engine.session.players[0].board_index == 3
    assert engine.session.current_player_index == 1


def test_effect_relocation_goes_through_mover():
    mover = RecordingMover()
    listener = RecordingListener()
    engine = make_engine(["Alice", "Bob"], [4], mover=mover, listener=listener)
    engine.start()

    asyncio.run(engine.play_turn())

    # Lands on the go_to tile at 4 and is sent back to 1
    assert mover.steps[-1] == (0, 1)
    assert engine.session.players[0].board_index == 1
    assert listener.effects == ["go_to"]
    assert listener.turns == [1]


def test_win_is_recorded_on_leaderboard():
    store = MemoryLeaderboardStore()
    listener = RecordingListener()
    engine = make_engine(["Alice"], [6, 3], store=store, listener=listener)
    engine.start()
    engine.tick(10)

    async def play():
        await engine.play_turn()  # 0 -> 6
        await engine.play_turn()  # 6 -> 9

    asyncio.run(play())

    assert engine.session.is_game_over
    assert listener.wins == ["Alice"]
    assert listener.events.count(GAME_WON) == 1
    assert store.load().get("Alice").points == 2000 - 10 - 2 * 5


def test_failed_leaderboard_save_keeps_result():
    engine = make_engine(["Alice"], [6, 3], store=FailingStore())
    engine.start()

    async def play():
        await engine.play_turn()
        await engine.play_turn()

    asyncio.run(play())

    assert engine.session.is_game_over
    assert engine.session.winner_index == 0


def test_ai_players_roll_after_human_turn():
    mover = RecordingMover()
    engine = make_engine(
        ["Alice", {"display_name": "Bot 1", "is_ai_controlled": True}, {"display_name": "Bot 2", "is_ai_controlled": True}],
        [1, 1, 3],
        mover=mover,
    )
    engine.start()

    events = asyncio.run(engine.play_turn())

    assert [e.type for e in events].count(ROLL_STARTED) == 3
    assert [p.board_index for p in engine.session.players] == [1, 1, 3]
    assert engine.session.current_player_index == 0


def test_ai_turns_do_not_run_for_humans():
    engine = make_engine(["Alice", "Bob"], [])
    engine.start()
    assert asyncio.run(engine.run_ai_turns()) == []


def test_roll_during_turn_in_flight_is_ignored():
    mover = GatedMover()
    engine = make_engine(["Alice", "Bob"], [1, 5], mover=mover)
    engine.start()

    async def play():
        first = asyncio.create_task(engine.play_turn())
        await mover.started.wait()
        second = await engine.play_turn()
        mover.release.set()
        await first
        return second

    second = asyncio.run(play())

    assert second == []
    assert engine.session.total_rolls == 1
    assert engine.session.players[0].board_index == 1


def test_lose_turn_skips_through_engine():
    listener = RecordingListener()
    engine = make_engine(["Alice", "Bob"], [5, 1], listener=listener)
    engine.start()

    async def play():
        await engine.play_turn()  # Alice to 5, lose_turn
        await engine.play_turn()  # Bob to 1
        await engine.play_turn()  # Alice skipped

    asyncio.run(play())

    assert "turn_skipped" in listener.events
    assert engine.session.current_player_index == 1
    assert engine.session.total_rolls == 2


def test_dispatch_before_start_raises():
    engine = make_engine(["Alice"], [])
    with pytest.raises(ValueError):
        engine.request_roll()


def test_resume_rejects_session_from_other_board():
    engine = make_engine(["Alice"], [])
    engine.start()
    other = make_engine(["Alice"], [], board_id="circus")
    with pytest.raises(ValueError):
        other.resume(engine.session)


def test_listener_without_hooks_is_fine():
    engine = make_engine(["Alice", "Bob"], [2], listener=object())
    engine.start()
    events = asyncio.run(engine.play_turn())
    assert events[-1].type == TURN_CHANGED


def test_unexpected_store_error_still_announces_win():
    listener = RecordingListener()
    engine = make_engine(["Alice"], [6, 3], store=ExplodingStore(), listener=listener)
    engine.start()

    async def play():
        await engine.play_turn()
        await engine.play_turn()

    asyncio.run(play())

    assert engine.session.is_game_over
    assert listener.wins == ["Alice"]
    assert listener.events.count(GAME_WON) == 1


def test_unreadable_leaderboard_file_does_not_block_win(tmp_path):
    store = JsonFileLeaderboardStore(tmp_path)
    store.path.write_bytes(b"\xff\xff")
    engine = make_engine(["Alice"], [], store=store)
    engine.start()
    engine.session.players[0].board_index = 8

    engine.request_roll()
    engine.submit_dice(1)
    events = engine.acknowledge_move(9)

    assert [e.type for e in events] == [GAME_WON]
    assert store.load().get("Alice") is not None


def test_failing_dice_roller_forfeits_turn():
    engine = make_engine(["Alice", "Bob"], [], dice_roller=BrokenRoller())
    engine.start()

    events = asyncio.run(engine.play_turn())

    assert [e.type for e in events] == [ROLL_STARTED, ROLL_FAILED, TURN_CHANGED]
    assert not engine.session.is_processing_turn
    assert engine.session.current_player_index == 1
    assert engine.session.players[0].board_index == 0


def test_ai_waits_before_rolling(monkeypatch):
    delays = []
    real_sleep = asyncio.sleep

    async def recording_sleep(seconds, *args, **kwargs):
        if seconds:
            delays.append(seconds)
        return await real_sleep(0)

    monkeypatch.setattr("circus.engine.turn_engine.asyncio.sleep", recording_sleep)
    engine = make_engine(
        ["Alice", {"display_name": "Bot", "is_ai_controlled": True}],
        [1, 1],
        ai_roll_delay=0.25,
    )
    engine.start()

    asyncio.run(engine.play_turn())

    assert delays == [0.25]
    assert engine.session.players[1].board_index == 1
