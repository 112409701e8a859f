"""
Tests for the match queue and game directory.
"""

import pytest

from linkplay.errors import CellTaken, InvalidCell, NoActiveGame, NotYourTurn
from linkplay.game import GameStatus, Player
from linkplay.pairing import GameDirectory, MatchQueue


def P(uid: str) -> Player:
    return Player(uid, uid.capitalize())


class TestMatchQueue:
    def test_fifo_pairing(self):
        queue = MatchQueue()
        assert queue.enqueue(P("a")) is None
        assert queue.enqueue(P("b")).user_id == "a"
        assert queue.enqueue(P("c")) is None
        assert queue.enqueue(P("d")).user_id == "c"
        assert len(queue) == 0

    def test_requeue_does_not_duplicate(self):
        queue = MatchQueue()
        queue.enqueue(P("a"))
        assert queue.enqueue(P("a")) is None
        assert len(queue) == 1

    def test_leave(self):
        queue = MatchQueue()
        queue.enqueue(P("a"))
        assert queue.leave("a") is True
        assert queue.leave("a") is False
        assert not queue.contains("a")


class TestGameDirectory:
    @pytest.fixture
    def sent(self):
        return []

    @pytest.fixture
    def directory(self, sent):
        return GameDirectory(notify=lambda uid, msg: sent.append((uid, msg)))

    def start(self, directory):
        directory.queue_for_match(P("alice"))
        return directory.queue_for_match(P("bob")).game

    def test_fifo_matching_assigns_symbols(self, directory):
        assert directory.queue_for_match(P("a")).status == "waiting"
        first = directory.queue_for_match(P("b"))
        assert first.status == "matched"
        assert first.game.players["X"].user_id == "a"
        assert first.game.players["O"].user_id == "b"
        assert directory.queue_for_match(P("c")).status == "waiting"
        second = directory.queue_for_match(P("d"))
        assert second.status == "matched"
        assert (second.game.players["X"].user_id, second.game.players["O"].user_id) == ("c", "d")

    def test_already_queued_stays_waiting(self, directory):
        directory.queue_for_match(P("a"))
        assert directory.queue_for_match(P("a")).status == "waiting"
        assert directory.queue_size == 1

    def test_in_game_is_noop(self, directory):
        game = self.start(directory)
        result = directory.queue_for_match(P("alice"))
        assert result.status == "in_game"
        assert result.game is game
        assert directory.queue_size == 0

    def test_match_notifies_both(self, directory, sent):
        self.start(directory)
        assert sent == [
            ("alice", "Matched with Bob. You are X."),
            ("bob", "Matched with Alice. You are O."),
        ]

    def test_move_errors_are_results(self, directory):
        assert isinstance(directory.submit_move("nobody", 0).error, NoActiveGame)
        self.start(directory)
        assert isinstance(directory.submit_move("bob", 0).error, NotYourTurn)
        assert isinstance(directory.submit_move("alice", 12).error, InvalidCell)
        assert isinstance(directory.submit_move("alice", None).error, InvalidCell)
        assert directory.submit_move("alice", 0).ok
        assert isinstance(directory.submit_move("bob", 0).error, CellTaken)

    def test_win_clears_index_and_returns_terminal_state(self, directory, sent):
        self.start(directory)
        for uid, cell in [("alice", 0), ("bob", 3), ("alice", 1), ("bob", 4)]:
            directory.submit_move(uid, cell)
        result = directory.submit_move("alice", 2)
        assert result.ok
        assert result.game.status == GameStatus.FINISHED
        assert result.game.winner_symbol == "X"
        assert directory.get_player_state("alice").game is None
        assert directory.get_player_state("bob").game is None
        assert ("alice", "You won the Tic Tac Toe match!") in sent
        assert ("bob", "Alice won the match.") in sent

    def test_draw_notifies_both(self, directory, sent):
        self.start(directory)
        moves = [0, 1, 2, 4, 3, 5, 7, 6, 8]
        for i, cell in enumerate(moves):
            result = directory.submit_move("alice" if i % 2 == 0 else "bob", cell)
        assert result.game.draw is True
        assert sent[-2:] == [
            ("alice", "Tic Tac Toe match ended in a draw."),
            ("bob", "Tic Tac Toe match ended in a draw."),
        ]

    def test_leave_active_game_forfeits(self, directory, sent):
        self.start(directory)
        outcome = directory.leave_queue_or_game("alice")
        assert outcome.resigned is True
        assert outcome.game.forfeit is True
        assert outcome.game.winner_symbol == "O"
        assert directory.get_player_state("bob").game is None
        assert ("bob", "Opponent forfeited. Victory is yours!") in sent
        assert ("alice", "You forfeited the Tic Tac Toe match.") in sent

    def test_leave_queue(self, directory):
        directory.queue_for_match(P("a"))
        assert directory.get_player_state("a").queued is True
        assert directory.leave_queue_or_game("a").queue_left is True
        assert directory.leave_queue_or_game("a").queue_left is False
        assert directory.get_player_state("a").queued is False

    def test_finished_players_can_requeue(self, directory):
        self.start(directory)
        directory.leave_queue_or_game("alice")
        assert directory.queue_for_match(P("alice")).status == "waiting"
        assert directory.queue_for_match(P("bob")).status == "matched"

    def test_broken_notify_does_not_break_matching(self):
        def boom(uid, msg):
            raise RuntimeError("down")

        directory = GameDirectory(notify=boom)
        directory.queue_for_match(P("a"))
        assert directory.queue_for_match(P("b")).status == "matched"
