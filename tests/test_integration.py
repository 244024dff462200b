"""
Integration test suite for ChessPro.

Tests components working together end-to-end:
- Full game simulations (engine vs engine)
- Worker processes (message round trips, ordering, error responses)
- Engine pool routing
- FastAPI REST API
- Terminal client
"""

import asyncio

import chess
import pytest
from fastapi.testclient import TestClient

from chesspro.core import SearchEngine, BitboardEvaluator, rules
from chesspro.game_state import Game, build_game_state
from chesspro.worker import EnginePool, SearchWorker
from interface import api, cli

FOOLS_MATE_MOVES = ["f2f3", "e7e5", "g2g4", "d8h4"]
STALEMATE = "5k2/5P2/5K2/8/8/8/8/8 b - - 0 1"
BACK_RANK = "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"
HANGING_QUEEN = "4k3/8/8/3q4/8/8/8/3QK3 w - - 0 1"


@pytest.fixture(scope="module")
def worker():
    with SearchWorker() as w:
        yield w


# ════════════════════════════════════════════════════════════════════════════
#  ENGINE VS ENGINE: FULL GAME SIMULATIONS
# ════════════════════════════════════════════════════════════════════════════


class TestFullGame:
    """The engine can play complete games without crashing."""

    def test_engine_vs_engine_completes(self):
        white = SearchEngine(depth=1)
        black = SearchEngine(BitboardEvaluator(), depth=1)
        game = Game()
        max_plies = 150  # safety limit

        while not game.is_game_over() and len(game.history) < max_plies:
            engine = white if game.position.turn == chess.WHITE else black
            move = engine.find_best_move(game.position)
            assert move in game.position.legal_moves, f"Illegal move {move} at ply {len(game.history)}"
            game.push(move)

        assert len(game.history) > 10
        state = game.state()
        if state.is_game_over:
            assert state.winner in ("white", "black", "draw")
        else:
            assert state.winner is None

    def test_history_replays_to_final_position(self):
        engine = SearchEngine(depth=2)
        game = Game()
        for _ in range(10):
            game.push(engine.find_best_move(game.position))

        board = chess.Board()
        for record in game.history:
            board = rules.apply_move(board, record.uci)
        assert board.fen() == game.fen

    def test_worker_plays_both_sides(self, worker):
        game = Game()
        for ply in range(8):
            response = worker.submit({"position": game.fen, "depth": 1, "requestTag": str(ply)}).result(timeout=60)
            assert response["requestTag"] == str(ply)
            best = response["bestMove"]
            assert best["color"] == rules.color_name(game.position.turn)
            game.push(best["uci"])
        assert len(game.history) == 8


# ════════════════════════════════════════════════════════════════════════════
#  WORKER PROCESSES
# ════════════════════════════════════════════════════════════════════════════


class TestSearchWorker:
    def test_round_trip(self, worker):
        response = worker.submit({"position": BACK_RANK, "depth": 2, "requestTag": "mate"}).result(timeout=60)
        assert response == {
            "bestMove": {
                "from": "a1", "to": "a8", "promotion": None, "captured": None,
                "color": "white", "uci": "a1a8", "san": "Ra8#",
            },
            "requestTag": "mate",
        }

    def test_matches_in_process_search(self, worker):
        fen = "r1bqk2r/pppp1ppp/2n2n2/2b1p3/2B1P3/3P1N2/PPP2PPP/RNBQK2R w KQkq - 1 5"
        response = worker.submit({"position": fen, "depth": 2}).result(timeout=60)
        assert response["bestMove"]["uci"] == SearchEngine().find_best_move(fen, 2).uci()

    def test_responses_in_submission_order(self, worker):
        completed = []
        futures = []
        for i in range(5):
            fut = worker.submit({"position": chess.STARTING_FEN, "depth": 1 + i % 2, "requestTag": f"t{i}"})
            fut.add_done_callback(lambda f: completed.append(f.result()["requestTag"]))
            futures.append(fut)
        for fut in futures:
            fut.result(timeout=60)
        assert completed == [f"t{i}" for i in range(5)]

    def test_error_response_keeps_worker_alive(self, worker):
        game = Game()
        for mv in FOOLS_MATE_MOVES:
            game.push(mv)
        response = worker.submit({"position": game.fen, "depth": 2, "requestTag": "over"}).result(timeout=60)
        assert response["errorKind"] == "NoLegalMovesError"
        assert response["requestTag"] == "over"
        assert "bestMove" not in response

        response = worker.submit({"position": chess.STARTING_FEN, "depth": 1}).result(timeout=60)
        assert "bestMove" in response

    @pytest.mark.parametrize("message, kind", [
        ({"position": "garbage", "depth": 2}, "InvalidPositionError"),
        ({"position": STALEMATE, "depth": 2}, "NoLegalMovesError"),
        ({"position": chess.STARTING_FEN, "depth": 0}, "InvalidRequestError"),
        ("not a message", "InvalidRequestError"),
    ])
    def test_errors_become_responses(self, worker, message, kind):
        response = worker.submit(message).result(timeout=60)
        assert response["errorKind"] == kind
        assert response["error"]

    def test_async_request(self, worker):
        response = asyncio.run(worker.request({"position": BACK_RANK, "depth": 1, "requestTag": "async"}))
        assert response["bestMove"]["uci"] == "a1a8"
        assert response["requestTag"] == "async"

    def test_restarts_after_shutdown(self):
        w = SearchWorker()
        w.shutdown()
        response = w.submit({"position": BACK_RANK, "depth": 1}).result(timeout=60)
        assert response["bestMove"]["uci"] == "a1a8"
        w.shutdown()

    def test_bitboard_worker(self):
        with SearchWorker("bitboard") as w:
            response = w.submit({"position": BACK_RANK, "depth": 2}).result(timeout=60)
        assert response["bestMove"]["uci"] == "a1a8"

    def test_unknown_evaluator(self):
        with pytest.raises(ValueError):
            SearchWorker("neural")


class TestEnginePool:
    def test_routing_is_stable(self):
        pool = EnginePool(size=3)
        try:
            for key in ("game-1", "game-2", "game-3"):
                assert pool.worker_for(key) is pool.worker_for(key)
            assert len(pool.workers) == 3
        finally:
            pool.shutdown()

    def test_submit_through_pool(self):
        with EnginePool(size=2) as pool:
            futures = {key: pool.submit(key, {"position": BACK_RANK, "depth": 1, "requestTag": key})
                       for key in ("alice", "bob")}
            for key, fut in futures.items():
                response = fut.result(timeout=60)
                assert response["requestTag"] == key
                assert response["bestMove"]["uci"] == "a1a8"


# ════════════════════════════════════════════════════════════════════════════
#  REST API INTEGRATION
# ════════════════════════════════════════════════════════════════════════════


@pytest.fixture(scope="module")
def client():
    with TestClient(api.app) as c:
        yield c


class TestAPIIntegration:
    @pytest.fixture(autouse=True)
    def fresh_game(self):
        api.game.reset()

    def test_health(self, client):
        assert client.get("/health").json() == {"ok": True}

    def test_initial_state(self, client):
        data = client.get("/state").json()
        assert data["fen"] == chess.STARTING_FEN
        assert data["turn"] == "white"
        assert data["isGameOver"] is False
        assert data["moveHistory"] == []
        assert data["lastMove"] is None
        assert data["winner"] is None

    def test_make_move(self, client):
        data = client.post("/move", json={"move": "e2e4"}).json()
        assert data["turn"] == "black"
        assert data["lastMove"]["uci"] == "e2e4"
        assert data["lastMove"]["san"] == "e4"

    def test_illegal_move(self, client):
        assert client.post("/move", json={"move": "e2e5"}).status_code == 400
        assert client.post("/move", json={"move": "zzzz"}).status_code == 400
        assert client.get("/state").json()["moveHistory"] == []

    def test_captures_reported(self, client):
        for mv in ["e2e4", "d7d5", "e4d5", "d8d5"]:
            resp = client.post("/move", json={"move": mv})
        assert resp.json()["capturedPieces"] == {"white": ["p"], "black": ["p"]}

    def test_set_position(self, client):
        data = client.post("/position", json={"fen": BACK_RANK}).json()
        assert data["fen"] == BACK_RANK

    def test_set_invalid_position(self, client):
        assert client.post("/position", json={"fen": "not a fen"}).status_code == 400

    def test_fools_mate_flow(self, client):
        for mv in FOOLS_MATE_MOVES:
            data = client.post("/move", json={"move": mv}).json()
        assert data["isCheckmate"] is True
        assert data["winner"] == "black"
        assert client.post("/search", json={"depth": 2}).status_code == 400
        assert client.post("/ai-move", json={"depth": 1}).status_code == 400

    def test_search_session_position(self, client):
        resp = client.post("/search", json={"depth": 2, "requestTag": "req-1"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["requestTag"] == "req-1"
        assert chess.Move.from_uci(data["bestMove"]["uci"]) in chess.Board().legal_moves

    def test_search_explicit_position(self, client):
        data = client.post("/search", json={"position": BACK_RANK, "difficulty": "easy"}).json()
        assert data["bestMove"]["uci"] == "a1a8"

    def test_search_errors(self, client):
        assert client.post("/search", json={"position": "garbage", "depth": 2}).status_code == 400
        assert client.post("/search", json={"position": STALEMATE, "depth": 2}).status_code == 400
        assert client.post("/search", json={"depth": 99}).status_code == 422
        assert client.post("/search", json={"depth": 0}).status_code == 422

    def test_ai_move(self, client):
        client.post("/move", json={"move": "e2e4"})
        data = client.post("/ai-move", json={"difficulty": "beginner"}).json()
        assert len(data["moveHistory"]) == 2
        assert data["lastMove"]["color"] == "black"
        assert data["turn"] == "white"

    def test_hint(self, client):
        client.post("/position", json={"fen": BACK_RANK})
        data = client.post("/hint", json={}).json()
        assert data == {"hint": "a1a8", "san": "Ra8#"}
        # A hint does not play the move.
        assert client.get("/state").json()["moveHistory"] == []

    def test_undo(self, client):
        for mv in ["e2e4", "e7e5", "g1f3"]:
            client.post("/move", json={"move": mv})
        data = client.post("/undo", json={"plies": 2}).json()
        assert [m["uci"] for m in data["moveHistory"]] == ["e2e4"]
        data = client.post("/undo", json={"plies": 5}).json()
        assert data["fen"] == chess.STARTING_FEN

    def test_reset(self, client):
        client.post("/position", json={"fen": BACK_RANK})
        data = client.post("/reset").json()
        assert data["fen"] == chess.STARTING_FEN

    def test_analyze(self, client):
        data = client.post("/analyze", json={"position": HANGING_QUEEN, "move": "e1f2", "depth": 2}).json()
        assert data["label"] == "blunder"
        assert data["best_move"] == "d1d5"

    def test_analyze_searches_in_worker(self, client, monkeypatch):
        # Start the worker process before patching this process's engine.
        assert client.post("/search", json={"position": BACK_RANK, "depth": 1}).status_code == 200

        def no_local_search(self, position, depth=None):
            raise AssertionError("search ran in the API process")

        monkeypatch.setattr(SearchEngine, "search", no_local_search)
        resp = client.post("/analyze", json={"position": HANGING_QUEEN, "move": "d1d5", "depth": 2})
        assert resp.status_code == 200
        assert resp.json()["best_move"] == "d1d5"
        assert resp.json()["label"] == "brilliant"

    def test_analyze_illegal(self, client):
        assert client.post("/analyze", json={"move": "e2e5", "depth": 1}).status_code == 400

    def test_difficulties(self, client):
        data = client.get("/difficulties").json()
        assert [d["id"] for d in data] == ["beginner", "easy", "medium", "hard", "expert"]
        assert all(d["depth"] >= 1 for d in data)


# ════════════════════════════════════════════════════════════════════════════
#  TERMINAL CLIENT
# ════════════════════════════════════════════════════════════════════════════


def scripted_input(monkeypatch, lines):
    it = iter(lines)
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(it))


class TestCLI:
    def test_player_delivers_mate(self, monkeypatch, capsys, worker):
        scripted_input(monkeypatch, ["a1a8"])
        result = cli.run(cli.parse_args(["--fen", BACK_RANK, "--depth", "1"]), worker)
        assert result == "white"
        assert "Result: white" in capsys.readouterr().out

    def test_engine_moves_first_for_black_player(self, monkeypatch, capsys, worker):
        scripted_input(monkeypatch, ["quit"])
        result = cli.run(cli.parse_args(["--color", "black", "--difficulty", "beginner"]), worker)
        assert result == "aborted"
        assert "Engine plays:" in capsys.readouterr().out

    def test_illegal_then_undo(self, monkeypatch, capsys, worker):
        scripted_input(monkeypatch, ["e2e5", "e2e4", "undo", "quit"])
        assert cli.run(cli.parse_args(["--depth", "1"]), worker) == "aborted"
        out = capsys.readouterr().out
        assert "Illegal move, try again." in out
        assert "Engine plays:" in out

    def test_main(self, monkeypatch):
        scripted_input(monkeypatch, ["a1a8"])
        assert cli.main(["--fen", BACK_RANK]) == 0

    @pytest.mark.parametrize("argv", [["--depth", "0"], ["--depth", "2", "--difficulty", "easy"], ["--color", "red"]])
    def test_bad_arguments(self, argv):
        with pytest.raises(SystemExit):
            cli.parse_args(argv)

    def test_game_state_after_cli_style_game(self):
        game = Game()
        for mv in FOOLS_MATE_MOVES:
            assert game.make_move(mv)
        state = build_game_state(game.position, game.history)
        assert state.winner == "black"
