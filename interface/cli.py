"""Play against the engine in a terminal."""

import argparse
from typing import List, Optional

import chess

from chesspro.config import CONFIG, configure_logging
from chesspro.game_state import Game
from chesspro.worker import SearchWorker


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play chess against the ChessPro engine.")
    parser.add_argument("--fen", help="start position (default: initial position)")
    parser.add_argument("--color", choices=("white", "black"), default="white", help="your side")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--depth", type=int, help="engine search depth in plies")
    group.add_argument("--difficulty", help="beginner, easy, medium, hard or expert")
    args = parser.parse_args(argv)
    if args.depth is not None and args.depth < 1:
        parser.error("--depth must be >= 1")
    return args


def run(args: argparse.Namespace, worker: SearchWorker) -> str:
    """Game loop; returns the winner ("white", "black", "draw") or "aborted"."""
    game = Game(args.fen)
    human = chess.WHITE if args.color == "white" else chess.BLACK
    depth = args.depth or CONFIG.search.difficulty(args.difficulty).depth

    while not game.is_game_over():
        print(game.position)
        print("----------------------------")

        if game.position.turn == human:
            user_move = input("Enter your move (uci format, e2e4), 'undo' or 'quit': ").strip()
            if user_move == "quit":
                return "aborted"
            if user_move == "undo":
                game.undo(2)
                continue
            if not game.make_move(user_move):
                print("Illegal move, try again.")
            continue

        response = worker.submit({"position": game.fen, "depth": depth}).result()
        if "error" in response:
            print(f"Engine error: {response['error']}")
            return "aborted"
        best = response["bestMove"]
        print(f"Engine plays: {best['san']} ({best['uci']})")
        game.push(best["uci"])

    state = game.state()
    print(game.position)
    print("Game Over")
    print(f"Result: {state.winner}")
    return state.winner


def main(argv: Optional[List[str]] = None) -> int:
    configure_logging()
    args = parse_args(argv)
    with SearchWorker() as worker:
        run(args, worker)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
