"""Fixed-depth negamax search with alpha-beta pruning."""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import chess

from chesspro.config import CONFIG
from chesspro.core import rules
from chesspro.core.evaluator import Evaluator, PieceSquareEvaluator, MATE_THRESHOLD, PIECE_NAMES
from chesspro.core.utils import format_info
from chesspro.errors import InvalidRequestError, NoLegalMovesError, SearchCancelledError

logger = logging.getLogger(__name__)

INF = 1_000_000

# Move ordering tiers: captures, then promotions, then checks, then quiet moves.
CAPTURE_BASE = 10_000
PROMOTION_BASE = 5_000
CHECK_BONUS = 1_000


@dataclass
class SearchOutcome:
    move: chess.Move
    score: int
    depth: int
    nodes: int
    pv: List[chess.Move] = field(default_factory=list)
    elapsed: float = 0.0


class SearchEngine:
    """Depth-limited negamax over python-chess positions.

    The engine keeps no state between searches apart from statistics of
    the last one (``nodes``, ``last_score``), so the same position and
    depth always give the same move.
    """

    def __init__(self, evaluator: Optional[Evaluator] = None, depth: Optional[int] = None):
        self.evaluator = evaluator or PieceSquareEvaluator()
        self.max_depth = depth or CONFIG.search.default_depth
        self.stop_check_interval = CONFIG.search.stop_check_interval
        self.nodes = 0
        self.last_score: Optional[int] = None

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def find_best_move(self, position: rules.PositionLike, depth: Optional[int] = None) -> chess.Move:
        return self.search(position, depth).move

    def search(self, position: rules.PositionLike, depth: Optional[int] = None) -> SearchOutcome:
        self._stop_event.clear()
        return self._search(position, depth)

    def get_hint(self, position: rules.PositionLike, depth: Optional[int] = None) -> chess.Move:
        return self.search(position, depth or CONFIG.search.hint_depth).move

    def start_search(
        self,
        position: rules.PositionLike,
        depth: Optional[int] = None,
        callback: Optional[Callable[[Optional[SearchOutcome], Optional[Exception]], None]] = None,
    ) -> bool:
        """Run a search on a daemon thread; ``callback(outcome, error)`` fires once."""
        if self._thread and self._thread.is_alive():
            return False
        self._stop_event.clear()

        def worker():
            try:
                outcome = self._search(position, depth)
            except Exception as e:
                if callback:
                    callback(None, e)
                return
            if callback:
                callback(outcome, None)

        self._thread = threading.Thread(target=worker, daemon=True)
        self._thread.start()
        return True

    def stop(self, timeout: float = 0.2):
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)

    def _search(self, position: rules.PositionLike, depth: Optional[int]) -> SearchOutcome:
        depth = self.max_depth if depth is None else depth
        if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1:
            raise InvalidRequestError(f"depth must be a positive integer, got {depth!r}")

        board = rules.parse_position(position)
        moves = self._order_moves(board)
        if not moves:
            state = "checkmate" if board.is_check() else "stalemate"
            raise NoLegalMovesError(f"No legal moves ({state}): {board.fen()}")

        self.nodes = 0
        start = time.perf_counter()
        alpha, beta = -INF, INF
        best_move, best_score, best_pv = None, -INF, []

        for move in moves:
            child_pv: List[chess.Move] = []
            board.push(move)
            score = -self._negamax(board, depth - 1, -beta, -alpha, 1, child_pv)
            board.pop()
            # Strict comparison: ties keep the move seen first.
            if score > best_score:
                best_move, best_score = move, score
                best_pv = [move] + child_pv
                alpha = max(alpha, score)

        elapsed = time.perf_counter() - start
        self.last_score = best_score
        logger.debug(format_info(depth, best_score, self.nodes, elapsed, best_pv))
        return SearchOutcome(best_move, best_score, depth, self.nodes, best_pv, elapsed)

    def _negamax(self, board: chess.Board, depth: int, alpha: int, beta: int, ply: int, pv: List[chess.Move]) -> int:
        self.nodes += 1
        if self.nodes % self.stop_check_interval == 0 and self._stop_event.is_set():
            raise SearchCancelledError(f"search stopped after {self.nodes} nodes")

        if depth <= 0:
            return self._leaf(board, ply)

        moves = self._order_moves(board)
        if not moves or rules.is_draw(board):
            return self._leaf(board, ply)

        best = -INF
        for move in moves:
            child_pv: List[chess.Move] = []
            board.push(move)
            score = -self._negamax(board, depth - 1, -beta, -alpha, ply + 1, child_pv)
            board.pop()

            if score > best:
                best = score
                if score > alpha:
                    alpha = score
                    pv[:] = [move] + child_pv
                    if alpha >= beta:
                        break
        return best

    def _leaf(self, board: chess.Board, ply: int) -> int:
        """Evaluator score for the side to move, with mates pulled toward the root."""
        score = self.evaluator.evaluate(board, board.turn)
        if score >= MATE_THRESHOLD:
            return score - ply
        if score <= -MATE_THRESHOLD:
            return score + ply
        return score

    def _order_moves(self, board: chess.Board) -> List[chess.Move]:
        # sorted() is stable, so equal priorities keep generation order.
        return sorted(rules.legal_moves(board), key=lambda m: self._move_priority(board, m), reverse=True)

    def _move_priority(self, board: chess.Board, move: chess.Move) -> int:
        values = self.evaluator.cfg.piece_values
        priority = 0
        victim = rules.captured_piece_type(board, move)
        if victim is not None:
            attacker = board.piece_type_at(move.from_square)
            # MVV-LVA
            priority += CAPTURE_BASE + 10 * values.get(PIECE_NAMES[victim], 0) - values.get(PIECE_NAMES[attacker], 0)
        if move.promotion:
            priority += PROMOTION_BASE + values.get(PIECE_NAMES[move.promotion], 0)
        if board.gives_check(move):
            priority += CHECK_BONUS
        return priority


def find_best_move(position: rules.PositionLike, depth: int, evaluator: Optional[Evaluator] = None) -> chess.Move:
    """Best move for the side to move, searched ``depth`` plies deep."""
    return SearchEngine(evaluator).find_best_move(position, depth)
