"""Static evaluation: the Evaluator interface and the default table evaluator."""

from abc import ABC, abstractmethod
from typing import Optional

import chess

from chesspro.config import CONFIG, EvalConfig
from chesspro.core import rules

# Checkmate sentinel. Any |score| above MATE_THRESHOLD is a mate score.
MATE_SCORE = 100_000
MATE_THRESHOLD = MATE_SCORE - 1_000

PIECE_NAMES = {
    chess.PAWN: "PAWN",
    chess.KNIGHT: "KNIGHT",
    chess.BISHOP: "BISHOP",
    chess.ROOK: "ROOK",
    chess.QUEEN: "QUEEN",
    chess.KING: "KING",
}


class Evaluator(ABC):
    """Scores a position for one side; higher is better for that side.

    Subclasses only implement :meth:`score_white`, a material/positional
    balance from White's point of view. Terminal handling lives here so
    every variant agrees on mates and draws.
    """

    name = "base"

    def __init__(self, cfg: Optional[EvalConfig] = None):
        self.cfg = cfg or CONFIG.eval

    def evaluate(self, board: chess.Board, color: Optional[chess.Color] = None) -> int:
        if color is None:
            color = board.turn

        if not any(board.generate_legal_moves()):
            if board.is_check():
                # The side to move is mated.
                return -MATE_SCORE if board.turn == color else MATE_SCORE
            return 0
        if rules.is_draw(board):
            return 0

        score = self.score_white(board)
        return score if color == chess.WHITE else -score

    @abstractmethod
    def score_white(self, board: chess.Board) -> int:
        raise NotImplementedError


class PieceSquareEvaluator(Evaluator):
    """Material + piece-square tables + light mobility and king safety."""

    name = "table"

    def score_white(self, board: chess.Board) -> int:
        score = 0
        for pt, p_name in PIECE_NAMES.items():
            value = self.cfg.piece_values.get(p_name, 0)
            table = self.cfg.pst.get(p_name)
            for sq in board.pieces(pt, chess.WHITE):
                score += value + (table[sq] if table else 0)
            for sq in board.pieces(pt, chess.BLACK):
                score -= value + (table[chess.square_mirror(sq)] if table else 0)

        score += self._mobility(board, chess.WHITE) - self._mobility(board, chess.BLACK)
        score += self._king_safety(board, chess.WHITE) - self._king_safety(board, chess.BLACK)
        return score

    def _mobility(self, board: chess.Board, color: chess.Color) -> int:
        own = board.occupied_co[color]
        score = 0
        for p_name, weight in self.cfg.mobility_weights.items():
            pt = chess.PIECE_NAMES.index(p_name.lower())
            for sq in board.pieces(pt, color):
                score += weight * chess.popcount(board.attacks_mask(sq) & ~own)
        return score

    def _king_safety(self, board: chess.Board, color: chess.Color) -> int:
        """Penalties for a bare king while the enemy queen is still on."""
        king_sq = board.king(color)
        if king_sq is None or not board.pieces(chess.QUEEN, not color):
            return 0
        w = self.cfg.king_safety_weights
        score = 0

        home = chess.E1 if color == chess.WHITE else chess.E8
        if king_sq == home and not board.has_castling_rights(color):
            score -= w["lost_castling"]

        step = 1 if color == chess.WHITE else -1
        rank = chess.square_rank(king_sq) + step
        if 0 <= rank <= 7:
            f = chess.square_file(king_sq)
            shield = 0
            for df in (-1, 0, 1):
                if 0 <= f + df <= 7:
                    piece = board.piece_at(chess.square(f + df, rank))
                    if piece == chess.Piece(chess.PAWN, color):
                        shield += 1
            if shield < 2:
                score -= (2 - shield) * w["missing_shield"]
        return score
