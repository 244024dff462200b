"""
BitboardEvaluator Module
========================

Alternate static evaluator working on python-chess bitboards (64-bit masks).

Key Features:
    - Tapered Evaluation (interpolating between Middle Game and End Game).
    - Pawn structure (doubled, isolated, passed) via bitwise masks.
    - Bishop pair, mobility and a pawn-shield king safety term.

Terminal handling (mates, stalemate, draws) is inherited from
:class:`chesspro.core.evaluator.Evaluator`.

Author: Medo
License: MIT
"""

from typing import List, Optional

import chess

from chesspro.config import EvalConfig
from chesspro.core.evaluator import Evaluator, PIECE_NAMES

# --- Constants & Pre-computations ---

# Represents a vertical file (File A) as a 64-bit integer.
# 0x0101010101010101 = Binary 00000001 repeated 8 times (A1, A2... A8).
FILE_A: int = 0x0101010101010101

# Array of bitmasks for all 8 files (File A to File H).
FILES: List[int] = [FILE_A << i for i in range(8)]

PHASE_WEIGHTS = {
    chess.KNIGHT: 1,
    chess.BISHOP: 1,
    chess.ROOK: 2,
    chess.QUEEN: 4,
}
MAX_PHASE = 24


class BitboardEvaluator(Evaluator):
    """
    Evaluator variant using bitboards and a tapered middle/end game blend.

    Stateful only regarding configuration and pre-computed masks; the
    evaluation itself depends on nothing but the board.
    """

    name = "bitboard"

    def __init__(self, cfg: Optional[EvalConfig] = None) -> None:
        super().__init__(cfg)

        # neighbor_masks[i] contains bits for files adjacent to file i.
        self.neighbor_masks: List[int] = [0] * 8
        for f in range(8):
            if f > 0:
                self.neighbor_masks[f] |= FILES[f - 1]
            if f < 7:
                self.neighbor_masks[f] |= FILES[f + 1]

        # "Front spans" for passed pawn detection.
        self.white_passed_masks: List[int] = [0] * 64
        self.black_passed_masks: List[int] = [0] * 64
        self._init_passed_masks()

    def _init_passed_masks(self) -> None:
        """
        A pawn is passed if no enemy pawns exist in its front span: the
        squares ahead of it on its own file and both adjacent files.
        """
        for sq in range(64):
            f, r = chess.square_file(sq), chess.square_rank(sq)
            span_files = FILES[f] | self.neighbor_masks[f]

            w_front = 0
            for rr in range(r + 1, 8):
                w_front |= chess.BB_RANKS[rr]
            self.white_passed_masks[sq] = w_front & span_files

            b_front = 0
            for rr in range(0, r):
                b_front |= chess.BB_RANKS[rr]
            self.black_passed_masks[sq] = b_front & span_files

    def score_white(self, board: chess.Board) -> int:
        """
        Returns:
            int: centipawns from White's point of view.
        """
        mg_score = 0  # Middle Game Score
        eg_score = 0  # End Game Score
        phase = 0  # Game Phase (0=Endgame, 24=Opening)

        # --- Material & PST ---
        for pt, p_name in PIECE_NAMES.items():
            value = self.cfg.piece_values.get(p_name, 0)
            table_mg = self.cfg.pst.get(p_name)
            table_eg = self.cfg.king_endgame_pst if pt == chess.KING else table_mg

            for color, sign in ((chess.WHITE, 1), (chess.BLACK, -1)):
                squares = board.pieces(pt, color)
                phase += len(squares) * PHASE_WEIGHTS.get(pt, 0)
                mg_score += sign * len(squares) * value
                eg_score += sign * len(squares) * value
                for sq in squares:
                    # Mirror the square index for Black (A1 becomes A8)
                    idx = sq if color == chess.WHITE else chess.square_mirror(sq)
                    if table_mg:
                        mg_score += sign * table_mg[idx]
                    if table_eg:
                        eg_score += sign * table_eg[idx]

        # --- Pawn structure: half weight in MG, full weight in EG ---
        white_pawns = board.pieces_mask(chess.PAWN, chess.WHITE)
        black_pawns = board.pieces_mask(chess.PAWN, chess.BLACK)
        pawns = (
            self._eval_pawns_bitwise(white_pawns, black_pawns, chess.WHITE)
            - self._eval_pawns_bitwise(black_pawns, white_pawns, chess.BLACK)
        )
        mg_score += pawns // 2
        eg_score += pawns

        # --- Bishop pair ---
        bonus = self.cfg.bishop_pair_bonus
        if len(board.pieces(chess.BISHOP, chess.WHITE)) >= 2:
            mg_score += bonus
            eg_score += bonus
        if len(board.pieces(chess.BISHOP, chess.BLACK)) >= 2:
            mg_score -= bonus
            eg_score -= bonus

        # --- Mobility ---
        mob = self._eval_mobility(board, chess.WHITE) - self._eval_mobility(board, chess.BLACK)
        mg_score += mob
        eg_score += mob

        # --- King safety matters in the middle game only ---
        mg_score += self._eval_king_shield(board, chess.WHITE) - self._eval_king_shield(board, chess.BLACK)

        phase = min(phase, MAX_PHASE)
        return (mg_score * phase + eg_score * (MAX_PHASE - phase)) // MAX_PHASE

    def _eval_pawns_bitwise(self, my_pawns: int, opp_pawns: int, color: chess.Color) -> int:
        """
        Features Evaluated:
            - Doubled Pawns: penalty per extra pawn on a file.
            - Isolated Pawns: no friendly pawns on adjacent files.
            - Passed Pawns: no enemy pawns in the front span.
        """
        w = self.cfg.pawn_structure_weights
        score = 0

        for f in range(8):
            pawns_on_file = chess.popcount(my_pawns & FILES[f])
            if pawns_on_file > 1:
                score += (pawns_on_file - 1) * w["doubled_penalty"]

        for sq in chess.SquareSet(my_pawns):
            file = chess.square_file(sq)
            if (my_pawns & self.neighbor_masks[file]) == 0:
                score += w["isolated_penalty"]

            passed_mask = (
                self.white_passed_masks[sq]
                if color == chess.WHITE
                else self.black_passed_masks[sq]
            )
            if (passed_mask & opp_pawns) == 0:
                rank = chess.square_rank(sq)
                rel_rank = rank if color == chess.WHITE else 7 - rank
                score += self.cfg.passed_pawn_bonus[rel_rank]

        return score

    def _eval_mobility(self, board: chess.Board, color: chess.Color) -> int:
        own = board.occupied_co[color]
        score = 0
        for p_name, weight in self.cfg.mobility_weights.items():
            pt = chess.PIECE_NAMES.index(p_name.lower())
            for sq in board.pieces(pt, color):
                score += weight * chess.popcount(board.attacks_mask(sq) & ~own)
        return score

    def _eval_king_shield(self, board: chess.Board, color: chess.Color) -> int:
        """Penalty for missing pawns directly in front of the king."""
        king_sq = board.king(color)
        if king_sq is None:
            return 0
        rank = chess.square_rank(king_sq) + (1 if color == chess.WHITE else -1)
        if not 0 <= rank <= 7:
            return 0
        f = chess.square_file(king_sq)
        shield_files = FILES[f] | self.neighbor_masks[f]
        shield = chess.BB_RANKS[rank] & shield_files & board.pieces_mask(chess.PAWN, color)
        missing = max(0, 2 - chess.popcount(shield))
        return -missing * self.cfg.king_safety_weights["missing_shield"]
