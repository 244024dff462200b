from typing import Sequence

import chess

from chesspro.core.evaluator import MATE_SCORE, MATE_THRESHOLD


def format_score(score: int) -> str:
    """UCI-style score: ``cp 35`` or ``mate 2`` / ``mate -1``."""
    if abs(score) >= MATE_THRESHOLD:
        mate_in = (MATE_SCORE - abs(score) + 1) // 2
        return f"mate {mate_in if score > 0 else -mate_in}"
    return f"cp {score}"


def format_info(depth: int, score: int, nodes: int, elapsed: float, pv_moves: Sequence[chess.Move]) -> str:
    pv_str = " ".join(m.uci() for m in pv_moves)
    nps = int(nodes / elapsed) if elapsed > 0 else 0
    return (
        f"info depth {depth} score {format_score(score)} nodes {nodes} "
        f"nps {nps} time {int(elapsed * 1000)} pv {pv_str}"
    )
