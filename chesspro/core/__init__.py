"""Core engine components: rules adapter, evaluators and search."""

from .bitboard_evaluator import BitboardEvaluator
from .evaluator import Evaluator, PieceSquareEvaluator, MATE_SCORE
from .search import SearchEngine, SearchOutcome, find_best_move

EVALUATORS = {
    PieceSquareEvaluator.name: PieceSquareEvaluator,
    BitboardEvaluator.name: BitboardEvaluator,
}


def make_evaluator(name: str = PieceSquareEvaluator.name) -> Evaluator:
    """Build an evaluator by registry name ("table" or "bitboard")."""
    try:
        return EVALUATORS[name]()
    except KeyError:
        raise ValueError(f"Unknown evaluator: {name!r}") from None
