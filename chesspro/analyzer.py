# chesspro/analyzer.py
from typing import Any, Dict, List, Optional, Union

import chess

from chesspro.config import CONFIG
from chesspro.core import SearchEngine, rules

# Thresholds on value lost versus the engine's best move, in centipawns.
TH_BRILLIANT = 10
TH_GOOD = 50
TH_INACCURACY = 150
TH_MISTAKE = 350
# >= TH_MISTAKE => "blunder"


class Analyzer:
    def __init__(self, search_engine: Optional[SearchEngine] = None, depth: Optional[int] = None):
        self.search_engine = search_engine or SearchEngine()
        self.depth = depth or CONFIG.search.hint_depth

    def _score_after(self, board: chess.Board, move: chess.Move, mover: chess.Color) -> int:
        """Static score after ``move``, from the mover's point of view."""
        return self.search_engine.evaluator.evaluate(rules.apply_move(board, move), mover)

    def classify_move(
        self,
        position: rules.PositionLike,
        move: Union[str, chess.Move],
        best_move: Optional[Union[str, chess.Move]] = None,
    ) -> Dict[str, Any]:
        """
        Classify a single move.
        - position: the position BEFORE the move (not modified).
        - move: the player's move, chess.Move or UCI string.
        - best_move: the engine's choice when it was searched elsewhere
          (e.g. by a worker process); searched here when omitted.
        Returns a dict with the label and the scores it was derived from.
        """
        board = rules.parse_position(position)
        move = rules.parse_move(board, move)
        mover = board.turn

        played_score = self._score_after(board, move, mover)
        gives_mate = rules.apply_move(board, move).is_checkmate()
        if best_move is None:
            best_move = self.search_engine.find_best_move(board, self.depth)
        else:
            best_move = rules.parse_move(board, best_move)
        best_score = self._score_after(board, best_move, mover)
        lost = best_score - played_score

        if gives_mate or lost < TH_BRILLIANT:
            label = "brilliant"
        elif lost < TH_GOOD:
            label = "good"
        elif lost < TH_INACCURACY:
            label = "inaccuracy"
        elif lost < TH_MISTAKE:
            label = "mistake"
        else:
            label = "blunder"

        return {
            "move": move.uci(),
            "san": board.san(move),
            "label": label,
            "played_score": played_score,
            "best_move": best_move.uci(),
            "best_score": best_score,
            "lost_value": lost,
            "player": rules.color_name(mover),
        }

    def analyze_game(self, moves: List[str], start: Optional[rules.PositionLike] = None) -> List[Dict[str, Any]]:
        """
        Analyze a list of moves (UCI strings) played from ``start``.
        Raises IllegalMoveError on the first illegal move.
        """
        board = rules.parse_position(start) if start is not None else chess.Board()
        report = []
        for mv_uci in moves:
            report.append(self.classify_move(board, mv_uci))
            board = rules.apply_move(board, mv_uci)
        return report
