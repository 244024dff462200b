"""Display-facing game state derived from a position and its move history.

Nothing here is updated incrementally: :func:`build_game_state` recomputes
the whole record every time the (position, history) pair changes.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import chess

from chesspro.core import rules
from chesspro.errors import IllegalMoveError


@dataclass(frozen=True)
class MoveRecord:
    """One played move, captured against the position it was played in."""

    uci: str
    san: str
    from_square: chess.Square
    to_square: chess.Square
    color: chess.Color
    promotion: Optional[chess.PieceType] = None
    captured: Optional[chess.PieceType] = None

    @classmethod
    def from_board(cls, board: chess.Board, move: chess.Move) -> "MoveRecord":
        """Describe ``move`` as played from ``board`` (the position before it)."""
        return cls(
            uci=move.uci(),
            san=board.san(move),
            from_square=move.from_square,
            to_square=move.to_square,
            color=board.turn,
            promotion=move.promotion,
            captured=rules.captured_piece_type(board, move),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": chess.square_name(self.from_square),
            "to": chess.square_name(self.to_square),
            "promotion": chess.piece_symbol(self.promotion) if self.promotion else None,
            "captured": chess.piece_symbol(self.captured) if self.captured else None,
            "color": rules.color_name(self.color),
            "uci": self.uci,
            "san": self.san,
        }


@dataclass(frozen=True)
class CapturedPieces:
    """Captured piece kinds bucketed by the victim's color."""

    white: Tuple[chess.PieceType, ...] = ()
    black: Tuple[chess.PieceType, ...] = ()

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "white": [chess.piece_symbol(pt) for pt in self.white],
            "black": [chess.piece_symbol(pt) for pt in self.black],
        }


@dataclass(frozen=True)
class GameState:
    position: chess.Board = field(compare=False, repr=False)
    fen: str
    turn: chess.Color
    is_check: bool
    is_checkmate: bool
    is_stalemate: bool
    is_draw: bool
    is_game_over: bool
    move_history: Tuple[MoveRecord, ...]
    captured_pieces: CapturedPieces
    last_move: Optional[MoveRecord]
    winner: Optional[str]  # "white" | "black" | "draw" | None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fen": self.fen,
            "turn": rules.color_name(self.turn),
            "isCheck": self.is_check,
            "isCheckmate": self.is_checkmate,
            "isStalemate": self.is_stalemate,
            "isDraw": self.is_draw,
            "isGameOver": self.is_game_over,
            "moveHistory": [m.to_dict() for m in self.move_history],
            "capturedPieces": self.captured_pieces.to_dict(),
            "lastMove": self.last_move.to_dict() if self.last_move else None,
            "winner": self.winner,
        }


def captured_pieces(history: Sequence[MoveRecord]) -> CapturedPieces:
    """Fold the history: each captured kind goes to the victim's bucket."""
    white: List[chess.PieceType] = []
    black: List[chess.PieceType] = []
    for record in history:
        if record.captured is None:
            continue
        # White moved and captured, so the victim was black, and vice versa.
        if record.color == chess.WHITE:
            black.append(record.captured)
        else:
            white.append(record.captured)
    return CapturedPieces(white=tuple(white), black=tuple(black))


def winner_of(board: chess.Board) -> Optional[str]:
    if rules.is_draw(board) or rules.is_stalemate(board):
        return "draw"
    if rules.is_checkmate(board):
        # The side to move is the one mated.
        return rules.color_name(not board.turn)
    return None


def build_game_state(position: chess.Board, history: Sequence[MoveRecord] = ()) -> GameState:
    history = tuple(history)
    is_checkmate = rules.is_checkmate(position)
    is_stalemate = rules.is_stalemate(position)
    is_draw = rules.is_draw(position)
    return GameState(
        position=position.copy(),
        fen=position.fen(),
        turn=rules.turn(position),
        is_check=rules.is_check(position),
        is_checkmate=is_checkmate,
        is_stalemate=is_stalemate,
        is_draw=is_draw,
        is_game_over=is_checkmate or is_stalemate or is_draw,
        move_history=history,
        captured_pieces=captured_pieces(history),
        last_move=history[-1] if history else None,
        winner=winner_of(position),
    )


class Game:
    """A single game: the current position plus an append-only history.

    Each accepted move produces a new position through the rules adapter;
    earlier positions are kept so moves can be taken back.
    """

    def __init__(self, fen: Optional[str] = None):
        self.reset(fen)

    def reset(self, fen: Optional[str] = None):
        """Start over from ``fen`` or the standard initial position."""
        start = rules.parse_position(fen) if fen else chess.Board()
        self._positions: List[chess.Board] = [start]
        self.history: Tuple[MoveRecord, ...] = ()

    @property
    def position(self) -> chess.Board:
        return self._positions[-1]

    @property
    def fen(self) -> str:
        return self.position.fen()

    def push(self, move: Union[str, chess.Move]) -> MoveRecord:
        """Play ``move``; raises IllegalMoveError if it is not legal."""
        board = self.position
        move = rules.parse_move(board, move)
        record = MoveRecord.from_board(board, move)
        self._positions.append(rules.apply_move(board, move))
        self.history = self.history + (record,)
        return record

    def make_move(self, move: Union[str, chess.Move]) -> bool:
        """Push a UCI move (e.g. 'e2e4'). Returns True if legal."""
        try:
            self.push(move)
        except IllegalMoveError:
            return False
        return True

    def undo(self, plies: int = 1) -> int:
        """Take back up to ``plies`` moves; returns how many were undone."""
        plies = max(0, min(plies, len(self.history)))
        if plies:
            del self._positions[-plies:]
            self.history = self.history[:-plies]
        return plies

    def is_game_over(self) -> bool:
        return rules.is_game_over(self.position)

    def state(self) -> GameState:
        return build_game_state(self.position, self.history)
