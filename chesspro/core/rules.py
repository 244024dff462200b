"""Rules provider: a thin functional layer over python-chess.

Every function treats its board argument as read-only. Moves are applied to
copies, so a position handed in by a caller is never changed.
"""

from typing import List, Optional, Union

import chess

from chesspro.errors import IllegalMoveError, InvalidPositionError

PositionLike = Union[str, chess.Board]


def parse_position(position: PositionLike) -> chess.Board:
    """Return a private board for a FEN string or an existing board."""
    if isinstance(position, chess.Board):
        board = position.copy()
    elif isinstance(position, str):
        try:
            board = chess.Board(position.strip())
        except ValueError as e:
            raise InvalidPositionError(f"Invalid FEN: {e}") from e
    else:
        raise InvalidPositionError(f"Unsupported position type: {type(position).__name__}")

    if not board.is_valid():
        raise InvalidPositionError(f"Inconsistent position: {board.status()!r}")
    return board


def parse_move(board: chess.Board, move: Union[str, chess.Move]) -> chess.Move:
    """Parse a UCI string (or pass a Move through) and check it is legal."""
    if isinstance(move, str):
        try:
            move = chess.Move.from_uci(move.strip())
        except ValueError as e:
            raise IllegalMoveError(f"Invalid UCI move: {move}") from e
    if move not in board.legal_moves:
        raise IllegalMoveError(f"Illegal move: {move.uci()} in {board.fen()}")
    return move


def legal_moves(board: chess.Board) -> List[chess.Move]:
    """Legal moves in python-chess generation order."""
    return list(board.legal_moves)


def apply_move(board: chess.Board, move: Union[str, chess.Move]) -> chess.Board:
    """Return a new board with ``move`` played; the move stack is kept."""
    move = parse_move(board, move)
    child = board.copy()
    child.push(move)
    return child


def turn(board: chess.Board) -> chess.Color:
    return board.turn


def is_check(board: chess.Board) -> bool:
    return board.is_check()


def is_checkmate(board: chess.Board) -> bool:
    return board.is_checkmate()


def is_stalemate(board: chess.Board) -> bool:
    return board.is_stalemate()


def is_draw(board: chess.Board) -> bool:
    """Insufficient material, fifty-move rule or threefold repetition.

    Stalemate is reported separately by :func:`is_stalemate`.
    """
    if board.is_insufficient_material():
        return True
    if board.halfmove_clock >= 100 and not board.is_checkmate():
        return True
    return board.is_repetition(3)


def is_game_over(board: chess.Board) -> bool:
    return board.is_checkmate() or board.is_stalemate() or is_draw(board)


def captured_piece_type(board: chess.Board, move: chess.Move) -> Optional[chess.PieceType]:
    """Piece type taken by ``move`` on ``board`` (before the move), if any."""
    if board.is_en_passant(move):
        return chess.PAWN
    if not board.is_capture(move):
        return None
    return board.piece_type_at(move.to_square)


def color_name(color: chess.Color) -> str:
    return "white" if color == chess.WHITE else "black"
