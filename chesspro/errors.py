"""Error taxonomy shared by the search engine, the worker boundary and the API.

Each class carries a ``kind`` equal to its class name; the worker uses it to
tag error responses so callers can branch without parsing messages.
"""


class ChessProError(Exception):
    """Base class for all chesspro errors."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidPositionError(ChessProError, ValueError):
    """The board encoding does not parse or is not self-consistent."""


class IllegalMoveError(ChessProError, ValueError):
    """A move outside the legal set was applied to a position."""


class NoLegalMovesError(ChessProError):
    """Search was requested on a position that is already checkmate or stalemate."""


class InvalidRequestError(ChessProError, ValueError):
    """A search request is malformed (bad depth, missing position, ...)."""


class SearchCancelledError(ChessProError):
    """The running search was stopped before it completed."""


class WorkerComputationError(ChessProError):
    """Unexpected failure inside the worker, converted at the boundary."""
