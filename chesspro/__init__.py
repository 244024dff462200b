"""ChessPro core: move search, evaluation, worker boundary and game state."""

__version__ = "0.2.0"
