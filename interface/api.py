"""FastAPI REST interface: game session, engine moves and hints."""

import logging
import threading
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from chesspro.analyzer import Analyzer
from chesspro.config import CONFIG, DIFFICULTY_LEVELS, configure_logging
from chesspro.core import rules
from chesspro.errors import ChessProError, IllegalMoveError, InvalidPositionError
from chesspro.game_state import Game
from chesspro.worker import SearchWorker

logger = logging.getLogger(__name__)

CLIENT_ERROR_KINDS = {
    "InvalidPositionError",
    "IllegalMoveError",
    "InvalidRequestError",
    "NoLegalMovesError",
}

# One search process shared by the app; requests queue behind each other.
worker = SearchWorker()
game = Game()
_game_lock = threading.Lock()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield
    worker.shutdown(wait=False)


app = FastAPI(title=CONFIG.api.title, version="0.2.0", lifespan=lifespan)


class FenRequest(BaseModel):
    fen: str


class MoveRequest(BaseModel):
    move: str  # UCI format e.g. "e2e4"


class UndoRequest(BaseModel):
    plies: int = Field(1, ge=1)


class SearchBody(BaseModel):
    position: Optional[str] = None
    depth: Optional[int] = Field(None, ge=1, le=CONFIG.search.max_depth)
    difficulty: Optional[str] = None
    requestTag: Optional[str] = None


class HintBody(BaseModel):
    position: Optional[str] = None


class AnalyzeBody(BaseModel):
    move: str
    position: Optional[str] = None
    depth: Optional[int] = Field(None, ge=1, le=CONFIG.search.max_depth)


def _resolve_depth(depth: Optional[int], difficulty: Optional[str]) -> int:
    if depth is not None:
        return depth
    if difficulty is not None:
        return CONFIG.search.difficulty(difficulty).depth
    return CONFIG.search.default_depth


def _session_fen() -> str:
    with _game_lock:
        return game.fen


def _raise_for_error(response: Dict[str, Any]):
    if "error" not in response:
        return
    status = 400 if response.get("errorKind") in CLIENT_ERROR_KINDS else 500
    logger.info("search rejected (%d): %s", status, response["error"])
    raise HTTPException(status_code=status, detail=response["error"])


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/difficulties")
def difficulties():
    return [asdict(level) for level in DIFFICULTY_LEVELS]


@app.get("/state")
def get_state():
    with _game_lock:
        return game.state().to_dict()


@app.post("/position")
def set_position(req: FenRequest):
    with _game_lock:
        try:
            game.reset(req.fen)
        except InvalidPositionError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return game.state().to_dict()


@app.post("/move")
def make_move(req: MoveRequest):
    with _game_lock:
        try:
            game.push(req.move)
        except IllegalMoveError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return game.state().to_dict()


@app.post("/undo")
def undo_move(req: UndoRequest = UndoRequest()):
    with _game_lock:
        game.undo(req.plies)
        return game.state().to_dict()


@app.post("/reset")
def reset_board():
    with _game_lock:
        game.reset()
        return game.state().to_dict()


@app.post("/search")
async def search_move(req: SearchBody = SearchBody()):
    message = {
        "position": req.position or _session_fen(),
        "depth": _resolve_depth(req.depth, req.difficulty),
        "requestTag": req.requestTag,
    }
    response = await worker.request(message)
    _raise_for_error(response)
    return response


@app.post("/ai-move")
async def ai_move(req: SearchBody = SearchBody()):
    """Let the engine play the side to move in the session game."""
    fen = _session_fen()
    response = await worker.request({
        "position": fen,
        "depth": _resolve_depth(req.depth, req.difficulty),
        "requestTag": req.requestTag,
    })
    _raise_for_error(response)
    with _game_lock:
        if game.fen != fen:
            raise HTTPException(status_code=409, detail="Position changed during search")
        game.push(response["bestMove"]["uci"])
        return game.state().to_dict()


@app.post("/hint")
async def hint(req: HintBody = HintBody()):
    response = await worker.request({
        "position": req.position or _session_fen(),
        "depth": CONFIG.search.hint_depth,
    })
    _raise_for_error(response)
    best = response["bestMove"]
    return {"hint": best["uci"], "san": best["san"]}


@app.post("/analyze")
async def analyze(req: AnalyzeBody):
    """Label a move; the engine's reference move is searched by the worker."""
    try:
        board = rules.parse_position(req.position or _session_fen())
        rules.parse_move(board, req.move)
    except ChessProError as e:
        raise HTTPException(status_code=400, detail=str(e))

    response = await worker.request({
        "position": board.fen(),
        "depth": req.depth or CONFIG.search.hint_depth,
    })
    _raise_for_error(response)
    return Analyzer().classify_move(board, req.move, best_move=response["bestMove"]["uci"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=CONFIG.api.host, port=CONFIG.api.port)
