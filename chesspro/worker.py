"""Concurrency boundary: search requests answered by isolated worker processes.

Messages in and out are plain dicts::

    request  = {"position": <FEN>, "depth": <int >= 1>, "requestTag": <str, optional>}
    response = {"bestMove": {...}, "requestTag": ...}
             | {"error": <str>, "errorKind": <str>, "requestTag": ...}

Exceptions never cross the boundary; every failure becomes an error response.
Each :class:`SearchWorker` owns one process, so its requests run strictly in
submission order. There is no cancellation and no timeout at this layer.
"""

import asyncio
import logging
import threading
import zlib
from concurrent.futures import Future, ProcessPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from chesspro.config import CONFIG, configure_logging
from chesspro.core import SearchEngine, make_evaluator, rules
from chesspro.errors import ChessProError, InvalidRequestError, WorkerComputationError
from chesspro.game_state import MoveRecord

logger = logging.getLogger(__name__)


class SearchRequest(BaseModel):
    position: str = Field(..., min_length=1, description="FEN of the position to search")
    depth: int = Field(..., ge=1, le=CONFIG.search.max_depth, strict=True)
    requestTag: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


def error_response(error: ChessProError, request_tag: Any = None) -> Dict[str, Any]:
    return {"error": str(error), "errorKind": error.kind, "requestTag": request_tag}


def _validation_message(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}" if loc else err.get("msg", "invalid value"))
    return "Invalid search request: " + "; ".join(parts)


def handle_request(message: Any, engine: Optional[SearchEngine] = None) -> Dict[str, Any]:
    """Answer one search request message. Never raises."""
    tag = message.get("requestTag") if isinstance(message, dict) else None
    try:
        request = SearchRequest.model_validate(message)
    except ValidationError as e:
        return error_response(InvalidRequestError(_validation_message(e)), tag)

    engine = engine or _worker_engine or SearchEngine()
    logger.debug("search request tag=%s depth=%d fen=%s", tag, request.depth, request.position)
    try:
        board = rules.parse_position(request.position)
        move = engine.find_best_move(board, request.depth)
        best = MoveRecord.from_board(board, move).to_dict()
    except ChessProError as e:
        logger.info("search request tag=%s rejected: %s: %s", tag, e.kind, e)
        return error_response(e, tag)
    except Exception as e:
        logger.exception("search request tag=%s failed", tag)
        return error_response(WorkerComputationError(f"Failed to calculate move: {e}"), tag)

    logger.debug("search request tag=%s done: %s (%d nodes)", tag, best["uci"], engine.nodes)
    return {"bestMove": best, "requestTag": request.requestTag}


# ── Worker process state ───────────────────────────────────
_worker_engine: Optional[SearchEngine] = None


def _init_worker(evaluator: str, log_level: str):
    """Build the SearchEngine owned by this worker process."""
    global _worker_engine
    configure_logging(log_level)
    _worker_engine = SearchEngine(make_evaluator(evaluator))


def _run_request(message: Dict[str, Any]) -> Dict[str, Any]:
    return handle_request(message, _worker_engine)


class SearchWorker:
    """One isolated process hosting its own SearchEngine."""

    def __init__(self, evaluator: str = "table"):
        make_evaluator(evaluator)  # fail fast on unknown names
        self.evaluator = evaluator
        self._pool: Optional[ProcessPoolExecutor] = None
        self._lock = threading.Lock()

    def start(self):
        with self._lock:
            if self._pool is None:
                self._pool = ProcessPoolExecutor(
                    max_workers=1,
                    initializer=_init_worker,
                    initargs=(self.evaluator, CONFIG.log_level),
                )

    def _restart(self):
        with self._lock:
            if self._pool is not None:
                self._pool.shutdown(wait=False, cancel_futures=True)
                self._pool = None
        logger.warning("search worker process was lost; starting a new one")
        self.start()

    def submit(self, message: Dict[str, Any]) -> "Future[Dict[str, Any]]":
        """Queue a request; the returned future always resolves to a response dict."""
        tag = message.get("requestTag") if isinstance(message, dict) else None
        result: "Future[Dict[str, Any]]" = Future()
        self.start()
        try:
            inner = self._pool.submit(_run_request, message)
        except BrokenProcessPool:
            self._restart()
            inner = self._pool.submit(_run_request, message)

        def _done(f: Future):
            try:
                result.set_result(f.result())
            except Exception as e:
                logger.error("search worker failed for tag=%s: %r", tag, e)
                result.set_result(error_response(WorkerComputationError(f"Worker failure: {e!r}"), tag))

        inner.add_done_callback(_done)
        return result

    async def request(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Await a response without blocking the event loop."""
        return await asyncio.wrap_future(self.submit(message))

    def shutdown(self, wait: bool = True):
        with self._lock:
            if self._pool is not None:
                self._pool.shutdown(wait=wait, cancel_futures=not wait)
                self._pool = None

    def __enter__(self) -> "SearchWorker":
        self.start()
        return self

    def __exit__(self, *exc):
        self.shutdown()


class EnginePool:
    """Independent SearchWorkers; a routing key always maps to the same one."""

    def __init__(self, size: Optional[int] = None, evaluator: str = "table"):
        size = max(1, size or CONFIG.worker.processes)
        self.workers: List[SearchWorker] = [SearchWorker(evaluator) for _ in range(size)]

    def worker_for(self, key: str) -> SearchWorker:
        return self.workers[zlib.crc32(key.encode("utf-8")) % len(self.workers)]

    def submit(self, key: str, message: Dict[str, Any]) -> "Future[Dict[str, Any]]":
        return self.worker_for(key).submit(message)

    def shutdown(self, wait: bool = True):
        for worker in self.workers:
            worker.shutdown(wait=wait)

    def __enter__(self) -> "EnginePool":
        return self

    def __exit__(self, *exc):
        self.shutdown()
