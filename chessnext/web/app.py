"""
FastAPI application for the web UI backend.

Exposes:
  GET    /api/difficulties     Tiers for the landing page, flagging the saved one
  GET    /api/game             The saved game (404 if none)
  POST   /api/game             Open a tier: {difficulty, confirm}; 409 if a
                               different started game would be discarded
  DELETE /api/game             Discard the saved game
  GET    /api/game/board.svg   Saved position as SVG
  WS     /ws/play/{difficulty} Play: clicks in, events out

In production FastAPI serves the built frontend from frontend/dist.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import logging.handlers
from datetime import date, datetime
from pathlib import Path

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, Response
from fastapi.staticfiles import StaticFiles

from chessnext.board import ChessBoard
from chessnext.config import load_config_or_default
from chessnext.controller import BoardController
from chessnext.difficulty import TIER_INFO, normalize_tier
from chessnext.engine import SearchEngine, create_engine
from chessnext.events import GameEvent
from chessnext.renderer import render_svg
from chessnext.session import DiscardConfirmationRequired, open_session
from chessnext.store import GameStateStore, JsonFileStore

config = load_config_or_default()
store = GameStateStore(JsonFileStore(config.storage_path), key=config.storage.key)

# --------------------------------------------------------------------------- #
# Logging                                                                      #
# --------------------------------------------------------------------------- #

_LOG_FILE = Path("./logs/chessnext.log")
_LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    handlers=[
        logging.StreamHandler(),                                   # server console
        logging.handlers.RotatingFileHandler(
            _LOG_FILE, maxBytes=2 * 1024 * 1024, backupCount=3,  # 2 MB × 3 files
            encoding="utf-8",
        ),
    ],
)
logger = logging.getLogger("chessnext")


app = FastAPI(title="ChessNext")

# WebSocket close code for "a different saved game needs confirmation first"
_WS_CONFIRM_REQUIRED = 4409


def _engine_factory(difficulty: str) -> SearchEngine:
    return create_engine(config.engine, difficulty)


def _to_json(data: dict) -> str:
    """json.dumps with datetime → ISO-string support."""
    def _default(obj: object) -> str:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
    return json.dumps(data, default=_default)


def _event_json(event: GameEvent) -> str:
    return _to_json({"type": type(event).__name__, **dataclasses.asdict(event)})


def _snapshot(controller: BoardController) -> dict:
    """Full state message sent on connect and after a new game."""
    return {
        "type": "state",
        **controller.state.to_dict(),
        "status": controller.status(),
        "turn": controller.board.turn,
        "gameOver": controller.board.is_game_over,
        "selected": controller.selected_square,
        "legalDestinations": controller.legal_destinations,
        "skill": controller.engine.skill,
    }


_DIST = Path(__file__).parent.parent.parent / "frontend" / "dist"


# --------------------------------------------------------------------------- #
# REST                                                                         #
# --------------------------------------------------------------------------- #

@app.get("/api/difficulties")
def get_difficulties():
    saved = store.saved_difficulty()
    return [
        {
            "name": info.name,
            "displayName": info.display_name,
            "description": info.description,
            "href": info.href,
            "skill": info.skill,
            "saved": saved == info.name,
        }
        for info in TIER_INFO
    ]


@app.get("/api/game")
def get_game():
    state = store.load()
    if state is None:
        raise HTTPException(status_code=404, detail="No saved game")
    return state.to_dict()


@app.post("/api/game")
def open_game(payload: dict):
    difficulty = str(payload.get("difficulty", "")).strip()
    confirm = bool(payload.get("confirm", False))
    if normalize_tier(difficulty) is None:
        raise HTTPException(status_code=404, detail=f"Unknown difficulty: {difficulty}")
    try:
        state = open_session(store, difficulty, confirm=confirm)
    except DiscardConfirmationRequired as exc:
        raise HTTPException(
            status_code=409,
            detail={
                "message": str(exc),
                "savedDifficulty": exc.saved_difficulty,
                "requested": exc.requested,
            },
        ) from exc
    return state.to_dict()


@app.delete("/api/game")
def delete_game():
    store.clear()
    return {"cleared": True}


@app.get("/api/game/board.svg")
def get_board_svg():
    state = store.load()
    board = ChessBoard.from_board(state.replay()) if state else ChessBoard()
    return Response(content=render_svg(board.board, board.last_move), media_type="image/svg+xml")


# --------------------------------------------------------------------------- #
# WebSocket game                                                               #
# --------------------------------------------------------------------------- #

@app.websocket("/ws/play/{difficulty}")
async def play_ws(ws: WebSocket, difficulty: str) -> None:
    await ws.accept()

    if normalize_tier(difficulty) is None:
        await ws.send_text(_to_json({"type": "error", "message": f"Unknown difficulty: {difficulty}"}))
        await ws.close()
        return

    try:
        state = open_session(store, difficulty)
    except DiscardConfirmationRequired as exc:
        await ws.send_text(_to_json({
            "type": "confirm_required",
            "message": str(exc),
            "savedDifficulty": exc.saved_difficulty,
        }))
        await ws.close(code=_WS_CONFIRM_REQUIRED)
        return

    controller = BoardController(
        state, store, _engine_factory, think_time=config.engine.think_time
    )
    engine_task: asyncio.Task | None = None

    async def _send(events: list[GameEvent]) -> None:
        for event in events:
            await ws.send_text(_event_json(event))

    async def _engine_turn() -> None:
        await asyncio.sleep(config.engine.reply_delay)
        try:
            async for event in controller.play_engine_turn():
                await ws.send_text(_event_json(event))
        except WebSocketDisconnect:
            pass
        except Exception:
            logger.exception("Engine turn failed")

    async def _send_error(message: str) -> None:
        await ws.send_text(_to_json({"type": "error", "message": message}))

    def _schedule_engine() -> None:
        nonlocal engine_task
        if controller.engine_due and (engine_task is None or engine_task.done()):
            engine_task = asyncio.create_task(_engine_turn())

    try:
        await ws.send_text(_to_json(_snapshot(controller)))
        _schedule_engine()

        while True:
            try:
                msg = json.loads(await ws.receive_text())
            except json.JSONDecodeError as exc:
                logger.debug("Ignoring malformed websocket message: %s", exc)
                await _send_error("message is not valid JSON")
                continue
            if not isinstance(msg, dict):
                logger.debug("Ignoring non-object websocket message %r", msg)
                await _send_error("message must be a JSON object")
                continue
            match msg.get("type"):
                case "click":
                    await _send(controller.click(str(msg.get("square", ""))))
                    _schedule_engine()
                case "undo":
                    await _send(controller.undo())
                case "tick":
                    seconds = msg.get("seconds", 1)
                    if isinstance(seconds, bool) or not isinstance(seconds, int):
                        logger.debug("Ignoring tick with seconds=%r", seconds)
                        await _send_error(f"invalid tick seconds: {seconds!r}")
                        continue
                    controller.tick(seconds)
                case "new":
                    tier = str(msg.get("difficulty", controller.state.difficulty))
                    if normalize_tier(tier) is None:
                        await _send_error(f"Unknown difficulty: {tier}")
                        continue
                    if engine_task is not None:
                        engine_task.cancel()
                    await controller.new_game(tier)
                    await ws.send_text(_to_json(_snapshot(controller)))
                    _schedule_engine()
                case "state":
                    await ws.send_text(_to_json(_snapshot(controller)))
                case other:
                    logger.debug("Ignoring websocket message type %r", other)

    except WebSocketDisconnect:
        pass
    except Exception as exc:
        logger.exception("Game session failed")
        try:
            await ws.send_text(_to_json({"type": "error", "message": str(exc)}))
        except Exception:
            pass
    finally:
        if engine_task is not None and not engine_task.done():
            engine_task.cancel()
            try:
                await engine_task
            except (asyncio.CancelledError, WebSocketDisconnect):
                pass
        await controller.close()


# --------------------------------------------------------------------------- #
# Serve built frontend in production                                           #
# --------------------------------------------------------------------------- #

if _DIST.exists():
    app.mount(
        "/assets", StaticFiles(directory=_DIST / "assets"), name="assets"
    )

    @app.get("/{full_path:path}")
    async def spa(full_path: str) -> FileResponse:
        return FileResponse(_DIST / "index.html")
