from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Dict, List, Optional

from fastapi import (
    FastAPI,
    WebSocket,
    WebSocketDisconnect,
    HTTPException,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from app.database import AsyncSessionMaker, init_db
from app.schemas import (
    ManualRoundRequest,
    RoundPreview,
    SessionOut,
    SplitRoundRequest,
    StartSessionRequest,
)
from app.services.storage import StorageError, delete_snapshot, load_snapshot, save_snapshot
from app.settings import settings
from catalog import list_game_types
from errors import EmptyLedgerError, UnknownGameType
from export import export_csv, format_delta
from game import GameState
from leaderboard import leader, standings
from models import Declaration, Round, RoundMetadata
from scoring import calculate_round, distribute_loss

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

ALLOWED_ORIGINS = settings.allowed_origins()

app = FastAPI()
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

logger.info("[CORS] allow_origins: %s", ALLOWED_ORIGINS)

# Active sessions. The engine does no locking of its own, so every change to a
# session goes through that session's lock. Sessions stay in memory until they
# are closed with DELETE /api/sessions/{id}; there is no idle eviction.
SESSIONS: Dict[str, GameState] = {}
LOCKS: Dict[str, asyncio.Lock] = {}


@app.on_event("startup")
async def _prepare_db() -> None:
    if settings.persist_sessions:
        await init_db()


# ---------- helpers ----------
def _lock(session_id: str) -> asyncio.Lock:
    return LOCKS.setdefault(session_id, asyncio.Lock())


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, UnknownGameType):
        return HTTPException(status_code=422, detail="unknown_game_type")
    if isinstance(exc, EmptyLedgerError):
        return HTTPException(status_code=409, detail="ledger_empty")
    return HTTPException(status_code=400, detail=str(exc))


async def _persist(session_id: str, state: GameState) -> None:
    if not settings.persist_sessions:
        return
    try:
        async with AsyncSessionMaker() as db:
            await save_snapshot(db, session_id, state.to_snapshot())
    except StorageError as exc:
        # the in-memory session stays authoritative
        logger.warning("[Storage] %s: %s", exc, exc.__cause__)


async def _restore(session_id: str) -> Optional[GameState]:
    if not settings.persist_sessions:
        return None
    try:
        async with AsyncSessionMaker() as db:
            snapshot = await load_snapshot(db, session_id)
    except StorageError as exc:
        logger.warning("[Storage] %s, starting a fresh session: %s", exc, exc.__cause__)
        return GameState()
    if snapshot is None:
        return None
    return GameState.from_snapshot(snapshot)


async def _get_session_or_404(session_id: str) -> GameState:
    state = SESSIONS.get(session_id)
    if state is not None:
        return state
    # load under the session lock so concurrent requests share one instance
    async with _lock(session_id):
        state = SESSIONS.get(session_id)
        if state is None:
            state = await _restore(session_id)
            if state is None:
                LOCKS.pop(session_id, None)
                raise HTTPException(status_code=404, detail="session_not_found")
            SESSIONS[session_id] = state
    return state


def _session_view(session_id: str, state: GameState) -> dict:
    view = SessionOut(
        session_id=session_id,
        started=state.started,
        players=state.players,
        rounds=list(state.rounds),
        standings=standings(state.players),
        leader_id=leader(state.players),
    )
    return view.model_dump(mode="json", by_alias=True)


def _round_out(rnd: Round) -> dict:
    return rnd.model_dump(mode="json", by_alias=True)


async def _after_change(session_id: str, state: GameState) -> None:
    await _persist(session_id, state)
    await hub.send_session_state(session_id)


# ---------- REST ----------
@app.get("/api/game-types")
async def game_types():
    return [g.model_dump(by_alias=True) for g in list_game_types()]


@app.get("/api/sessions")
async def sessions():
    return [
        {
            "session_id": sid,
            "started": state.started,
            "players": [p.name for p in state.players],
            "rounds": len(state.ledger),
        }
        for sid, state in SESSIONS.items()
    ]


@app.post("/api/sessions")
async def create_session(req: StartSessionRequest):
    try:
        state = GameState.start(req.names)
    except ValueError as exc:
        raise _http_error(exc)
    session_id = str(uuid.uuid4())[:8]
    SESSIONS[session_id] = state
    await _persist(session_id, state)
    return {"session_id": session_id}


@app.get("/api/sessions/{session_id}")
async def session_state(session_id: str):
    state = await _get_session_or_404(session_id)
    return _session_view(session_id, state)


@app.post("/api/sessions/{session_id}/start")
async def start_session(session_id: str, req: StartSessionRequest):
    state = await _get_session_or_404(session_id)
    async with _lock(session_id):
        try:
            state.setup(req.names)
        except ValueError as exc:
            raise _http_error(exc)
        await _after_change(session_id, state)
    return _session_view(session_id, state)


@app.post("/api/sessions/{session_id}/reset")
async def reset_session(session_id: str):
    state = await _get_session_or_404(session_id)
    async with _lock(session_id):
        state.reset()
        await _after_change(session_id, state)
    return {"ok": True}


@app.delete("/api/sessions/{session_id}")
async def close_session(session_id: str):
    await _get_session_or_404(session_id)
    async with _lock(session_id):
        SESSIONS.pop(session_id, None)
        if settings.persist_sessions:
            try:
                async with AsyncSessionMaker() as db:
                    await delete_snapshot(db, session_id)
            except StorageError as exc:
                logger.warning("[Storage] %s: %s", exc, exc.__cause__)
    LOCKS.pop(session_id, None)
    return {"ok": True}


@app.post("/api/sessions/{session_id}/rounds/preview")
async def preview_round(session_id: str, declaration: Declaration):
    state = await _get_session_or_404(session_id)
    try:
        deltas = calculate_round(state.players, declaration)
    except (ValueError, UnknownGameType) as exc:
        raise _http_error(exc)
    preview = RoundPreview(
        per_player_delta=deltas,
        display={pid: format_delta(change) for pid, change in deltas.items()},
    )
    return preview.model_dump(mode="json", by_alias=True)


@app.post("/api/sessions/{session_id}/rounds")
async def commit_round(session_id: str, declaration: Declaration):
    state = await _get_session_or_404(session_id)
    async with _lock(session_id):
        try:
            deltas = calculate_round(state.players, declaration)
            rnd = state.commit_round(deltas, declaration.metadata())
        except (ValueError, UnknownGameType) as exc:
            raise _http_error(exc)
        await _after_change(session_id, state)
    return _round_out(rnd)


@app.post("/api/sessions/{session_id}/rounds/manual")
async def commit_manual_round(session_id: str, req: ManualRoundRequest):
    state = await _get_session_or_404(session_id)
    metadata = RoundMetadata(
        declarer_id=req.declarer_id,
        game_type_id=req.game_type_id,
        kontra_ids=req.kontra_ids,
        sitting_out_id=req.sitting_out_id,
    )
    async with _lock(session_id):
        try:
            rnd = state.commit_round(req.scores, metadata)
        except ValueError as exc:
            raise _http_error(exc)
        await _after_change(session_id, state)
    return _round_out(rnd)


@app.post("/api/sessions/{session_id}/rounds/split")
async def commit_split_round(session_id: str, req: SplitRoundRequest):
    state = await _get_session_or_404(session_id)
    async with _lock(session_id):
        try:
            deltas = distribute_loss(state.players, req.payer_id, req.amount)
            rnd = state.commit_round(deltas)
        except ValueError as exc:
            raise _http_error(exc)
        await _after_change(session_id, state)
    return _round_out(rnd)


@app.delete("/api/sessions/{session_id}/rounds/last")
async def undo_round(session_id: str):
    state = await _get_session_or_404(session_id)
    async with _lock(session_id):
        try:
            rnd = state.undo_last()
        except ValueError as exc:
            raise _http_error(exc)
        await _after_change(session_id, state)
    return _round_out(rnd)


@app.get("/api/sessions/{session_id}/export.csv")
async def export_session(session_id: str):
    state = await _get_session_or_404(session_id)
    return PlainTextResponse(
        export_csv(state),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="ulti-{session_id}.csv"'},
    )


# ---------- WebSockets hub ----------
class Hub:
    def __init__(self):
        self.sessions: Dict[str, List[WebSocket]] = {}
        self.ws_session: Dict[WebSocket, str] = {}

    async def connect(self, session_id: str, ws: WebSocket):
        await ws.accept()
        self.sessions.setdefault(session_id, []).append(ws)
        self.ws_session[ws] = session_id

    def disconnect(self, ws: WebSocket):
        sid = self.ws_session.pop(ws, None)
        if sid and ws in self.sessions.get(sid, []):
            self.sessions[sid].remove(ws)

    async def send_session_state(self, session_id: str):
        state = SESSIONS.get(session_id)
        if state is None:
            return
        payload = _session_view(session_id, state)
        for ws in list(self.sessions.get(session_id, [])):
            try:
                await ws.send_json({"type": "state", "payload": payload})
            except RuntimeError:
                pass

hub = Hub()


# ---------- WS endpoint ----------
@app.websocket("/ws/{session_id}")
async def ws_session(ws: WebSocket, session_id: str):
    try:
        state = await _get_session_or_404(session_id)
    except HTTPException:
        await ws.close(code=1008, reason="session_not_found")
        return

    await hub.connect(session_id, ws)
    try:
        await hub.send_session_state(session_id)
        while True:
            try:
                data = await ws.receive_json()
            except ValueError:
                await ws.send_json({"type": "error", "error": "Message is not valid JSON"})
                continue
            if not isinstance(data, dict):
                await ws.send_json({"type": "error", "error": "Message must be a JSON object"})
                continue
            t = data.get("type")
            async with _lock(session_id):
                try:
                    if t == "undo":
                        state.undo_last()
                    elif t == "round":
                        declaration = Declaration.model_validate(data.get("declaration") or {})
                        deltas = calculate_round(state.players, declaration)
                        state.commit_round(deltas, declaration.metadata())
                    else:
                        raise ValueError(f"Unknown message type: {t}")
                except (ValueError, UnknownGameType) as exc:
                    await ws.send_json({"type": "error", "error": str(exc)})
                    continue
                await _after_change(session_id, state)
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(ws)
