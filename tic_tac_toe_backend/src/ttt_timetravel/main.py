import json
import logging
from typing import Dict, List

from fastapi import FastAPI, HTTPException, Response, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from .config import SETTINGS
from .models import (
    GameSession, GameSummary, GameView, IntentResult, JumpRequest, MoveRequest,
)
from .store import STORE, SessionNotFoundError

logging.basicConfig(level=SETTINGS.log_level)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "game", "description": "Start a game, play, travel through the move history"},
    {"name": "ws", "description": "Websocket for live game experience"},
]

app = FastAPI(
    title="Tic Tac Toe Time Travel Backend",
    description="REST and WebSocket API for hot-seat Tic Tac Toe with move history and time travel.",
    version="1.0.0",
    openapi_tags=openapi_tags
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _run_intent(session_id: str, intent) -> IntentResult:
    """Forward an intent to the session's engine and return the fresh view."""
    def apply(engine):
        accepted = intent(engine)
        return IntentResult(accepted=accepted, state=engine.snapshot())

    try:
        return STORE.run(session_id, apply)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found.")


def _reset(engine) -> bool:
    engine.reset()
    return True


@app.get("/")
def health_check():
    """Health check endpoint."""
    return {"message": "Healthy"}

# ---------------- Game API ---------------- #

# PUBLIC_INTERFACE
@app.post("/game", response_model=GameSession, tags=["game"], summary="Start a new game session")
async def create_game():
    """Create a session holding a fresh game: empty board, X to move."""
    return STORE.create_session()

# PUBLIC_INTERFACE
@app.get("/game/list", response_model=List[GameSummary], tags=["game"], summary="List all game sessions")
async def list_games():
    """List all sessions."""
    return STORE.list_sessions()

# PUBLIC_INTERFACE
@app.get("/game/{session_id}", response_model=GameView, tags=["game"], summary="Get game state")
async def get_game(session_id: str):
    """Board, status, winning line and move history of the position being viewed."""
    try:
        return STORE.run(session_id, lambda engine: engine.snapshot())
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found.")

# PUBLIC_INTERFACE
@app.post("/game/{session_id}/move", response_model=IntentResult, tags=["game"], summary="Click a cell")
async def make_a_move(session_id: str, req: MoveRequest):
    """
    Place the current player's mark. Moves on an occupied cell or a decided board
    are ignored: the response has accepted=false and the unchanged state.
    """
    return _run_intent(session_id, lambda engine: engine.apply_move(req.cell_index))

# PUBLIC_INTERFACE
@app.post("/game/{session_id}/jump", response_model=IntentResult, tags=["game"], summary="Jump to a recorded move")
async def jump_to_move(session_id: str, req: JumpRequest):
    """Travel to a history index. Indices outside the history are ignored."""
    return _run_intent(session_id, lambda engine: engine.jump_to(req.index))

# PUBLIC_INTERFACE
@app.post("/game/{session_id}/reset", response_model=IntentResult, tags=["game"], summary="Reset the game")
async def reset_game(session_id: str):
    """Start over with an empty board and a single-entry history."""
    return _run_intent(session_id, _reset)

# PUBLIC_INTERFACE
@app.delete("/game/{session_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["game"], summary="End a game session")
async def delete_game(session_id: str):
    """Forget the session and its history."""
    try:
        STORE.delete_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# --------------- WebSocket Real-time Game Updates --------------- #

class ConnectionManager:
    """Manages active websocket connections per session."""
    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, session_id: str, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.setdefault(session_id, []).append(websocket)

    def disconnect(self, session_id: str, websocket: WebSocket):
        if session_id in self.active_connections:
            self.active_connections[session_id] = [
                ws for ws in self.active_connections[session_id]
                if ws != websocket
            ]
            if not self.active_connections[session_id]:
                del self.active_connections[session_id]

    async def broadcast(self, session_id: str, message: dict):
        """Send JSON to all clients of this session."""
        if session_id in self.active_connections:
            disconnected = []
            for ws in self.active_connections[session_id]:
                try:
                    await ws.send_json(message)
                except Exception:
                    logger.warning("Dropping websocket of session %s after failed send", session_id)
                    disconnected.append(ws)
            for ws in disconnected:
                self.disconnect(session_id, ws)

manager = ConnectionManager()


def _parse_intent(data):
    """Map a websocket command onto an engine call, or None if it is malformed."""
    if not isinstance(data, dict):
        return None
    action = data.get("action")
    try:
        if action == "move":
            req = MoveRequest(cell_index=data.get("cell_index"))
            return lambda engine: engine.apply_move(req.cell_index)
        if action == "jump":
            req = JumpRequest(index=data.get("index"))
            return lambda engine: engine.jump_to(req.index)
    except ValidationError:
        return None
    if action == "reset":
        return _reset
    return None

# PUBLIC_INTERFACE
@app.websocket("/ws/game/{session_id}")
async def websocket_endpoint(websocket: WebSocket, session_id: str):
    """
    Real-time updates for a given game session.

    Connect, send intents (move, jump, reset), and every client of the session
    receives the new game state after each one.
    See /ws/docs for the message schema.
    """
    await manager.connect(session_id, websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                data = None
            intent = _parse_intent(data)
            if intent is None:
                await websocket.send_json({"error": "Invalid command"})
                continue
            try:
                result = _run_intent(session_id, intent)
            except HTTPException as err:
                await websocket.send_json({"error": err.detail})
                continue
            await manager.broadcast(session_id, {
                "type": "game_state",
                "accepted": result.accepted,
                "state": result.state.model_dump(mode="json"),
            })
    except WebSocketDisconnect:
        logger.debug("Websocket of session %s disconnected", session_id)
    finally:
        manager.disconnect(session_id, websocket)

# PUBLIC_INTERFACE
@app.get("/ws/docs", tags=["ws"], summary="Websocket API usage help")
def websocket_usage():
    """
    API docs for websocket:
    - Endpoint: /ws/game/{session_id}
    - Protocol: JSON messages from client must be one of:
        - { "action": "move", "cell_index": 4 }
        - { "action": "jump", "index": 2 }
        - { "action": "reset" }
    - Responses are { "type": "game_state", "accepted": bool, "state": {...GameView...}}
    - Errors { "error": "<string>" }
    """
    return {
        "endpoint": "/ws/game/{session_id}",
        "messages": [
            {"action": "move", "cell_index": 4},
            {"action": "jump", "index": 2},
            {"action": "reset"},
        ],
        "response": {
            "type": "game_state",
            "accepted": True,
            "state": "GameView schema"
        }
    }
