"""
In-memory storage for game sessions. Nothing survives a restart.
"""

import logging
import secrets
import threading
from collections import OrderedDict
from typing import Callable, List, TypeVar

from .config import SETTINGS
from .game_logic import TicTacToeEngine
from .models import GameSession, GameSummary

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionNotFoundError(KeyError):
    """No session with the given id."""


class InMemoryStore:
    """Singleton-like store holding one engine per session."""

    def __init__(self, max_sessions: int = 1000):
        if max_sessions < 1:
            raise ValueError(f"max_sessions must be at least 1, got {max_sessions}")
        self.sessions: "OrderedDict[str, TicTacToeEngine]" = OrderedDict()  # session_id : engine
        self.max_sessions = max_sessions
        self._lock = threading.Lock()

    # PUBLIC_INTERFACE
    def create_session(self) -> GameSession:
        """
        Start a fresh game and return its id with the initial view. Evicts the
        oldest sessions when full, never the one being created.
        """
        with self._lock:
            session_id = secrets.token_hex(4)
            while session_id in self.sessions:
                session_id = secrets.token_hex(4)
            engine = TicTacToeEngine()
            self.sessions[session_id] = engine
            while len(self.sessions) > self.max_sessions:
                evicted, _ = self.sessions.popitem(last=False)
                logger.info("Session limit %d reached, evicted %s", self.max_sessions, evicted)
            logger.info("Created session %s", session_id)
            return GameSession(session_id=session_id, state=engine.snapshot())

    # PUBLIC_INTERFACE
    def run(self, session_id: str, action: Callable[[TicTacToeEngine], T]) -> T:
        """
        Apply `action` to the session's engine while holding the store lock,
        so each intent runs to completion before the next one touches the
        session, whichever thread or event-loop task issues it.
        """
        with self._lock:
            engine = self.sessions.get(session_id)
            if engine is None:
                raise SessionNotFoundError(session_id)
            return action(engine)

    # PUBLIC_INTERFACE
    def delete_session(self, session_id: str):
        with self._lock:
            if self.sessions.pop(session_id, None) is None:
                raise SessionNotFoundError(session_id)
            logger.info("Deleted session %s", session_id)

    # PUBLIC_INTERFACE
    def list_sessions(self) -> List[GameSummary]:
        with self._lock:
            return [
                GameSummary(
                    session_id=session_id,
                    status=engine.status,
                    history_length=engine.history_length,
                    current_index=engine.current_index,
                    finished=engine.outcome.decided,
                )
                for session_id, engine in self.sessions.items()
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self.sessions)

STORE = InMemoryStore(max_sessions=SETTINGS.max_sessions)
