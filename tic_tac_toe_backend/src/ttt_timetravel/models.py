"""
Models for the Tic Tac Toe time travel backend (FastAPI).
"""

from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel, Field


class Cell(str, Enum):
    EMPTY = ""
    X = "X"
    O = "O"


# A board is an immutable 9-tuple of cells, index = row * 3 + col.
Board = Tuple[Cell, ...]

BOARD_SIZE = 9
EMPTY_BOARD: Board = (Cell.EMPTY,) * BOARD_SIZE

PLAYER_NAMES = {
    Cell.X: "PlayerA",
    Cell.O: "PlayerB",
}


class OutcomeKind(str, Enum):
    UNDECIDED = "undecided"
    WIN = "win"
    DRAW = "draw"


# PUBLIC_INTERFACE
class Outcome(BaseModel):
    """Decided/undecided status of a board."""
    kind: OutcomeKind = Field(..., description="undecided, win or draw.")
    winner: Optional[Cell] = Field(None, description="Winning mark, only set for a win.")
    line: Optional[Tuple[int, int, int]] = Field(None, description="Winning line cell indices, only set for a win.")

    model_config = {"frozen": True}

    @property
    def decided(self) -> bool:
        return self.kind != OutcomeKind.UNDECIDED


# PUBLIC_INTERFACE
class MoveRequest(BaseModel):
    """Place the current player's mark on a cell."""
    cell_index: int = Field(..., ge=0, le=8, strict=True, description="Cell index (0-8), row * 3 + col.")


# PUBLIC_INTERFACE
class JumpRequest(BaseModel):
    """Travel to a recorded position in the move history."""
    index: int = Field(..., strict=True, description="History index, 0 is the game start.")


# PUBLIC_INTERFACE
class MoveEntry(BaseModel):
    """One row of the move history list."""
    index: int = Field(..., description="History index.")
    label: str = Field(..., description="Button text, e.g. 'Go to move #3'.")
    active: bool = Field(..., description="Whether this is the position being viewed.")
    cell_index: Optional[int] = Field(None, description="Cell played at this ply, None for the game start.")
    player: Optional[str] = Field(None, description="Player who played this ply, None for the game start.")


# PUBLIC_INTERFACE
class GameView(BaseModel):
    """Everything a presentation layer needs to draw the game."""
    board: List[str] = Field(..., min_length=9, max_length=9, description="9 cells, values are 'X', 'O', or ''.")
    outcome: Outcome
    status: str = Field(..., description="'Win by <player>', 'Draw' or 'Next turn: <player>'.")
    winning_line: Optional[Tuple[int, int, int]] = Field(None, description="Cells to highlight on a win.")
    next_player: Optional[str] = Field(None, description="Player to move, None once the game is decided.")
    history_length: int
    current_index: int
    moves: List[MoveEntry] = Field(default_factory=list)


# PUBLIC_INTERFACE
class IntentResult(BaseModel):
    """Outcome of forwarding a user intent to the engine."""
    accepted: bool = Field(..., description="False when the intent was silently ignored.")
    state: GameView


# PUBLIC_INTERFACE
class GameSession(BaseModel):
    """A freshly created session."""
    session_id: str
    state: GameView


# PUBLIC_INTERFACE
class GameSummary(BaseModel):
    """High-level summary for the session list."""
    session_id: str
    status: str
    history_length: int
    current_index: int
    finished: bool
