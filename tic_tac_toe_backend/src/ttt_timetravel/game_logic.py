"""
Game logic for Tic Tac Toe with time travel (win/draw detection, turn tracking,
move history with branching).
"""

import logging
from typing import List, Optional, Sequence, Tuple

from .models import (
    BOARD_SIZE, EMPTY_BOARD, PLAYER_NAMES,
    Board, Cell, GameView, MoveEntry, Outcome, OutcomeKind,
)

logger = logging.getLogger(__name__)

# Enumeration order is the tie-break: rows, then columns, then diagonals.
WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2), (3, 4, 5), (6, 7, 8),  # rows
    (0, 3, 6), (1, 4, 7), (2, 5, 8),  # cols
    (0, 4, 8), (2, 4, 6),             # diags
)

UNDECIDED = Outcome(kind=OutcomeKind.UNDECIDED)
DRAW = Outcome(kind=OutcomeKind.DRAW)


class InvalidBoardError(ValueError):
    """Raised when something that is not a 9-cell board is evaluated."""


# PUBLIC_INTERFACE
def evaluate_outcome(board: Sequence[Cell]) -> Outcome:
    """
    Examines board. Returns the first winning line found, a draw for a full
    board without one, and undecided otherwise.
    """
    if len(board) != BOARD_SIZE:
        raise InvalidBoardError(f"Board must have {BOARD_SIZE} cells, got {len(board)}.")

    for line in WINNING_LINES:
        a, b, c = line
        if board[a] != Cell.EMPTY and board[a] == board[b] == board[c]:
            return Outcome(kind=OutcomeKind.WIN, winner=Cell(board[a]), line=line)

    if all(cell != Cell.EMPTY for cell in board):
        return DRAW

    return UNDECIDED


# PUBLIC_INTERFACE
def winning_line(board: Sequence[Cell]) -> Optional[Tuple[int, int, int]]:
    """Cells to highlight, or None when nobody has won."""
    return evaluate_outcome(board).line


# PUBLIC_INTERFACE
def player_for_index(index: int) -> Cell:
    """Mark placed from history position `index`: even is X, odd is O."""
    return Cell.X if index % 2 == 0 else Cell.O


# PUBLIC_INTERFACE
def status_text(outcome: Outcome, next_player: Cell) -> str:
    if outcome.kind == OutcomeKind.WIN:
        return f"Win by {PLAYER_NAMES[outcome.winner]}"
    if outcome.kind == OutcomeKind.DRAW:
        return "Draw"
    return f"Next turn: {PLAYER_NAMES[next_player]}"


def move_label(index: int) -> str:
    return "Go to game start" if index == 0 else f"Go to move #{index}"


def _played_cell(before: Board, after: Board) -> Optional[int]:
    for i, (old, new) in enumerate(zip(before, after)):
        if old != new:
            return i
    return None


def _is_index(value) -> bool:
    # bool is an int subclass but never a meaningful cell or history index
    return isinstance(value, int) and not isinstance(value, bool)


class TicTacToeEngine:
    """
    Game state engine: a linear history of boards and the index being viewed.

    Whose turn it is is never stored; it is always derived from the parity of
    `current_index`. Invalid intents are ignored: the methods return False
    and leave the state untouched.
    """

    def __init__(self):
        self._history: List[Board] = [EMPTY_BOARD]
        self._current_index = 0

    # ---------------- Intents ---------------- #

    # PUBLIC_INTERFACE
    def apply_move(self, cell_index: int) -> bool:
        """
        Place the current player's mark on `cell_index` of the board being viewed.
        Any recorded future beyond the current position is discarded.
        Returns False, without changing anything, if the move is not allowed.
        """
        if not _is_index(cell_index) or not 0 <= cell_index < BOARD_SIZE:
            logger.debug("Rejected move: cell index %r out of range", cell_index)
            return False

        current = self.current_board
        if evaluate_outcome(current).decided:
            logger.debug("Rejected move at %d: game already decided", cell_index)
            return False
        if current[cell_index] != Cell.EMPTY:
            logger.debug("Rejected move at %d: cell occupied", cell_index)
            return False

        mark = self.next_player
        squares = list(current)
        squares[cell_index] = mark
        discarded = len(self._history) - self._current_index - 1

        self._history = self._history[:self._current_index + 1] + [tuple(squares)]
        self._current_index += 1

        if discarded:
            logger.debug("Branching at move %d discarded %d recorded move(s)", self._current_index - 1, discarded)
        logger.debug("%s played cell %d (move #%d)", PLAYER_NAMES[mark], cell_index, self._current_index)
        return True

    # PUBLIC_INTERFACE
    def jump_to(self, index: int) -> bool:
        """View history position `index`. Out-of-range targets are ignored."""
        if not _is_index(index) or not 0 <= index < len(self._history):
            logger.debug("Rejected jump to %r: history has %d entries", index, len(self._history))
            return False
        self._current_index = index
        logger.debug("Jumped to move #%d", index)
        return True

    # PUBLIC_INTERFACE
    def reset(self) -> None:
        """Start a fresh game."""
        self._history = [EMPTY_BOARD]
        self._current_index = 0

    # ---------------- Read views ---------------- #

    @property
    def history(self) -> Tuple[Board, ...]:
        return tuple(self._history)

    @property
    def history_length(self) -> int:
        return len(self._history)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_board(self) -> Board:
        return self._history[self._current_index]

    @property
    def outcome(self) -> Outcome:
        return evaluate_outcome(self.current_board)

    @property
    def next_player(self) -> Cell:
        return player_for_index(self._current_index)

    @property
    def status(self) -> str:
        return status_text(self.outcome, self.next_player)

    @property
    def winning_line(self) -> Optional[Tuple[int, int, int]]:
        return self.outcome.line

    # PUBLIC_INTERFACE
    def moves(self) -> List[MoveEntry]:
        """The move history list, one entry per recorded position."""
        entries = []
        for index, board in enumerate(self._history):
            cell_index = player = None
            if index > 0:
                cell_index = _played_cell(self._history[index - 1], board)
                player = PLAYER_NAMES[player_for_index(index - 1)]
            entries.append(MoveEntry(
                index=index,
                label=move_label(index),
                active=index == self._current_index,
                cell_index=cell_index,
                player=player,
            ))
        return entries

    # PUBLIC_INTERFACE
    def snapshot(self) -> GameView:
        """Derived view of the position being viewed, recomputed on every call."""
        outcome = self.outcome
        return GameView(
            board=[cell.value for cell in self.current_board],
            outcome=outcome,
            status=status_text(outcome, self.next_player),
            winning_line=outcome.line,
            next_player=None if outcome.decided else PLAYER_NAMES[self.next_player],
            history_length=self.history_length,
            current_index=self._current_index,
            moves=self.moves(),
        )
