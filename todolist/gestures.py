from __future__ import annotations

from enum import Enum

SWIPE_THRESHOLD = 50
COMPLETE_THRESHOLD = 40
MAX_LEFT = -120
MAX_RIGHT = 80


class SwipeState(str, Enum):
    IDLE = "idle"
    SWIPING = "swiping"
    REVEALED = "revealed"


class SwipeAction(str, Enum):
    NONE = "none"
    REVEAL_DELETE = "reveal_delete"
    TOGGLE_COMPLETE = "toggle_complete"


class SwipeTracker:
    """Horizontal swipe handling for a single task row.

    Dragging left past the threshold pins the row open on its delete button;
    dragging right past a smaller threshold completes the task. Anything else
    snaps back. The offset is clamped to ``[MAX_LEFT, MAX_RIGHT]``.
    """

    def __init__(self, sortable: bool = True) -> None:
        self.sortable = sortable
        self.state = SwipeState.IDLE
        self.offset: float = 0
        self._start_x = 0.0

    def start(self, x: float, editing: bool = False) -> bool:
        if not self.sortable or editing:
            return False
        self._start_x = x
        self.state = SwipeState.SWIPING
        return True

    def move(self, x: float, editing: bool = False) -> float:
        if self.state is not SwipeState.SWIPING or editing:
            return self.offset
        self.offset = max(MAX_LEFT, min(MAX_RIGHT, x - self._start_x))
        return self.offset

    def end(self) -> SwipeAction:
        if self.state is not SwipeState.SWIPING:
            return SwipeAction.NONE
        if self.offset < -SWIPE_THRESHOLD:
            self.offset = MAX_LEFT
            self.state = SwipeState.REVEALED
            return SwipeAction.REVEAL_DELETE
        action = SwipeAction.TOGGLE_COMPLETE if self.offset > COMPLETE_THRESHOLD else SwipeAction.NONE
        self.reset()
        return action

    @property
    def delete_visible(self) -> bool:
        return self.sortable and self.offset < -SWIPE_THRESHOLD

    def reset(self) -> None:
        self.state = SwipeState.IDLE
        self.offset = 0
