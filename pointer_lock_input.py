# pointer_lock_input.py

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Callable, List, Set

from PyQt5 import QtCore


PITCH_EPSILON = 0.01
PITCH_LIMIT = math.pi / 2.0 - PITCH_EPSILON
DEFAULT_MOUSE_SENSITIVITY = 0.002


class Direction(enum.Enum):
    FORWARD = "forward"
    BACKWARD = "backward"
    LEFT = "left"
    RIGHT = "right"


class LockState(enum.Enum):
    UNLOCKED = "unlocked"
    LOCKED = "locked"


# Letter and arrow bindings share the same logical directions.
KEY_BINDINGS = {
    QtCore.Qt.Key_W: Direction.FORWARD,
    QtCore.Qt.Key_Up: Direction.FORWARD,
    QtCore.Qt.Key_S: Direction.BACKWARD,
    QtCore.Qt.Key_Down: Direction.BACKWARD,
    QtCore.Qt.Key_A: Direction.LEFT,
    QtCore.Qt.Key_Left: Direction.LEFT,
    QtCore.Qt.Key_D: Direction.RIGHT,
    QtCore.Qt.Key_Right: Direction.RIGHT,
}


@dataclass
class InputState:
    movement_keys: Set[Direction] = field(default_factory=set)
    pointer_locked: bool = False
    yaw: float = 0.0
    pitch: float = 0.0


def clamp_pitch(pitch: float) -> float:
    return max(-PITCH_LIMIT, min(PITCH_LIMIT, pitch))


class PointerLockInputController:
    """
    Owns the raw input state for first-person navigation.

    Pointer motion only turns the view while the pointer is locked. The host
    window decides when a lock request is granted and reports it through
    ``set_locked``; listeners registered with ``on_lock_changed`` are told
    about every transition (the controls hint follows this).
    """

    def __init__(self, sensitivity: float = DEFAULT_MOUSE_SENSITIVITY):
        self.state = InputState()
        self.sensitivity = float(sensitivity)
        self._lock_listeners: List[Callable[[bool], None]] = []

    @property
    def lock_state(self) -> LockState:
        return LockState.LOCKED if self.state.pointer_locked else LockState.UNLOCKED

    @property
    def locked(self) -> bool:
        return self.state.pointer_locked

    def on_lock_changed(self, callback: Callable[[bool], None]) -> None:
        self._lock_listeners.append(callback)

    def set_locked(self, locked: bool) -> None:
        locked = bool(locked)
        if locked == self.state.pointer_locked:
            return
        self.state.pointer_locked = locked
        if not locked:
            # Key releases are lost while focus is elsewhere.
            self.state.movement_keys.clear()
        for callback in list(self._lock_listeners):
            callback(locked)

    def on_pointer_motion(self, dx: float, dy: float) -> bool:
        if not self.state.pointer_locked:
            return False
        self.state.yaw -= dx * self.sensitivity
        self.state.pitch = clamp_pitch(self.state.pitch - dy * self.sensitivity)
        return True

    def on_key(self, key: int, pressed: bool) -> bool:
        direction = KEY_BINDINGS.get(key)
        if direction is None:
            return False
        if pressed:
            self.state.movement_keys.add(direction)
        else:
            self.state.movement_keys.discard(direction)
        return True

    def reset(self) -> None:
        self.state.yaw = 0.0
        self.state.pitch = 0.0
        self.state.movement_keys.clear()
