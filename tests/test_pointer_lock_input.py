import math
import os
import random
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from PyQt5 import QtCore

from pointer_lock_input import (
    PITCH_LIMIT,
    Direction,
    LockState,
    PointerLockInputController,
)


def test_starts_unlocked():
    ctrl = PointerLockInputController()
    assert ctrl.lock_state is LockState.UNLOCKED
    assert ctrl.state.yaw == 0.0 and ctrl.state.pitch == 0.0


def test_motion_ignored_while_unlocked():
    ctrl = PointerLockInputController()
    assert ctrl.on_pointer_motion(120, -40) is False
    assert ctrl.state.yaw == 0.0
    assert ctrl.state.pitch == 0.0


def test_motion_turns_view_while_locked():
    ctrl = PointerLockInputController(sensitivity=0.002)
    ctrl.set_locked(True)
    assert ctrl.on_pointer_motion(100, 50) is True
    assert math.isclose(ctrl.state.yaw, -0.2)
    assert math.isclose(ctrl.state.pitch, -0.1)


def test_pitch_stays_clamped_for_random_motion():
    rng = random.Random(7)
    ctrl = PointerLockInputController()
    ctrl.set_locked(True)
    for _ in range(2000):
        ctrl.on_pointer_motion(rng.uniform(-500, 500), rng.uniform(-2000, 2000))
        assert -PITCH_LIMIT <= ctrl.state.pitch <= PITCH_LIMIT
    assert PITCH_LIMIT < math.pi / 2


def test_lock_listeners_follow_transitions():
    ctrl = PointerLockInputController()
    seen = []
    ctrl.on_lock_changed(seen.append)
    ctrl.set_locked(True)
    ctrl.set_locked(True)
    ctrl.set_locked(False)
    assert seen == [True, False]


def test_letter_and_arrow_keys_share_directions():
    ctrl = PointerLockInputController()
    pairs = [
        (QtCore.Qt.Key_W, QtCore.Qt.Key_Up, Direction.FORWARD),
        (QtCore.Qt.Key_S, QtCore.Qt.Key_Down, Direction.BACKWARD),
        (QtCore.Qt.Key_A, QtCore.Qt.Key_Left, Direction.LEFT),
        (QtCore.Qt.Key_D, QtCore.Qt.Key_Right, Direction.RIGHT),
    ]
    for letter, arrow, direction in pairs:
        assert ctrl.on_key(letter, True)
        assert direction in ctrl.state.movement_keys
        ctrl.on_key(arrow, False)
        assert direction not in ctrl.state.movement_keys
        ctrl.on_key(arrow, True)
        ctrl.on_key(arrow, True)
        assert direction in ctrl.state.movement_keys


def test_unknown_keys_are_not_handled():
    ctrl = PointerLockInputController()
    assert ctrl.on_key(QtCore.Qt.Key_Q, True) is False
    assert not ctrl.state.movement_keys


def test_release_clears_held_keys():
    ctrl = PointerLockInputController()
    ctrl.set_locked(True)
    ctrl.on_key(QtCore.Qt.Key_W, True)
    ctrl.set_locked(False)
    assert not ctrl.state.movement_keys
