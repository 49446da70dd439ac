import itertools
import math
import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from locomotion import (
    GROUND_Y,
    LocomotionController,
    MovementSettings,
    clamp_dt,
    intent_vector,
)
from pointer_lock_input import Direction, InputState


def _controller(**kwargs):
    state = InputState()
    settings = MovementSettings(spawn=(0.0, 0.0, 0.0), **kwargs)
    return state, LocomotionController(state, settings)


def test_intent_length_is_zero_or_one_for_every_key_combo():
    directions = list(Direction)
    for r in range(len(directions) + 1):
        for combo in itertools.combinations(directions, r):
            length = float(np.linalg.norm(intent_vector(set(combo))))
            assert length == pytest.approx(0.0) or length == pytest.approx(1.0)


def test_opposite_keys_cancel():
    assert not intent_vector({Direction.FORWARD, Direction.BACKWARD}).any()
    assert not intent_vector({Direction.LEFT, Direction.RIGHT}).any()


@pytest.mark.parametrize("yaw", [0.0, 0.3, math.pi / 2, -2.0, math.pi])
@pytest.mark.parametrize("dt", [0.0, 0.01, 0.033])
def test_forward_moves_speed_dt_along_facing(yaw, dt):
    state, ctrl = _controller(move_speed=1.5, bounds_x=100.0, bounds_z=100.0)
    state.yaw = yaw
    state.movement_keys.add(Direction.FORWARD)
    ctrl.update(dt)
    expected = np.array([-math.sin(yaw), 0.0, -math.cos(yaw)]) * 1.5 * dt
    assert np.allclose(ctrl.player.position, expected, atol=1e-9)


def test_pitch_does_not_change_walking_direction():
    state, ctrl = _controller(bounds_x=100.0, bounds_z=100.0)
    state.pitch = 1.2
    state.movement_keys.add(Direction.FORWARD)
    ctrl.update(0.02)
    assert ctrl.player.position[1] == GROUND_Y
    assert np.allclose(ctrl.player.position, [0.0, 0.0, -0.02])
    assert ctrl.player.view_pitch == 1.2


def test_diagonal_is_not_faster():
    state, ctrl = _controller(bounds_x=100.0, bounds_z=100.0)
    state.movement_keys.update({Direction.FORWARD, Direction.RIGHT})
    ctrl.update(0.04)
    assert float(np.linalg.norm(ctrl.player.position)) == pytest.approx(0.04)


def test_vertical_is_pinned_to_ground():
    state, ctrl = _controller()
    ctrl.player.position[1] = 3.0
    ctrl.update(0.01)
    assert ctrl.player.position[1] == GROUND_Y


def test_bounds_pin_to_nearest_limit():
    state, ctrl = _controller(move_speed=1000.0, max_dt=1.0)

    state.movement_keys = {Direction.FORWARD}
    ctrl.update(1.0)
    assert ctrl.player.position[2] == -4.0

    state.movement_keys = {Direction.BACKWARD}
    ctrl.update(1.0)
    assert ctrl.player.position[2] == 3.0

    state.movement_keys = {Direction.RIGHT}
    ctrl.update(1.0)
    assert ctrl.player.position[0] == 4.0

    state.movement_keys = {Direction.LEFT}
    ctrl.update(1.0)
    assert ctrl.player.position[0] == -4.0


def test_corners_are_reachable():
    state, ctrl = _controller(move_speed=1000.0, max_dt=1.0)
    state.movement_keys = {Direction.BACKWARD, Direction.RIGHT}
    ctrl.update(1.0)
    assert ctrl.player.position[0] == 4.0
    assert ctrl.player.position[2] == 3.0


@pytest.mark.parametrize(
    "dt, expected",
    [(-1.0, 0.0), (0.0, 0.0), (float("nan"), 0.0), (float("inf"), 0.0), (0.01, 0.01), (5.0, 0.05)],
)
def test_clamp_dt(dt, expected):
    assert clamp_dt(dt, 0.05) == expected


def test_stalled_frame_cannot_teleport():
    state, ctrl = _controller(bounds_x=100.0, bounds_z=100.0)
    state.movement_keys.add(Direction.FORWARD)
    ctrl.update(10.0)
    assert ctrl.player.position[2] == pytest.approx(-0.05)


def test_camera_eye_and_view_direction():
    state, ctrl = _controller(eye_height=0.15)
    assert np.allclose(ctrl.camera_eye(), [0.0, 0.15, 0.0])
    ctrl.update(0.0)
    assert np.allclose(ctrl.view_direction(), [0.0, 0.0, -1.0])


def test_reset_returns_to_spawn():
    state = InputState()
    ctrl = LocomotionController(state)
    state.movement_keys.add(Direction.LEFT)
    ctrl.update(0.05)
    ctrl.reset()
    assert np.allclose(ctrl.player.position, [0.0, 0.0, 1.5])
