# locomotion.py

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from pointer_lock_input import Direction, InputState


Vec3 = Tuple[float, float, float]

GROUND_Y = 0.0
DEFAULT_SPAWN: Vec3 = (0.0, 0.0, 1.5)


@dataclass
class MovementSettings:
    move_speed: float = 1.0
    eye_height: float = 0.15
    bounds_x: float = 4.0
    bounds_z: float = 3.0
    max_dt: float = 0.05
    spawn: Vec3 = DEFAULT_SPAWN


@dataclass
class PlayerTransform:
    position: np.ndarray = field(default_factory=lambda: np.array(DEFAULT_SPAWN, dtype=float))
    facing_yaw: float = 0.0
    view_pitch: float = 0.0


def clamp_dt(dt: float, max_dt: float) -> float:
    """Stalled or bogus frame times must never teleport the player."""
    if not math.isfinite(dt) or dt <= 0.0:
        return 0.0
    return min(dt, max_dt)


def intent_vector(keys) -> np.ndarray:
    """
    Unit (or zero) movement intent in player space, as (lateral, depth).

    Forward is -depth, matching the model convention where the camera looks
    down -z at yaw 0. Opposing keys cancel out.
    """
    intent = np.zeros(2, dtype=float)
    if Direction.FORWARD in keys:
        intent[1] -= 1.0
    if Direction.BACKWARD in keys:
        intent[1] += 1.0
    if Direction.LEFT in keys:
        intent[0] -= 1.0
    if Direction.RIGHT in keys:
        intent[0] += 1.0

    norm = np.linalg.norm(intent)
    if norm > 1e-9:
        intent /= norm
    return intent


def rotate_about_up(intent: np.ndarray, yaw: float) -> np.ndarray:
    """Rotate a (lateral, depth) vector about +y by ``yaw`` radians."""
    c = math.cos(yaw)
    s = math.sin(yaw)
    x, z = float(intent[0]), float(intent[1])
    return np.array([x * c + z * s, -x * s + z * c], dtype=float)


class LocomotionController:
    def __init__(self, input_state: InputState, settings: Optional[MovementSettings] = None):
        self.input_state = input_state
        self.settings = settings or MovementSettings()
        self.player = PlayerTransform(position=np.array(self.settings.spawn, dtype=float))

    def reset(self):
        self.player.position = np.array(self.settings.spawn, dtype=float)
        self.player.facing_yaw = 0.0
        self.player.view_pitch = 0.0

    def update(self, dt: float) -> PlayerTransform:
        dt = clamp_dt(dt, self.settings.max_dt)
        state = self.input_state
        player = self.player

        # Yaw drives the body (and so the walking direction); pitch is camera only.
        player.facing_yaw = state.yaw
        player.view_pitch = state.pitch

        intent = intent_vector(state.movement_keys)
        if intent.any():
            step = rotate_about_up(intent, player.facing_yaw) * self.settings.move_speed * dt
            player.position[0] += step[0]
            player.position[2] += step[1]

        player.position[1] = GROUND_Y

        bx = self.settings.bounds_x
        bz = self.settings.bounds_z
        # The rear z limit reuses the x bound.
        player.position[0] = float(np.clip(player.position[0], -bx, bx))
        player.position[2] = float(np.clip(player.position[2], -bx, bz))
        return player

    def camera_eye(self) -> np.ndarray:
        eye = np.array(self.player.position, dtype=float)
        eye[1] += self.settings.eye_height
        return eye

    def view_direction(self) -> np.ndarray:
        """Unit look vector in model space (y-up, -z forward at yaw 0)."""
        yaw = self.player.facing_yaw
        pitch = self.player.view_pitch
        return np.array(
            [
                -math.sin(yaw) * math.cos(pitch),
                math.sin(pitch),
                -math.cos(yaw) * math.cos(pitch),
            ],
            dtype=float,
        )
