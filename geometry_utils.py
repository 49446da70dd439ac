# geometry_utils.py

from __future__ import annotations

import math
from typing import Dict, Tuple

import numpy as np
import pyqtgraph.opengl as gl

from scene_layout import Placement


# Sphere meshes keyed by (rows, cols, radius) so reloads reuse them.
_SPHERE_MESHDATA: Dict[Tuple[int, int, float], gl.MeshData] = {}

# Model space is y-up with -z forward; GL space is z-up. A +90 degree turn
# about x maps one onto the other and keeps the handedness.
MODEL_TO_GL = np.array(
    [
        [1.0, 0.0, 0.0, 0.0],
        [0.0, 0.0, -1.0, 0.0],
        [0.0, 1.0, 0.0, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ],
    dtype=float,
)


def to_gl_pos(pos):
    """Map model coords (x, y-up, z-back) to GL coords (x, y-forward, z-up)."""
    x, y, z = pos
    return (x, -z, y)


def to_model_pos(pos):
    """Map GL coords (x, y-forward, z-up) to model coords (x, y-up, z-back)."""
    x, y, z = pos
    return (x, z, -y)


def translation_matrix(x: float, y: float, z: float) -> np.ndarray:
    m = np.eye(4, dtype=float)
    m[0, 3] = x
    m[1, 3] = y
    m[2, 3] = z
    return m


def scale_matrix(x: float, y: float, z: float) -> np.ndarray:
    m = np.eye(4, dtype=float)
    m[0, 0] = x
    m[1, 1] = y
    m[2, 2] = z
    return m


def rotation_x_matrix(angle: float) -> np.ndarray:
    c = math.cos(angle)
    s = math.sin(angle)
    m = np.eye(4, dtype=float)
    m[1, 1] = c
    m[1, 2] = -s
    m[2, 1] = s
    m[2, 2] = c
    return m


def rotation_y_matrix(angle: float) -> np.ndarray:
    c = math.cos(angle)
    s = math.sin(angle)
    m = np.eye(4, dtype=float)
    m[0, 0] = c
    m[0, 2] = s
    m[2, 0] = -s
    m[2, 2] = c
    return m


def rotation_z_matrix(angle: float) -> np.ndarray:
    c = math.cos(angle)
    s = math.sin(angle)
    m = np.eye(4, dtype=float)
    m[0, 0] = c
    m[0, 1] = -s
    m[1, 0] = s
    m[1, 1] = c
    return m


def placement_matrix(placement: Placement) -> np.ndarray:
    """Model-space transform: translate, then XYZ Euler rotation, then uniform scale."""
    rx, ry, rz = placement.rotation
    m = translation_matrix(*placement.position)
    m = m @ rotation_x_matrix(rx)
    m = m @ rotation_y_matrix(ry)
    m = m @ rotation_z_matrix(rz)
    m = m @ scale_matrix(placement.scale, placement.scale, placement.scale)
    return m


def placement_gl_matrix(placement: Placement) -> np.ndarray:
    """Transform for an item whose local data is in model space, drawn in GL space."""
    return MODEL_TO_GL @ placement_matrix(placement)


def get_sky_sphere_meshdata(rows: int = 48, cols: int = 96, radius: float = 300.0) -> gl.MeshData:
    key = (int(rows), int(cols), float(radius))
    md = _SPHERE_MESHDATA.get(key)
    if md is None:
        md = gl.MeshData.sphere(rows=key[0], cols=key[1], radius=key[2])
        _SPHERE_MESHDATA[key] = md
    return md
