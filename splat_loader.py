# splat_loader.py

"""
Gaussian splat (.ply) decoding for the point-cloud renderer.

The viewer draws splats as sized, coloured points, so only positions,
colours, opacities and an isotropic size per splat are kept. Rotations and
higher-order spherical harmonics are dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
from plyfile import PlyData

logger = logging.getLogger(__name__)

# SH DC constant (same as in original 3DGS code)
SH_C0 = 0.28209479177387814
DEFAULT_POINT_SIZE = 0.01
DOWNSAMPLE_SEED = 0


class SplatFormatError(ValueError):
    """The PLY file exists but does not describe a usable point cloud."""


@dataclass
class SplatCloud:
    positions: np.ndarray  # [N, 3] model space
    colors: np.ndarray     # [N, 4] RGBA in [0, 1]
    sizes: np.ndarray      # [N] world units

    def __len__(self) -> int:
        return int(self.positions.shape[0])


def _stack(vertex, fields) -> np.ndarray:
    return np.stack([np.asarray(vertex[f], dtype=np.float32) for f in fields], axis=1)


def _colors(vertex, names, n: int) -> np.ndarray:
    if {"f_dc_0", "f_dc_1", "f_dc_2"} <= names:
        rgb = 0.5 + SH_C0 * _stack(vertex, ("f_dc_0", "f_dc_1", "f_dc_2"))
    elif {"red", "green", "blue"} <= names:
        rgb = _stack(vertex, ("red", "green", "blue"))
        if rgb.size and float(rgb.max()) > 1.0:
            rgb = rgb / 255.0
    else:
        rgb = np.full((n, 3), 0.8, dtype=np.float32)
    return np.clip(rgb, 0.0, 1.0).astype(np.float32)


def _opacities(vertex, names, n: int) -> np.ndarray:
    if "opacity" in names:
        raw = np.asarray(vertex["opacity"], dtype=np.float32)
        # 3DGS exports store logits; already-normalised files stay as-is.
        if raw.size and (float(raw.min()) < 0.0 or float(raw.max()) > 1.0):
            raw = 1.0 / (1.0 + np.exp(-raw))
        return raw.astype(np.float32)
    if "alpha" in names:
        alpha = np.asarray(vertex["alpha"], dtype=np.float32)
        if alpha.size and float(alpha.max()) > 1.0:
            alpha = alpha / 255.0
        return alpha
    return np.ones(n, dtype=np.float32)


def _sizes(vertex, names, n: int) -> np.ndarray:
    if {"scale_0", "scale_1", "scale_2"} <= names:
        # Log-stddev per axis; draw each splat about two sigma wide.
        scales = np.exp(_stack(vertex, ("scale_0", "scale_1", "scale_2")))
        return (2.0 * scales.mean(axis=1)).astype(np.float32)
    return np.full(n, DEFAULT_POINT_SIZE, dtype=np.float32)


def downsample_indices(n: int, max_points: Optional[int]) -> Optional[np.ndarray]:
    """Sorted, reproducible subset of ``range(n)`` or None to keep everything."""
    if not max_points or n <= max_points:
        return None
    rng = np.random.default_rng(DOWNSAMPLE_SEED)
    return np.sort(rng.choice(n, size=int(max_points), replace=False))


def load_splat_ply(path, max_points: Optional[int] = None) -> SplatCloud:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"PLY file not found: {path}")

    logger.debug("[PLY] Loading %s", path)
    ply = PlyData.read(str(path))
    elem_names = [e.name for e in ply.elements]
    if "vertex" not in elem_names:
        raise SplatFormatError(f'PLY file has no "vertex" element: {path} (found {elem_names})')

    vertex = ply["vertex"].data
    names = set(vertex.dtype.names or [])
    n = len(vertex)
    if n == 0:
        raise SplatFormatError(f"PLY file contains no vertices: {path}")
    if not {"x", "y", "z"} <= names:
        raise SplatFormatError(f"PLY is missing x/y/z fields: {path}")

    keep = downsample_indices(n, max_points)
    if keep is not None:
        logger.debug("[PLY] Downsampling %s from %d to %d points", path.name, n, len(keep))
        vertex = vertex[keep]
        n = len(vertex)

    positions = _stack(vertex, ("x", "y", "z"))
    colors = np.empty((n, 4), dtype=np.float32)
    colors[:, :3] = _colors(vertex, names, n)
    colors[:, 3] = np.clip(_opacities(vertex, names, n), 0.0, 1.0)

    finite = np.isfinite(positions).all(axis=1)
    if not finite.all():
        logger.debug("[PLY] Dropping %d non-finite points from %s", int((~finite).sum()), path.name)

    cloud = SplatCloud(
        positions=positions[finite],
        colors=colors[finite],
        sizes=_sizes(vertex, names, n)[finite],
    )
    if len(cloud) == 0:
        raise SplatFormatError(f"PLY file has no finite vertices: {path}")
    return cloud
