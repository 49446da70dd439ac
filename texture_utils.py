# texture_utils.py

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

# Scene lights: ambient + one directional light at (5, 10, 5), model space.
AMBIENT_INTENSITY = 0.8
DIRECTIONAL_INTENSITY = 0.8
LIGHT_POSITION = (5.0, 10.0, 5.0)


def load_rgba(path, max_size: Optional[int] = None) -> np.ndarray:
    """Decode an image file into an (H, W, 4) uint8 array."""
    path = Path(path)
    with Image.open(path) as img:
        img = img.convert("RGBA")
        if max_size and max(img.size) > max_size:
            img.thumbnail((max_size, max_size), Image.LANCZOS)
        data = np.asarray(img, dtype=np.uint8).copy()
    logger.debug("Decoded %s -> %s", path.name, data.shape)
    return data


def resize_rgba(data: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Resize to (width, height)."""
    if data.shape[1] == size[0] and data.shape[0] == size[1]:
        return data
    img = Image.fromarray(np.ascontiguousarray(data, dtype=np.uint8))
    return np.asarray(img.resize(size, Image.BILINEAR), dtype=np.uint8).copy()


def tile_texture(data: np.ndarray, tiles: int, out_size: int) -> np.ndarray:
    """Repeat a texture ``tiles`` times in both directions inside ``out_size`` px."""
    tiles = max(1, int(tiles))
    cell = max(1, int(out_size) // tiles)
    tile = resize_rgba(data, (cell, cell))
    return np.tile(tile, (tiles, tiles, 1))


def _ground_light_dir() -> np.ndarray:
    # The ground lies in model xz; its tangent frame is (x, -z, y).
    lx, ly, lz = LIGHT_POSITION
    vec = np.array([lx, -lz, ly], dtype=float)
    return vec / np.linalg.norm(vec)


def shade_ground(
    albedo: np.ndarray,
    normal: Optional[np.ndarray] = None,
    ao: Optional[np.ndarray] = None,
    ao_intensity: float = 0.8,
) -> np.ndarray:
    """
    Bake the scene lighting into the ground texture.

    pyqtgraph's image items are unlit, so the normal map and ambient
    occlusion map are applied here once instead of per frame.
    """
    h, w = albedo.shape[:2]
    rgb = albedo[..., :3].astype(np.float32) / 255.0

    if normal is not None:
        n = resize_rgba(normal, (w, h))[..., :3].astype(np.float32) / 127.5 - 1.0
        n /= np.maximum(np.linalg.norm(n, axis=2, keepdims=True), 1e-6)
        lambert = np.clip(n @ _ground_light_dir(), 0.0, 1.0)
    else:
        lambert = np.full((h, w), float(_ground_light_dir()[2]), dtype=np.float32)

    light = (AMBIENT_INTENSITY + DIRECTIONAL_INTENSITY * lambert) / (
        AMBIENT_INTENSITY + DIRECTIONAL_INTENSITY
    )

    if ao is not None:
        occlusion = resize_rgba(ao, (w, h))[..., 0].astype(np.float32) / 255.0
        light = light * (1.0 - float(ao_intensity) * (1.0 - occlusion))

    shaded = np.clip(rgb * light[..., None], 0.0, 1.0)
    out = np.empty((h, w, 4), dtype=np.uint8)
    out[..., :3] = np.round(shaded * 255.0).astype(np.uint8)
    out[..., 3] = 255
    return out


def equirect_uv(directions: np.ndarray) -> np.ndarray:
    """Equirectangular (u, v) in [0, 1] for unit model-space directions."""
    d = np.asarray(directions, dtype=float)
    u = np.arctan2(d[:, 2], d[:, 0]) / (2.0 * math.pi) + 0.5
    v = np.arcsin(np.clip(d[:, 1], -1.0, 1.0)) / math.pi + 0.5
    return np.stack([u, v], axis=1)


def sample_equirect(pano: np.ndarray, directions: np.ndarray) -> np.ndarray:
    """Nearest-pixel panorama colours, (N, 4) floats in [0, 1]."""
    h, w = pano.shape[:2]
    uv = equirect_uv(directions)
    cols = np.clip((uv[:, 0] * (w - 1)).round().astype(int), 0, w - 1)
    rows = np.clip(((1.0 - uv[:, 1]) * (h - 1)).round().astype(int), 0, h - 1)
    colors = pano[rows, cols].astype(np.float32) / 255.0
    colors[:, 3] = 1.0
    return colors
