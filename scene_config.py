# scene_config.py

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from locomotion import MovementSettings
from pointer_lock_input import DEFAULT_MOUSE_SENSITIVITY
from scene_layout import FLIP_X, NO_ROTATION, Placement, ReplicationSpec, Vec3

logger = logging.getLogger(__name__)

CONFIG_PATH = Path("scene_config.json")
CONFIG_ENV_VAR = "ZOCALO_SCENE_CONFIG"
DEFAULT_MAX_POINTS = 200_000


@dataclass
class SplatEntry:
    path: str
    position: Vec3 = (0.0, 0.0, 0.0)
    rotation: Vec3 = NO_ROTATION
    scale: float = 1.0

    def placement(self) -> Placement:
        return Placement(
            asset_ref=self.path,
            position=self.position,
            rotation=self.rotation,
            scale=self.scale,
        )


@dataclass
class GroundSettings:
    albedo: str = "textures/zocalo_Albedo.webp"
    normal: Optional[str] = "textures/zocalo_Normal.webp"
    ao: Optional[str] = "textures/zocalo_AO.webp"
    size: float = 20.0
    tiles: int = 64
    ao_intensity: float = 0.8
    texture_size: int = 2048


@dataclass
class WindowSettings:
    title: str = "Zocalo Walk"
    width: int = 1280
    height: int = 720
    fov: float = 60.0
    logo: Optional[str] = "textures/logo.png"
    loading_title: str = "CAMMARQ"
    loading_subtitle: str = "Construyendo el Futuro"
    hint: str = "Click to move • WASD/Arrows + Mouse • Esc to unlock"
    log_level: str = "INFO"


def _default_main_splat() -> SplatEntry:
    return SplatEntry("splats/splatZocalo.ply", position=(0.0, 0.25, 0.0), rotation=FLIP_X)


def _default_quadrants() -> List[ReplicationSpec]:
    return [ReplicationSpec(asset_ref="splats/PegasoPLY.ply")]


def _default_benches() -> List[SplatEntry]:
    return [
        SplatEntry("splats/bancaPLY.ply", position=(0.0, 0.25, 0.0), rotation=FLIP_X),
        SplatEntry("splats/bancaPLY.ply", position=(0.0, 0.25, 0.0), rotation=(0.0, 0.0, math.pi)),
    ]


@dataclass
class SceneConfig:
    assets_root: str = "public"
    sky: Optional[str] = "panos/panoramaSky.png"
    ground: GroundSettings = field(default_factory=GroundSettings)
    main_splat: Optional[SplatEntry] = field(default_factory=_default_main_splat)
    quadrant_splats: List[ReplicationSpec] = field(default_factory=_default_quadrants)
    benches: List[SplatEntry] = field(default_factory=_default_benches)
    max_points: int = DEFAULT_MAX_POINTS
    movement: MovementSettings = field(default_factory=MovementSettings)
    mouse_sensitivity: float = DEFAULT_MOUSE_SENSITIVITY
    window: WindowSettings = field(default_factory=WindowSettings)

    def resolve(self, ref: str) -> Path:
        """Asset references are web-style paths relative to ``assets_root``."""
        return Path(self.assets_root) / ref.lstrip("/")


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def resolve_config_path(path: Optional[os.PathLike] = None) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return CONFIG_PATH


def _read_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        logger.exception("Failed to read scene config at %s", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Scene config at %s is not a JSON object; using defaults", path)
        return {}
    return data


def _float(value: Any, default: float, name: str) -> float:
    if value is None:
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid value for %s: %r (using %s)", name, value, default)
        return default
    if not math.isfinite(result):
        logger.warning("Non-finite value for %s: %r (using %s)", name, value, default)
        return default
    return result


def _int(value: Any, default: int, name: str) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid value for %s: %r (using %s)", name, value, default)
        return default


def _str(value: Any, default: Optional[str], name: str) -> Optional[str]:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    logger.warning("Invalid value for %s: %r (using %s)", name, value, default)
    return default


def _bool(value: Any, default: bool, name: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    logger.warning("Invalid value for %s: %r (using %s)", name, value, default)
    return default


def _optional_str(raw: Dict[str, Any], key: str, default: Optional[str], name: str) -> Optional[str]:
    """An explicit JSON null switches an optional asset off."""
    if key in raw and raw[key] is None:
        return None
    return _str(raw.get(key), default, name)


def _vec3(value: Any, default: Vec3, name: str) -> Vec3:
    if value is None:
        return default
    if isinstance(value, (list, tuple)) and len(value) >= 3:
        try:
            vec = (float(value[0]), float(value[1]), float(value[2]))
        except (TypeError, ValueError):
            vec = None
        if vec is not None and all(math.isfinite(v) for v in vec):
            return vec
    logger.warning("Invalid vector for %s: %r (using %s)", name, value, default)
    return default


def _parse_splat(raw: Any, name: str) -> Optional[SplatEntry]:
    if isinstance(raw, str):
        return SplatEntry(raw)
    if not isinstance(raw, dict) or not isinstance(raw.get("path"), str):
        logger.warning("Ignoring malformed splat entry %s: %r", name, raw)
        return None
    return SplatEntry(
        path=raw["path"],
        position=_vec3(raw.get("position"), (0.0, 0.0, 0.0), f"{name}.position"),
        rotation=_vec3(raw.get("rotation"), NO_ROTATION, f"{name}.rotation"),
        scale=_float(raw.get("scale"), 1.0, f"{name}.scale"),
    )


def _parse_quadrant(raw: Any, name: str) -> Optional[ReplicationSpec]:
    if isinstance(raw, str):
        return ReplicationSpec(asset_ref=raw)
    if not isinstance(raw, dict) or not isinstance(raw.get("path"), str):
        logger.warning("Ignoring malformed quadrant entry %s: %r", name, raw)
        return None
    defaults = ReplicationSpec(asset_ref=raw["path"])
    rotation = raw.get("rotation")
    return ReplicationSpec(
        asset_ref=raw["path"],
        base_distance=_float(raw.get("distance"), defaults.base_distance, f"{name}.distance"),
        height_offset=_float(raw.get("y"), defaults.height_offset, f"{name}.y"),
        uniform_scale=_float(raw.get("scale"), defaults.uniform_scale, f"{name}.scale"),
        flip_axis=_bool(raw.get("flip"), defaults.flip_axis, f"{name}.flip"),
        offset_constant=_float(raw.get("offset"), defaults.offset_constant, f"{name}.offset"),
        rotation=_vec3(rotation, NO_ROTATION, f"{name}.rotation") if rotation is not None else None,
    )


def _parse_ground(raw: Dict[str, Any]) -> GroundSettings:
    base = GroundSettings()
    return GroundSettings(
        albedo=_str(raw.get("albedo"), base.albedo, "ground.albedo"),
        normal=_optional_str(raw, "normal", base.normal, "ground.normal"),
        ao=_optional_str(raw, "ao", base.ao, "ground.ao"),
        size=_float(raw.get("size"), base.size, "ground.size"),
        tiles=max(1, _int(raw.get("tiles"), base.tiles, "ground.tiles")),
        ao_intensity=_float(raw.get("ao_intensity"), base.ao_intensity, "ground.ao_intensity"),
        texture_size=max(16, _int(raw.get("texture_size"), base.texture_size, "ground.texture_size")),
    )


def _parse_movement(raw: Dict[str, Any]) -> MovementSettings:
    base = MovementSettings()
    return MovementSettings(
        move_speed=_float(raw.get("move_speed"), base.move_speed, "movement.move_speed"),
        eye_height=_float(raw.get("eye_height"), base.eye_height, "movement.eye_height"),
        bounds_x=abs(_float(raw.get("bounds_x"), base.bounds_x, "movement.bounds_x")),
        bounds_z=abs(_float(raw.get("bounds_z"), base.bounds_z, "movement.bounds_z")),
        max_dt=max(0.0, _float(raw.get("max_dt"), base.max_dt, "movement.max_dt")),
        spawn=_vec3(raw.get("spawn"), base.spawn, "movement.spawn"),
    )


def _parse_window(raw: Dict[str, Any]) -> WindowSettings:
    base = WindowSettings()
    return WindowSettings(
        title=_str(raw.get("title"), base.title, "window.title"),
        width=_int(raw.get("width"), base.width, "window.width"),
        height=_int(raw.get("height"), base.height, "window.height"),
        fov=_float(raw.get("fov"), base.fov, "window.fov"),
        logo=_optional_str(raw, "logo", base.logo, "window.logo"),
        loading_title=_str(raw.get("loading_title"), base.loading_title, "window.loading_title"),
        loading_subtitle=_str(raw.get("loading_subtitle"), base.loading_subtitle, "window.loading_subtitle"),
        hint=_str(raw.get("hint"), base.hint, "window.hint"),
        log_level=str(_str(raw.get("log_level"), base.log_level, "window.log_level")).upper(),
    )


def _dict(value: Any, name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    logger.warning("Section %s must be an object; ignoring %r", name, value)
    return {}


def _list(value: Any, name: str) -> List[Any]:
    if isinstance(value, list):
        return value
    if value is not None:
        logger.warning("Section %s must be a list; ignoring %r", name, value)
    return []


def parse_scene_config(data: Dict[str, Any]) -> SceneConfig:
    config = SceneConfig()
    config.assets_root = _str(data.get("assets_root"), config.assets_root, "assets_root")
    config.sky = _optional_str(data, "sky", config.sky, "sky")

    config.ground = _parse_ground(_dict(data.get("ground"), "ground"))
    config.movement = _parse_movement(_dict(data.get("movement"), "movement"))
    config.window = _parse_window(_dict(data.get("window"), "window"))
    config.mouse_sensitivity = _float(
        data.get("mouse_sensitivity"), config.mouse_sensitivity, "mouse_sensitivity"
    )
    config.max_points = max(0, _int(data.get("max_points"), config.max_points, "max_points"))

    splats = _dict(data.get("splats"), "splats")
    if "main" in splats:
        config.main_splat = _parse_splat(splats["main"], "splats.main") if splats["main"] else None
    if "quadrants" in splats:
        config.quadrant_splats = []
        for idx, raw in enumerate(_list(splats["quadrants"], "splats.quadrants")):
            spec = _parse_quadrant(raw, f"splats.quadrants[{idx}]")
            if spec is not None:
                config.quadrant_splats.append(spec)
    if "benches" in splats:
        config.benches = []
        for idx, raw in enumerate(_list(splats["benches"], "splats.benches")):
            entry = _parse_splat(raw, f"splats.benches[{idx}]")
            if entry is not None:
                config.benches.append(entry)
    return config


def load_scene_config(path: Optional[os.PathLike] = None) -> SceneConfig:
    config_path = resolve_config_path(path)
    data = _read_config_file(config_path)
    if data:
        logger.info("Scene config loaded from %s", config_path)
    return parse_scene_config(data)
