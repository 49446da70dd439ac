# scene_plan.py

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from asset_loader import KIND_SPLAT, KIND_TEXTURE, AssetRequest
from scene_config import SceneConfig
from scene_layout import Placement, place_in_quadrants

ROLE_SKY = "sky"
ROLE_GROUND_ALBEDO = "ground_albedo"
ROLE_GROUND_NORMAL = "ground_normal"
ROLE_GROUND_AO = "ground_ao"
ROLE_SPLAT = "splat"

GROUND_ROLES = (ROLE_GROUND_ALBEDO, ROLE_GROUND_NORMAL, ROLE_GROUND_AO)
PANORAMA_MAX_SIZE = 4096


@dataclass(frozen=True)
class PlannedAsset:
    role: str
    request: AssetRequest
    placement: Optional[Placement] = None


def plan_scene(config: SceneConfig) -> List[PlannedAsset]:
    """
    Every asset the scene will load, in load order.

    The full list exists before any load starts, so the load barrier can be
    given its final count up front.
    """
    plan: List[PlannedAsset] = []

    if config.sky:
        plan.append(
            PlannedAsset(
                ROLE_SKY,
                AssetRequest(KIND_TEXTURE, config.resolve(config.sky), "sky", max_size=PANORAMA_MAX_SIZE),
            )
        )

    ground = config.ground
    for role, ref in (
        (ROLE_GROUND_ALBEDO, ground.albedo),
        (ROLE_GROUND_NORMAL, ground.normal),
        (ROLE_GROUND_AO, ground.ao),
    ):
        if ref:
            plan.append(
                PlannedAsset(role, AssetRequest(KIND_TEXTURE, config.resolve(ref), role.replace("_", " ")))
            )

    placements: List[Placement] = []
    if config.main_splat is not None:
        placements.append(config.main_splat.placement())
    for spec in config.quadrant_splats:
        placements.extend(place_in_quadrants(spec))
    placements.extend(entry.placement() for entry in config.benches)

    counts = {}
    for placement in placements:
        idx = counts.get(placement.asset_ref, 0)
        counts[placement.asset_ref] = idx + 1
        request = AssetRequest(
            KIND_SPLAT,
            config.resolve(placement.asset_ref),
            f"{placement.asset_ref} [{idx}]",
            max_points=config.max_points or None,
        )
        plan.append(PlannedAsset(ROLE_SPLAT, request, placement))

    return plan
