#!/usr/bin/env python3
"""
scene_layout.py
===============

Reads the actor list exported from an Unreal level (`scene_data.json`) and
converts it into target-space placements:

* position: Unreal (X=forward, Y=right, Z=up, centimeters) becomes
  (-X, Z, Y) in meters;
* rotation and scale are carried over as exported.

Only position is converted. Rotation and scale still use Unreal's axes, which
is known to be incomplete; placements are written as they come out.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from asset_store import AssetStore
from material_assembly import material_asset_path
from organize_stats import OrganizeStats

UNREAL_UNITS_PER_METER = 100.0
GAME_CONTENT_PREFIX = "/Game/"
ENGINE_CONTENT_PREFIX = "/Engine/"
ENGINE_BASIC_SHAPES = ("Cube", "Sphere", "Cylinder")
MESH_EXTENSION = ".fbx"

SKIPPED_ACTOR_TYPES = {
    "LightmassImportanceVolume",
    "SphereReflectionCapture",
    "PostProcessVolume",
    "SkyLight",
    "ExponentialHeightFog",
    "DirectionalLight",
    "BP_Sky_Sphere_C",
    "BP_Material_swapper_C",
}

Vector3 = Tuple[float, float, float]


class SceneLayoutError(Exception):
    """Raised when the scene export cannot be read or parsed."""


@dataclass
class SceneObject:
    name: str
    type: str = ""
    position: List[float] = field(default_factory=list)
    rotation: List[float] = field(default_factory=list)
    scale: List[float] = field(default_factory=list)
    static_mesh: str = ""


@dataclass
class Placement:
    name: str
    type: str
    position: Vector3
    rotation: Vector3
    scale: Vector3
    mesh: Optional[str] = None
    material: Optional[str] = None


def _as_list(value: object) -> List[float]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _scene_object_from_entry(entry: object) -> SceneObject:
    if not isinstance(entry, dict):
        raise SceneLayoutError(f"scene entry is not an object: {entry!r}")
    return SceneObject(
        name=str(entry.get("name") or ""),
        type=str(entry.get("type") or ""),
        position=_as_list(entry.get("position")),
        rotation=_as_list(entry.get("rotation")),
        scale=_as_list(entry.get("scale")),
        static_mesh=str(entry.get("static_mesh") or ""),
    )


def load_scene_objects(path: Path) -> List[SceneObject]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SceneLayoutError(f"cannot read scene export {path}: {exc}") from exc

    # Exports are a bare array; an already wrapped {"objects": [...]} is accepted too.
    if isinstance(payload, dict):
        payload = payload.get("objects")
    if not isinstance(payload, list):
        raise SceneLayoutError(f"scene export {path} does not contain an object list")
    return [_scene_object_from_entry(entry) for entry in payload]


def should_import(scene_object: SceneObject) -> bool:
    return scene_object.type not in SKIPPED_ACTOR_TYPES


def _as_vector(values: Sequence[float]) -> Optional[Vector3]:
    if values is None or len(values) != 3:
        return None
    try:
        return float(values[0]), float(values[1]), float(values[2])
    except (TypeError, ValueError):
        return None


def convert_position(position: Sequence[float]) -> Vector3:
    vector = _as_vector(position)
    if vector is None:
        return 0.0, 0.0, 0.0
    x, y, z = vector
    return (
        -x / UNREAL_UNITS_PER_METER,
        z / UNREAL_UNITS_PER_METER,
        y / UNREAL_UNITS_PER_METER,
    )


def convert_rotation(rotation: Sequence[float]) -> Vector3:
    # Pitch, yaw, roll pass through unchanged (no handedness conversion yet).
    vector = _as_vector(rotation)
    return vector if vector is not None else (0.0, 0.0, 0.0)


def convert_scale(scale: Sequence[float]) -> Vector3:
    vector = _as_vector(scale)
    return vector if vector is not None else (1.0, 1.0, 1.0)


def convert_mesh_path(unreal_path: str, meshes_root: Path) -> Optional[Path]:
    if not unreal_path:
        return None
    if GAME_CONTENT_PREFIX in unreal_path:
        relative = unreal_path.replace(GAME_CONTENT_PREFIX, "")
        asset_name = relative.split("/")[-1].split(".")[0]
        return meshes_root / f"{asset_name}{MESH_EXTENSION}"
    if ENGINE_CONTENT_PREFIX in unreal_path:
        for shape in ENGINE_BASIC_SHAPES:
            if shape in unreal_path:
                return meshes_root / f"{shape}{MESH_EXTENSION}"
        logging.warning("Engine asset skipped: %s", unreal_path)
        return None
    return Path(unreal_path)


def material_name_for_object(object_name: str) -> str:
    return object_name.replace("SM_", "MI_")


def build_scene_layout(
    scene_objects: Sequence[SceneObject],
    store: AssetStore,
    meshes_root: Path,
    materials_root: Path,
    material_extension: str,
    stats: OrganizeStats,
    drop_empty: bool = False,
) -> List[Placement]:
    placements: List[Placement] = []
    for scene_object in scene_objects:
        if not should_import(scene_object):
            stats.scene_objects_filtered += 1
            continue

        mesh_path = convert_mesh_path(scene_object.static_mesh, meshes_root)
        if mesh_path is not None and not store.exists(mesh_path):
            logging.warning("Mesh not found: %s for object %s", mesh_path, scene_object.name)
            mesh_path = None

        if mesh_path is None and drop_empty:
            stats.scene_objects_filtered += 1
            continue

        material: Optional[Path] = None
        if mesh_path is not None:
            candidate = material_asset_path(
                materials_root, material_name_for_object(scene_object.name), material_extension
            )
            if store.exists(candidate):
                material = candidate

        placements.append(
            Placement(
                name=scene_object.name,
                type=scene_object.type,
                position=convert_position(scene_object.position),
                rotation=convert_rotation(scene_object.rotation),
                scale=convert_scale(scene_object.scale),
                mesh=mesh_path.as_posix() if mesh_path is not None else None,
                material=material.as_posix() if material is not None else None,
            )
        )

    stats.scene_objects_placed += len(placements)
    with_mesh = sum(1 for placement in placements if placement.mesh)
    logging.info(
        "Placed %d mesh object(s) and %d empty object(s) from the Unreal scene.",
        with_mesh,
        len(placements) - with_mesh,
    )
    return placements


def placement_to_dict(placement: Placement) -> Dict[str, object]:
    return {
        "name": placement.name,
        "type": placement.type,
        "position": list(placement.position),
        "rotation": list(placement.rotation),
        "scale": list(placement.scale),
        "mesh": placement.mesh,
        "material": placement.material,
    }


def write_scene_layout(placements: Sequence[Placement], target: Path, store: AssetStore) -> None:
    store.write_json(target, {"objects": [placement_to_dict(placement) for placement in placements]})
    logging.info("Wrote scene layout to %s", target)
