#!/usr/bin/env python3
"""
material_groups.py
==================

Groups exported textures and meshes under the material name parsed from their
file names. Grouping itself is a pure fold over file names; moving the texture
files into per-material folders is a separate step (`relocate_textures`)
driven by the resulting mapping.

Discovery also looks one folder deep, so a tree organized by an earlier run
groups to the same result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Set, Union

from asset_names import PACKED_CHANNEL_LAYOUT, ParsedAsset, is_packed_channel, parse_asset_name
from asset_store import AssetStore
from organize_stats import OrganizeStats

TEXTURE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".tga"}
MESH_EXTENSIONS = {".fbx"}

TEXTURE_KIND = "texture"
MESH_KIND = "mesh"


@dataclass
class TextureInfo:
    file_name: str
    channel_type: str
    path: Path


@dataclass
class MaterialGroup:
    textures: List[TextureInfo] = field(default_factory=list)
    meshes: Set[str] = field(default_factory=set)

    def copy(self) -> "MaterialGroup":
        return MaterialGroup(textures=list(self.textures), meshes=set(self.meshes))


def is_texture_file(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in TEXTURE_EXTENSIONS


def is_mesh_file(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in MESH_EXTENSIONS


def resolve_channel_type(parsed: ParsedAsset, stem: str) -> str:
    """
    Map a parsed channel type to the one recorded for the texture.

    Channels split out of a packed map keep the packed keyword in their name
    (`T_Wood_ORM_Roughness`); those resolve to the derived label so a second
    run does not treat them as packed maps again.
    """
    if is_packed_channel(parsed.texture_type):
        lowered = stem.lower()
        for label in PACKED_CHANNEL_LAYOUT.values():
            if lowered.endswith(f"_{label.lower()}"):
                return label
    return parsed.texture_type


def group_assets(
    paths: Iterable[Union[str, Path]],
    file_kind: str,
    textures_root: Optional[Path] = None,
    groups: Optional[Mapping[str, MaterialGroup]] = None,
) -> Dict[str, MaterialGroup]:
    """
    Fold *paths* into a material name -> `MaterialGroup` mapping.

    Textures create groups; their `TextureInfo.path` is where the file lives
    once organized (`textures_root/<material>/<file>`). Meshes only join
    groups that already exist. *groups* is copied, never mutated.
    """
    result: Dict[str, MaterialGroup] = {
        name: group.copy() for name, group in (groups or {}).items()
    }

    if file_kind == TEXTURE_KIND:
        if textures_root is None:
            raise ValueError("textures_root is required to group textures")
        for raw_path in paths:
            path = Path(raw_path)
            parsed = parse_asset_name(path.stem)
            if not parsed.matched:
                logging.debug("No naming rule matched texture %s; not grouped.", path.name)
                continue
            group = result.setdefault(parsed.material_name, MaterialGroup())
            resolved = textures_root / parsed.material_name / path.name
            if any(texture.path == resolved for texture in group.textures):
                continue
            group.textures.append(
                TextureInfo(
                    file_name=path.name,
                    channel_type=resolve_channel_type(parsed, path.stem),
                    path=resolved,
                )
            )
    elif file_kind == MESH_KIND:
        for raw_path in paths:
            path = Path(raw_path)
            parsed = parse_asset_name(path.stem)
            if not parsed.matched:
                logging.debug("No naming rule matched mesh %s; not grouped.", path.name)
                continue
            group = result.get(parsed.material_name)
            if group is None:
                # Meshes whose material has no texture are left out of grouping.
                logging.debug(
                    "Mesh %s references %s, which has no textures; not grouped.",
                    path.name,
                    parsed.material_name,
                )
                continue
            group.meshes.add(path.name)
    else:
        raise ValueError(f"Unknown file kind: {file_kind!r}")

    return result


def discover_textures(textures_root: Path) -> List[Path]:
    if not textures_root.is_dir():
        return []
    found: List[Path] = []
    for entry in textures_root.iterdir():
        if entry.is_dir():
            found.extend(child for child in entry.iterdir() if is_texture_file(child))
        elif is_texture_file(entry):
            found.append(entry)
    return sorted(found, key=lambda path: (path.name.lower(), path.name, str(path)))


def discover_meshes(meshes_root: Path) -> List[Path]:
    if not meshes_root.is_dir():
        return []
    return sorted(
        (entry for entry in meshes_root.iterdir() if is_mesh_file(entry)),
        key=lambda path: (path.name.lower(), path.name),
    )


def build_material_groups(
    texture_files: Iterable[Path],
    mesh_files: Iterable[Path],
    textures_root: Path,
) -> Dict[str, MaterialGroup]:
    groups = group_assets(texture_files, TEXTURE_KIND, textures_root=textures_root)
    return group_assets(mesh_files, MESH_KIND, groups=groups)


def relocate_textures(
    texture_files: Iterable[Path],
    groups: Mapping[str, MaterialGroup],
    store: AssetStore,
    stats: OrganizeStats,
) -> None:
    targets: Dict[str, Path] = {
        texture.file_name: texture.path
        for group in groups.values()
        for texture in group.textures
    }

    for source in texture_files:
        target = targets.get(source.name)
        if target is None:
            continue
        if source == target:
            stats.textures_in_place += 1
            logging.debug("Texture already organized: %s", target)
            continue
        if store.exists(target):
            stats.textures_conflicting += 1
            logging.warning(
                "Not moving %s: %s already exists.", source, target
            )
            continue
        try:
            store.ensure_dir(target.parent)
            store.move_file(source, target)
        except OSError as exc:
            stats.textures_failed += 1
            stats.failures.append(f"{source} -> {target}: {exc}")
            logging.error("Failed to move %s to %s: %s", source, target, exc)
            continue
        stats.textures_moved += 1
        logging.debug("Moved texture %s -> %s", source, target)
