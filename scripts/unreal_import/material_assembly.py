#!/usr/bin/env python3
"""
material_assembly.py
====================

Turns material groups into material assets for the Standard shader and binds
them to the grouped meshes. Each shader role takes the first texture whose
channel type contains one of the role keywords (case-insensitive).
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from asset_store import AssetStore
from material_groups import MaterialGroup, TextureInfo
from organize_stats import OrganizeStats

DEFAULT_SHADER = "Standard"
DEFAULT_MATERIAL_EXTENSION = ".mat.json"
ROUGHNESS_GLOSSINESS = 0.7

TEXTURE_ROLES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("BaseColor", ("basecolor", "albedo", "diffuse")),
    ("Normal", ("normal", "nrm")),
    ("Metallic", ("metallic", "metalness")),
    ("Roughness", ("roughness",)),
    ("Occlusion", ("occlusion",)),
    ("Emissive", ("emissive", "emission")),
)

NORMAL_MAP_KEYWORDS = ("normal", "nrm")
LINEAR_KEYWORDS = ("metallic", "roughness", "occlusion")


@dataclass(frozen=True)
class TextureImportSettings:
    texture_type: str = "Default"
    srgb: bool = True


@dataclass
class MaterialDefinition:
    name: str
    shader: str = DEFAULT_SHADER
    textures: Dict[str, str] = field(default_factory=dict)
    floats: Dict[str, float] = field(default_factory=dict)
    colors: Dict[str, List[float]] = field(default_factory=dict)
    keywords: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def find_texture(textures: Sequence[TextureInfo], *keywords: str) -> Optional[TextureInfo]:
    for texture in textures:
        if not texture.channel_type:
            continue
        lowered = texture.channel_type.lower()
        if any(keyword.lower() in lowered for keyword in keywords):
            return texture
    return None


def select_role_textures(group: MaterialGroup) -> Dict[str, TextureInfo]:
    selected: Dict[str, TextureInfo] = {}
    for role, keywords in TEXTURE_ROLES:
        texture = find_texture(group.textures, *keywords)
        if texture is not None:
            selected[role] = texture
    return selected


def texture_import_settings(channel_type: Optional[str]) -> TextureImportSettings:
    lowered = (channel_type or "").lower()
    if any(keyword in lowered for keyword in NORMAL_MAP_KEYWORDS):
        return TextureImportSettings(texture_type="NormalMap", srgb=False)
    if any(keyword in lowered for keyword in LINEAR_KEYWORDS):
        return TextureImportSettings(srgb=False)
    return TextureImportSettings()


def material_asset_path(materials_root: Path, material_name: str, extension: str) -> Path:
    suffix = extension if extension.startswith(".") else f".{extension}"
    return materials_root / f"{material_name}{suffix}"


def build_material_definition(
    material_name: str,
    group: MaterialGroup,
    store: AssetStore,
    stats: Optional[OrganizeStats] = None,
) -> MaterialDefinition:
    definition = MaterialDefinition(name=material_name)
    selected = select_role_textures(group)

    def available(role: str) -> Optional[TextureInfo]:
        texture = selected.get(role)
        if texture is None:
            return None
        if not store.exists(texture.path):
            logging.warning(
                "%s texture for %s not found at %s; binding skipped.",
                role,
                material_name,
                texture.path,
            )
            if stats is not None:
                stats.bindings_skipped += 1
            return None
        logging.debug("Assigned %s: %s to material %s", role, texture.file_name, material_name)
        return texture

    base_color = available("BaseColor")
    if base_color is not None:
        definition.textures["_MainTex"] = base_color.path.as_posix()

    normal = available("Normal")
    if normal is not None:
        definition.textures["_BumpMap"] = normal.path.as_posix()
        definition.keywords.append("_NORMALMAP")
        definition.floats["_BumpScale"] = 1.0

    metallic = available("Metallic")
    if metallic is not None:
        definition.textures["_MetallicGlossMap"] = metallic.path.as_posix()
        definition.keywords.append("_METALLICGLOSSMAP")
        definition.floats["_Metallic"] = 1.0
        definition.floats["_GlossMapScale"] = 1.0
    else:
        definition.floats["_Metallic"] = 0.0

    # The Standard shader has no roughness slot; only the glossiness level follows it.
    if available("Roughness") is not None:
        definition.floats["_Glossiness"] = ROUGHNESS_GLOSSINESS

    occlusion = available("Occlusion")
    if occlusion is not None:
        definition.textures["_OcclusionMap"] = occlusion.path.as_posix()
        definition.floats["_OcclusionStrength"] = 1.0

    emissive = available("Emissive")
    if emissive is not None:
        definition.textures["_EmissionMap"] = emissive.path.as_posix()
        definition.keywords.append("_EMISSION")
        definition.colors["_EmissionColor"] = [1.0, 1.0, 1.0, 1.0]

    return definition


def configure_textures(
    groups: Mapping[str, MaterialGroup],
    store: AssetStore,
    stats: OrganizeStats,
) -> None:
    for group in groups.values():
        for texture in group.textures:
            if not store.exists(texture.path):
                logging.warning("Texture %s not found; import settings skipped.", texture.path)
                continue
            store.configure_texture(texture.path, asdict(texture_import_settings(texture.channel_type)))
            stats.textures_configured += 1


def create_materials(
    groups: Mapping[str, MaterialGroup],
    store: AssetStore,
    materials_root: Path,
    extension: str,
    stats: OrganizeStats,
    force: bool = False,
) -> None:
    store.ensure_dir(materials_root)
    for material_name, group in groups.items():
        target = material_asset_path(materials_root, material_name, extension)
        if store.exists(target) and not force:
            stats.materials_skipped += 1
            logging.debug("Material already exists: %s", target)
            continue
        definition = build_material_definition(material_name, group, store, stats)
        try:
            store.create_material_asset(target, definition.to_dict())
        except OSError as exc:
            stats.materials_failed += 1
            stats.failures.append(f"{target}: {exc}")
            logging.error("Failed to create material %s: %s", target, exc)
            continue
        stats.materials_created += 1
        logging.debug("Created material: %s", target)


def assign_materials_to_meshes(
    groups: Mapping[str, MaterialGroup],
    store: AssetStore,
    meshes_root: Path,
    materials_root: Path,
    extension: str,
    stats: OrganizeStats,
) -> None:
    for material_name, group in groups.items():
        if not group.meshes:
            continue
        material = material_asset_path(materials_root, material_name, extension)
        if not store.exists(material):
            logging.warning("Material %s not found; %d mesh(es) left unbound.", material, len(group.meshes))
            continue
        for mesh_file in sorted(group.meshes):
            mesh_path = meshes_root / mesh_file
            if not store.exists(mesh_path):
                stats.meshes_missing += 1
                logging.warning("Mesh %s not found; material %s not assigned.", mesh_path, material_name)
                continue
            store.bind_mesh_to_material(mesh_path, material)
            stats.meshes_bound += 1
            logging.debug("Assigned material %s to mesh %s", material_name, mesh_file)

    logging.info("Made %d material assignment(s).", stats.meshes_bound)
