#!/usr/bin/env python3
"""
organize_assets.py
==================

Reorganizes an Unreal Engine export so it can be dropped into a Unity project:

* Textures are grouped by the material name parsed from their file names and
  moved into `Textures/<Material>/`.
* Packed ORM / MaskMap textures are split into Occlusion, Roughness and
  Metallic maps.
* One Standard-shader material descriptor is written per material under
  `Materials/`, and grouped meshes are bound to it.
* The optional `scene_data.json` actor export is converted into
  `scene_layout.json` with positions in Unity's axes and meters.

Example usage:

    python organize_assets.py \\
        --import-root "Assets/UE_Export" \\
        --report reports/organize.json

Re-running on an already organized tree is safe: existing folders, derived
textures and materials are kept unless `--force` is given.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence

from asset_names import describe_parse, is_packed_channel, SAMPLE_NAMES
from asset_store import AssetStore, FileSystemAssetStore
from channel_split import split_packed_textures
from material_assembly import (
    DEFAULT_MATERIAL_EXTENSION,
    assign_materials_to_meshes,
    configure_textures,
    create_materials,
)
from material_groups import MaterialGroup, build_material_groups, discover_meshes, discover_textures, relocate_textures
from organize_stats import OrganizeStats
from scene_layout import SceneLayoutError, build_scene_layout, load_scene_objects, write_scene_layout

DEFAULT_IMPORT_ROOT = Path("Assets/UE_Export")
TEXTURES_DIR = "Textures"
MESHES_DIR = "Meshes"
MATERIALS_DIR = "Materials"
SCENE_EXPORT_FILE = "scene_data.json"
SCENE_LAYOUT_FILE = "scene_layout.json"


@dataclass(frozen=True)
class OrganizerPaths:
    import_root: Path
    textures: Path
    meshes: Path
    materials: Path
    scene_export: Path
    scene_layout: Path

    @classmethod
    def from_root(cls, import_root: Path, scene_export: Optional[Path] = None) -> "OrganizerPaths":
        return cls(
            import_root=import_root,
            textures=import_root / TEXTURES_DIR,
            meshes=import_root / MESHES_DIR,
            materials=import_root / MATERIALS_DIR,
            scene_export=scene_export if scene_export is not None else import_root / SCENE_EXPORT_FILE,
            scene_layout=import_root / SCENE_LAYOUT_FILE,
        )


@dataclass(frozen=True)
class OrganizeOptions:
    material_extension: str = DEFAULT_MATERIAL_EXTENSION
    split_packed: bool = True
    create_materials: bool = True
    bind_meshes: bool = True
    import_scene: bool = True
    drop_empty_objects: bool = False
    force: bool = False


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Organize Unreal Engine exports (textures, meshes, scene layout) by material."
    )
    parser.add_argument(
        "--import-root",
        type=Path,
        default=DEFAULT_IMPORT_ROOT,
        help="Export root holding Textures/, Meshes/ and scene_data.json (default: %(default)s).",
    )
    parser.add_argument(
        "--scene-json",
        type=Path,
        help="Scene actor export to convert (default: <import-root>/scene_data.json).",
    )
    parser.add_argument(
        "--material-extension",
        default=DEFAULT_MATERIAL_EXTENSION,
        help="File extension for written material descriptors (default: %(default)s).",
    )
    parser.add_argument(
        "--skip-orm",
        action="store_true",
        help="Keep packed ORM/MaskMap textures instead of splitting them.",
    )
    parser.add_argument(
        "--skip-materials",
        action="store_true",
        help="Do not create material descriptors (implies --skip-mesh-binding).",
    )
    parser.add_argument(
        "--skip-mesh-binding",
        action="store_true",
        help="Do not bind grouped meshes to their materials.",
    )
    parser.add_argument(
        "--skip-scene",
        action="store_true",
        help="Do not convert the scene export even when it exists.",
    )
    parser.add_argument(
        "--drop-empty-objects",
        action="store_true",
        help="Leave scene objects without a resolved mesh out of the layout.",
    )
    parser.add_argument(
        "--test-names",
        nargs="*",
        metavar="NAME",
        help="Only print how the given names (or built-in samples) parse, then exit.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Rewrite derived textures and materials that already exist.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the planned moves and writes without touching the disk.",
    )
    parser.add_argument(
        "--report",
        type=Path,
        help="Optional path to write a JSON report with counters and failures.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )
    return parser.parse_args(argv)


def organize_textures(
    paths: OrganizerPaths,
    store: AssetStore,
    stats: OrganizeStats,
) -> Dict[str, MaterialGroup]:
    texture_files = discover_textures(paths.textures)
    mesh_files = discover_meshes(paths.meshes)
    logging.info(
        "Found %d texture(s) and %d mesh(es) under %s",
        len(texture_files),
        len(mesh_files),
        paths.import_root,
    )
    groups = build_material_groups(texture_files, mesh_files, paths.textures)
    stats.textures_grouped = sum(len(group.textures) for group in groups.values())
    logging.info("Grouped %d texture(s) into %d material(s).", stats.textures_grouped, len(groups))
    relocate_textures(texture_files, groups, store, stats)
    return groups


def import_scene_layout(
    paths: OrganizerPaths,
    store: AssetStore,
    options: OrganizeOptions,
    stats: OrganizeStats,
) -> None:
    if not paths.scene_export.exists():
        logging.debug("No scene export at %s; scene layout skipped.", paths.scene_export)
        return
    try:
        scene_objects = load_scene_objects(paths.scene_export)
    except SceneLayoutError as exc:
        stats.scene_failed += 1
        stats.failures.append(str(exc))
        logging.error("Scene import aborted: %s", exc)
        return
    placements = build_scene_layout(
        scene_objects,
        store=store,
        meshes_root=paths.meshes,
        materials_root=paths.materials,
        material_extension=options.material_extension,
        stats=stats,
        drop_empty=options.drop_empty_objects,
    )
    try:
        write_scene_layout(placements, paths.scene_layout, store)
    except OSError as exc:
        stats.scene_failed += 1
        stats.failures.append(f"{paths.scene_layout}: {exc}")
        logging.error("Failed to write scene layout %s: %s", paths.scene_layout, exc)


def run_pipeline(
    paths: OrganizerPaths,
    store: AssetStore,
    options: OrganizeOptions,
    stats: OrganizeStats,
) -> Dict[str, MaterialGroup]:
    logging.info("Organizing assets by material...")
    groups = organize_textures(paths, store, stats)

    if options.split_packed:
        packed = sum(
            1 for group in groups.values() for texture in group.textures if is_packed_channel(texture.channel_type)
        )
        if packed:
            logging.info("Processing %d packed ORM/MaskMap texture(s)...", packed)
            split_packed_textures(groups, store, stats, force=options.force)

    logging.info("Configuring texture import settings...")
    configure_textures(groups, store, stats)

    if options.create_materials:
        logging.info("Creating materials with textures...")
        create_materials(
            groups,
            store,
            materials_root=paths.materials,
            extension=options.material_extension,
            stats=stats,
            force=options.force,
        )
        if options.bind_meshes:
            logging.info("Assigning materials to meshes...")
            assign_materials_to_meshes(
                groups,
                store,
                meshes_root=paths.meshes,
                materials_root=paths.materials,
                extension=options.material_extension,
                stats=stats,
            )

    if options.import_scene:
        import_scene_layout(paths, store, options, stats)

    store.flush()
    return groups


def write_report(
    target: Path,
    paths: OrganizerPaths,
    groups: Dict[str, MaterialGroup],
    stats: OrganizeStats,
) -> None:
    report_payload: Dict[str, object] = {
        "import_root": str(paths.import_root),
        "materials": {
            name: {
                "textures": [
                    {"file": texture.file_name, "type": texture.channel_type, "path": texture.path.as_posix()}
                    for texture in group.textures
                ],
                "meshes": sorted(group.meshes),
            }
            for name, group in sorted(groups.items())
        },
        "stats": stats.counters(),
        "failures": stats.failures,
    }
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(report_payload, indent=2), encoding="utf-8")
    logging.info("Wrote organize report to %s", target)


def main(argv: Sequence[str]) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    if args.test_names is not None:
        for name in args.test_names or SAMPLE_NAMES:
            logging.info("%s", describe_parse(name))
        return 0

    import_root = args.import_root.resolve()
    if not import_root.is_dir():
        logging.error("Import root does not exist: %s", import_root)
        return 1

    paths = OrganizerPaths.from_root(
        import_root,
        scene_export=args.scene_json.resolve() if args.scene_json else None,
    )
    options = OrganizeOptions(
        material_extension=args.material_extension,
        split_packed=not args.skip_orm,
        create_materials=not args.skip_materials,
        bind_meshes=not args.skip_mesh_binding,
        import_scene=not args.skip_scene,
        drop_empty_objects=args.drop_empty_objects,
        force=args.force,
    )
    store = FileSystemAssetStore(manifest_dir=paths.materials, dry_run=args.dry_run)
    stats = OrganizeStats()

    try:
        groups = run_pipeline(paths, store, options, stats)
    except Exception:  # noqa: BLE001
        logging.exception("Organizing %s failed.", import_root)
        return 1

    if args.report:
        if args.dry_run:
            logging.info("[dry-run] report would be written to %s", args.report)
        else:
            try:
                write_report(args.report, paths, groups, stats)
            except OSError as exc:
                stats.failures.append(f"{args.report}: {exc}")
                logging.error("Failed to write report %s: %s", args.report, exc)
                return 1

    logging.info(
        "Textures: %d grouped / %d moved / %d in place / %d conflicting / %d failed | "
        "Packed: %d split / %d failed | "
        "Materials: %d created / %d kept / %d failed | "
        "Meshes: %d bound / %d missing | "
        "Scene: %d placed / %d filtered",
        stats.textures_grouped,
        stats.textures_moved,
        stats.textures_in_place,
        stats.textures_conflicting,
        stats.textures_failed,
        stats.packed_split,
        stats.packed_failed,
        stats.materials_created,
        stats.materials_skipped,
        stats.materials_failed,
        stats.meshes_bound,
        stats.meshes_missing,
        stats.scene_objects_placed,
        stats.scene_objects_filtered,
    )

    if stats.failures:
        logging.warning("%d failure(s) recorded; re-run after fixing them.", len(stats.failures))
    return 0 if stats.failed == 0 else 1


def run() -> int:
    return main(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(run())
