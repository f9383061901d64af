#!/usr/bin/env python3
"""
asset_store.py
==============

Capability interface between the organizer and whatever owns the assets.
The organizing steps only talk to `AssetStore`; `FileSystemAssetStore` is the
plain directory-tree implementation used by the CLI and the tests.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Set

from PIL import Image, UnidentifiedImageError

META_SUFFIX = ".meta"
IMPORT_SETTINGS_FILE = "import_settings.json"
MESH_BINDINGS_FILE = "mesh_bindings.json"


class AssetLoadError(Exception):
    """Raised when an image asset cannot be read or decoded."""


def meta_path(path: Path) -> Path:
    return path.with_name(path.name + META_SUFFIX)


class AssetStore:
    def exists(self, path: Path) -> bool:
        raise NotImplementedError

    def ensure_dir(self, path: Path) -> None:
        raise NotImplementedError

    def load_image(self, path: Path) -> Image.Image:
        raise NotImplementedError

    def write_image(self, path: Path, image: Image.Image) -> None:
        raise NotImplementedError

    def move_file(self, source: Path, target: Path) -> None:
        raise NotImplementedError

    def delete_file(self, path: Path) -> None:
        raise NotImplementedError

    def configure_texture(self, path: Path, settings: Mapping[str, object]) -> None:
        raise NotImplementedError

    def create_material_asset(self, path: Path, definition: Mapping[str, object]) -> None:
        raise NotImplementedError

    def bind_mesh_to_material(self, mesh_path: Path, material_path: Path) -> None:
        raise NotImplementedError

    def write_json(self, path: Path, payload: object) -> None:
        raise NotImplementedError

    def flush(self) -> None:
        """Persist anything the store accumulated during the run."""


class FileSystemAssetStore(AssetStore):
    """
    Works directly on a directory tree.

    Materials become JSON descriptors. Texture import settings and mesh
    bindings are collected during the run and written by `flush()` under
    *manifest_dir*.

    With *dry_run* nothing on disk changes. Moves, writes and deletes are only
    logged and remembered, so later steps see the tree as it would be.
    """

    def __init__(self, manifest_dir: Optional[Path] = None, dry_run: bool = False) -> None:
        self.manifest_dir = manifest_dir
        self.dry_run = dry_run
        self.import_settings: Dict[str, Mapping[str, object]] = {}
        self.mesh_bindings: Dict[str, str] = {}
        # dry-run overlay: planned path -> path holding its data today (None when generated)
        self._planned: Dict[Path, Optional[Path]] = {}
        self._removed: Set[Path] = set()

    def exists(self, path: Path) -> bool:
        if path in self._planned:
            return True
        if path in self._removed:
            return False
        return path.exists()

    def ensure_dir(self, path: Path) -> None:
        if path.is_dir():
            return
        if self.dry_run:
            logging.info("[dry-run][mkdir] %s", path)
            return
        path.mkdir(parents=True, exist_ok=True)

    def load_image(self, path: Path) -> Image.Image:
        source = self._planned.get(path) or path
        try:
            with Image.open(source) as image:
                image.load()
                return image.copy()
        except (OSError, UnidentifiedImageError) as exc:
            raise AssetLoadError(f"cannot load image {path}: {exc}") from exc

    def write_image(self, path: Path, image: Image.Image) -> None:
        if self.dry_run:
            logging.info("[dry-run][image] %s (%dx%d)", path, image.width, image.height)
            self._planned[path] = None
            self._removed.discard(path)
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        image.save(path, format="PNG")

    def move_file(self, source: Path, target: Path) -> None:
        if self.dry_run:
            logging.info("[dry-run][move] %s -> %s", source, target)
            self._planned[target] = self._planned.pop(source, source)
            self._removed.add(source)
            return
        shutil.move(str(source), str(target))
        if meta_path(source).exists():
            shutil.move(str(meta_path(source)), str(meta_path(target)))

    def delete_file(self, path: Path) -> None:
        if self.dry_run:
            logging.info("[dry-run][delete] %s", path)
            self._planned.pop(path, None)
            self._removed.add(path)
            return
        path.unlink()
        sidecar = meta_path(path)
        if sidecar.exists():
            sidecar.unlink()

    def configure_texture(self, path: Path, settings: Mapping[str, object]) -> None:
        self.import_settings[path.as_posix()] = dict(settings)

    def create_material_asset(self, path: Path, definition: Mapping[str, object]) -> None:
        self.write_json(path, definition)

    def bind_mesh_to_material(self, mesh_path: Path, material_path: Path) -> None:
        self.mesh_bindings[mesh_path.as_posix()] = material_path.as_posix()

    def write_json(self, path: Path, payload: object) -> None:
        if self.dry_run:
            logging.info("[dry-run][json] %s", path)
            self._planned[path] = None
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def flush(self) -> None:
        if self.manifest_dir is None:
            return
        written: List[str] = []
        if self.import_settings:
            self.write_json(self.manifest_dir / IMPORT_SETTINGS_FILE, self.import_settings)
            written.append(IMPORT_SETTINGS_FILE)
        if self.mesh_bindings:
            self.write_json(self.manifest_dir / MESH_BINDINGS_FILE, self.mesh_bindings)
            written.append(MESH_BINDINGS_FILE)
        if written:
            logging.debug("Wrote %s under %s", ", ".join(written), self.manifest_dir)
