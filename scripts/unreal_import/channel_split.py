#!/usr/bin/env python3
"""
channel_split.py
================

Splits packed ORM / MaskMap textures into one grayscale texture per channel:

* R -> `<stem>_Occlusion.png`
* G -> `<stem>_Roughness.png`
* B -> `<stem>_Metallic.png`

Each derived image stores the channel value in R, G and B alike so it renders
as neutral gray. The packed record in its material group is replaced by the
three derived records and the packed file is removed afterwards.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Mapping

import numpy as np
from PIL import Image

from asset_names import PACKED_CHANNEL_LAYOUT, is_packed_channel
from asset_store import AssetLoadError, AssetStore
from material_groups import MaterialGroup, TextureInfo
from organize_stats import OrganizeStats

CHANNEL_INDEX: Dict[str, int] = {"R": 0, "G": 1, "B": 2}
ORM_CHANNEL_MAP: Dict[str, str] = dict(PACKED_CHANNEL_LAYOUT)
DERIVED_EXTENSION = ".png"


def split_channels(
    image: Image.Image,
    channel_map: Mapping[str, str] = ORM_CHANNEL_MAP,
) -> Dict[str, Image.Image]:
    """Return one gray RGB image per entry of *channel_map*, keyed by its label."""
    pixels = np.asarray(image.convert("RGB"), dtype=np.uint8)
    derived: Dict[str, Image.Image] = {}
    for channel, label in channel_map.items():
        try:
            index = CHANNEL_INDEX[channel.upper()]
        except KeyError:
            raise ValueError(f"Unknown channel {channel!r}; expected one of R, G, B") from None
        plane = pixels[:, :, index]
        gray = np.ascontiguousarray(np.stack((plane, plane, plane), axis=-1))
        derived[label] = Image.fromarray(gray)
    return derived


def derived_texture_path(source: Path, label: str) -> Path:
    return source.with_name(f"{source.stem}_{label}{DERIVED_EXTENSION}")


def _discard_partial_split(created: List[Path], store: AssetStore) -> None:
    for path in created:
        try:
            store.delete_file(path)
        except OSError as exc:
            logging.warning("Could not remove partial output %s: %s", path, exc)


def split_packed_texture(
    group: MaterialGroup,
    texture: TextureInfo,
    store: AssetStore,
    channel_map: Mapping[str, str] = ORM_CHANNEL_MAP,
    force: bool = False,
) -> bool:
    try:
        image = store.load_image(texture.path)
        derived = split_channels(image, channel_map)
    except (AssetLoadError, ValueError) as exc:
        logging.error("Cannot split packed texture %s: %s", texture.path, exc)
        return False

    records: List[TextureInfo] = []
    created: List[Path] = []
    for label, channel_image in derived.items():
        target = derived_texture_path(texture.path, label)
        existed = store.exists(target)
        if existed and not force:
            logging.debug("Derived texture already exists: %s", target)
        else:
            try:
                store.write_image(target, channel_image)
            except OSError as exc:
                logging.error("Failed to write %s texture %s: %s", label, target, exc)
                _discard_partial_split(created, store)
                return False
            if not existed:
                created.append(target)
            logging.debug("Created %s texture: %s", label, target)
        records.append(TextureInfo(file_name=target.name, channel_type=label, path=target))

    # Same order discovery yields on the next run.
    records.sort(key=lambda record: (record.file_name.lower(), record.file_name))
    targets = {record.path for record in records}
    # Derived maps left by an earlier run whose packed source survived.
    group.textures[:] = [
        entry for entry in group.textures if entry is texture or entry.path not in targets
    ]
    position = group.textures.index(texture)
    group.textures[position:position + 1] = records

    try:
        store.delete_file(texture.path)
    except OSError as exc:
        logging.warning("Derived channels written but %s could not be removed: %s", texture.path, exc)
    return True


def split_packed_textures(
    groups: Mapping[str, MaterialGroup],
    store: AssetStore,
    stats: OrganizeStats,
    force: bool = False,
) -> None:
    for material_name, group in groups.items():
        packed = [texture for texture in group.textures if is_packed_channel(texture.channel_type)]
        for texture in packed:
            logging.info("Splitting packed texture %s for %s", texture.file_name, material_name)
            if split_packed_texture(group, texture, store, force=force):
                stats.packed_split += 1
            else:
                stats.packed_failed += 1
                stats.failures.append(f"{texture.path}: packed texture not split")
