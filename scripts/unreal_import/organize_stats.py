"""Per-run counters shared by the organizing steps."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, List


@dataclass
class OrganizeStats:
    textures_grouped: int = 0
    textures_moved: int = 0
    textures_in_place: int = 0
    textures_conflicting: int = 0
    textures_failed: int = 0
    textures_configured: int = 0
    packed_split: int = 0
    packed_failed: int = 0
    materials_created: int = 0
    materials_skipped: int = 0
    materials_failed: int = 0
    bindings_skipped: int = 0
    meshes_bound: int = 0
    meshes_missing: int = 0
    scene_objects_placed: int = 0
    scene_objects_filtered: int = 0
    scene_failed: int = 0
    failures: List[str] = field(default_factory=list)

    def counters(self) -> Dict[str, int]:
        return {key: value for key, value in asdict(self).items() if isinstance(value, int)}

    @property
    def failed(self) -> int:
        return self.textures_failed + self.packed_failed + self.materials_failed + self.scene_failed
