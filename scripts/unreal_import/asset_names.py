#!/usr/bin/env python3
"""
asset_names.py
==============

Parses the Unreal export naming convention used by the organizer:

    SM_<mesh>_MI_<material>_T_<texture>_<Channel>

Exporters are not consistent about it, so the parser tries an ordered list of
rules from the strictest to the loosest and keeps the first match. Every rule
is anchored at the start of the name only, so trailing tags such as `_2K` or
UDIM tiles are tolerated.

Example usage:

    python asset_names.py SM_Table_MI_Wood_Table_T_Wood_Table_ORM
"""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

CHANNEL_KEYWORDS: Tuple[str, ...] = (
    "BaseColor",
    "Normal",
    "Metallic",
    "Roughness",
    "ORM",
    "MaskMap",
    "Emissive",
    "Occlusion",
)

# Older exports name their maps after the legacy specular workflow.
LEGACY_CHANNEL_KEYWORDS: Tuple[str, ...] = (
    "diffuse",
    "normal",
    "specular",
    "roughness",
    "occlusion",
    "orm",
)

PACKED_CHANNEL_TYPES: Tuple[str, ...] = ("ORM", "MaskMap")

# Channel layout shared by ORM and MaskMap exports.
PACKED_CHANNEL_LAYOUT: Dict[str, str] = {"R": "Occlusion", "G": "Roughness", "B": "Metallic"}

SAMPLE_NAMES: Tuple[str, ...] = (
    "SM_Bookshelf_Door_R_MI_Bookshelf_clean_T_Bookshelf_clean_BaseColor",
    "SM_Bookshelf_MI_Bookshelf_clean_T_Bookshelf_clean_Normal",
    "SM_Cabinet_C_door_MI_Bookshelf_clean_T_Bookshelf_clean_Metallic",
    "SM_Table_MI_Wood_Table_T_Wood_Table_ORM",
    "SM_Chair_MI_Metal_Chair_T_Metal_Chair_MaskMap",
)

# A keyword only counts when it is not the head of a longer word (Normal vs NormalDetail).
_KEYWORD_END = r"(?![A-Za-z0-9])"


def _alternation(keywords: Sequence[str]) -> str:
    return "|".join(re.escape(keyword) for keyword in keywords)


@dataclass
class ParsedAsset:
    mesh_name: str = ""
    material_name: str = ""
    texture_name: str = ""
    texture_type: str = ""
    rule: str = ""

    @property
    def matched(self) -> bool:
        return bool(self.material_name)


@dataclass(frozen=True)
class NameRule:
    name: str
    pattern: re.Pattern[str]
    has_texture: bool = True

    def match(self, filename: str) -> Optional[ParsedAsset]:
        found = self.pattern.match(filename)
        if found is None:
            return None
        if self.has_texture:
            texture_name, texture_type = found.group(3), found.group(4)
        else:
            texture_name, texture_type = "", found.group(3)
        return ParsedAsset(
            mesh_name=found.group(1),
            material_name=found.group(2),
            texture_name=texture_name,
            texture_type=texture_type,
            rule=self.name,
        )


NAME_RULES: Tuple[NameRule, ...] = (
    NameRule(
        name="strict",
        pattern=re.compile(
            rf"^(SM_.+?)_(MI_.+?)_(T_.+?)_({_alternation(CHANNEL_KEYWORDS)}){_KEYWORD_END}"
        ),
    ),
    NameRule(
        name="trailing-token",
        pattern=re.compile(r"^(SM_.+?)_(MI_.+?)_(T_.+?)_([A-Za-z0-9]+)$"),
    ),
    NameRule(
        name="relaxed",
        pattern=re.compile(
            rf"^(SM_.+?)_(MI_.+?)_.*_({_alternation(CHANNEL_KEYWORDS)}){_KEYWORD_END}",
            re.IGNORECASE,
        ),
        has_texture=False,
    ),
    NameRule(
        name="legacy",
        pattern=re.compile(
            rf"^(SM_.+?)_(MI_.+?)_(.+?)_({_alternation(LEGACY_CHANNEL_KEYWORDS)}){_KEYWORD_END}",
            re.IGNORECASE,
        ),
    ),
)


def parse_asset_name(filename: str, rules: Sequence[NameRule] = NAME_RULES) -> ParsedAsset:
    """Return the first rule match for *filename* (no extension), or an empty result."""
    for rule in rules:
        parsed = rule.match(filename)
        if parsed is not None:
            return parsed
    return ParsedAsset()


def is_packed_channel(channel_type: Optional[str]) -> bool:
    if not channel_type:
        return False
    lowered = channel_type.lower()
    return any(lowered == packed.lower() for packed in PACKED_CHANNEL_TYPES)


def describe_parse(filename: str) -> str:
    parsed = parse_asset_name(filename)
    if not parsed.matched:
        return f"{filename}: no naming rule matched"
    return (
        f"{filename}: mesh={parsed.mesh_name} material={parsed.material_name} "
        f"texture={parsed.texture_name or '-'} type={parsed.texture_type} [{parsed.rule}]"
    )


def main(argv: Sequence[str]) -> int:
    for name in argv or SAMPLE_NAMES:
        print(describe_parse(name))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
