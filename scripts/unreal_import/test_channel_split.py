#!/usr/bin/env python3
import tempfile
import unittest
from pathlib import Path
import sys

from PIL import Image


SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from asset_store import FileSystemAssetStore
import channel_split as splitter
from material_groups import TEXTURE_KIND, MaterialGroup, TextureInfo, discover_textures, group_assets
from organize_stats import OrganizeStats

SOURCE_PIXELS = [(10, 20, 30), (40, 50, 60), (70, 80, 90), (255, 0, 128)]


def _packed_image(mode: str = "RGB") -> Image.Image:
    image = Image.new("RGB", (2, 2))
    image.putdata(SOURCE_PIXELS)
    return image.convert(mode)


def _texture(directory: Path, name: str, channel_type: str) -> TextureInfo:
    return TextureInfo(file_name=name, channel_type=channel_type, path=directory / name)


class MetallicWriteFailsStore(FileSystemAssetStore):
    def write_image(self, path: Path, image: Image.Image) -> None:
        if path.stem.endswith("_Metallic"):
            raise OSError("No space left on device")
        super().write_image(path, image)


class SplitChannelsTests(unittest.TestCase):
    def test_each_channel_is_replicated_as_gray(self) -> None:
        derived = splitter.split_channels(_packed_image())

        self.assertEqual(list(derived), ["Occlusion", "Roughness", "Metallic"])
        for index, label in enumerate(["Occlusion", "Roughness", "Metallic"]):
            image = derived[label]
            self.assertEqual(image.mode, "RGB")
            self.assertEqual(image.size, (2, 2))
            for position, source in enumerate(SOURCE_PIXELS):
                x, y = position % 2, position // 2
                value = source[index]
                self.assertEqual(image.getpixel((x, y)), (value, value, value))

    def test_alpha_channel_is_ignored(self) -> None:
        derived = splitter.split_channels(_packed_image("RGBA"), {"B": "Metallic"})
        self.assertEqual(list(derived), ["Metallic"])
        self.assertEqual(derived["Metallic"].getpixel((1, 1)), (128, 128, 128))

    def test_unknown_channel_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            splitter.split_channels(_packed_image(), {"A": "Alpha"})

    def test_derived_path_uses_png_suffix(self) -> None:
        source = Path("Textures/MI_Wood/SM_T_MI_Wood_T_Wood_ORM.tga")
        self.assertEqual(
            splitter.derived_texture_path(source, "Roughness"),
            Path("Textures/MI_Wood/SM_T_MI_Wood_T_Wood_ORM_Roughness.png"),
        )


class SplitPackedTextureTests(unittest.TestCase):
    def test_packed_record_is_replaced_in_place(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            directory = Path(temp_dir)
            base = _texture(directory, "SM_T_MI_Wood_T_Wood_BaseColor.png", "BaseColor")
            packed = _texture(directory, "SM_T_MI_Wood_T_Wood_ORM.png", "ORM")
            normal = _texture(directory, "SM_T_MI_Wood_T_Wood_Normal.png", "Normal")
            _packed_image().save(packed.path)
            packed.path.with_name(packed.path.name + ".meta").write_text("guid: 1")
            group = MaterialGroup(textures=[base, packed, normal])

            self.assertTrue(splitter.split_packed_texture(group, packed, FileSystemAssetStore()))

            self.assertEqual(
                [texture.channel_type for texture in group.textures],
                ["BaseColor", "Metallic", "Occlusion", "Roughness", "Normal"],
            )
            self.assertIs(group.textures[0], base)
            self.assertIs(group.textures[4], normal)
            self.assertNotIn(packed, group.textures)
            self.assertFalse(packed.path.exists())
            self.assertFalse(packed.path.with_name(packed.path.name + ".meta").exists())

            roughness = group.textures[3]
            self.assertEqual(roughness.file_name, "SM_T_MI_Wood_T_Wood_ORM_Roughness.png")
            with Image.open(roughness.path) as image:
                self.assertEqual(image.getpixel((0, 1)), (80, 80, 80))

    def test_unreadable_source_leaves_group_untouched(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            directory = Path(temp_dir)
            packed = _texture(directory, "SM_T_MI_Wood_T_Wood_ORM.png", "ORM")
            packed.path.write_bytes(b"not an image")
            group = MaterialGroup(textures=[packed])

            with self.assertLogs(level="ERROR"):
                result = splitter.split_packed_texture(group, packed, FileSystemAssetStore())

            self.assertFalse(result)
            self.assertEqual(group.textures, [packed])
            self.assertTrue(packed.path.exists())
            self.assertEqual(sorted(path.name for path in directory.iterdir()), [packed.file_name])

    def test_existing_outputs_are_kept_unless_forced(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            directory = Path(temp_dir)
            packed = _texture(directory, "SM_T_MI_Wood_T_Wood_ORM.png", "ORM")
            occlusion_path = splitter.derived_texture_path(packed.path, "Occlusion")
            Image.new("RGB", (2, 2), (1, 1, 1)).save(occlusion_path)

            _packed_image().save(packed.path)
            splitter.split_packed_texture(MaterialGroup(textures=[packed]), packed, FileSystemAssetStore())
            with Image.open(occlusion_path) as image:
                self.assertEqual(image.getpixel((0, 0)), (1, 1, 1))

            _packed_image().save(packed.path)
            splitter.split_packed_texture(
                MaterialGroup(textures=[packed]), packed, FileSystemAssetStore(), force=True
            )
            with Image.open(occlusion_path) as image:
                self.assertEqual(image.getpixel((0, 0)), (10, 10, 10))

    def test_leftover_packed_source_does_not_duplicate_derived_records(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            folder = root / "MI_Wood"
            folder.mkdir()
            Image.new("RGB", (2, 2), (9, 9, 9)).save(folder / "SM_T_MI_Wood_T_Wood_BaseColor.png")
            _packed_image().save(folder / "SM_T_MI_Wood_T_Wood_ORM.png")
            for label in ("Occlusion", "Roughness", "Metallic"):
                Image.new("RGB", (2, 2), (1, 1, 1)).save(folder / f"SM_T_MI_Wood_T_Wood_ORM_{label}.png")

            groups = group_assets(discover_textures(root), TEXTURE_KIND, textures_root=root)
            self.assertEqual(len(groups["MI_Wood"].textures), 5)
            stats = OrganizeStats()
            splitter.split_packed_textures(groups, FileSystemAssetStore(), stats)

            textures = groups["MI_Wood"].textures
            self.assertEqual(stats.packed_split, 1)
            self.assertEqual(len({texture.path for texture in textures}), len(textures))
            self.assertEqual(
                [texture.channel_type for texture in textures],
                ["BaseColor", "Metallic", "Occlusion", "Roughness"],
            )
            self.assertFalse((folder / "SM_T_MI_Wood_T_Wood_ORM.png").exists())
            with Image.open(folder / "SM_T_MI_Wood_T_Wood_ORM_Roughness.png") as image:
                self.assertEqual(image.getpixel((0, 0)), (1, 1, 1))

            regrouped = group_assets(discover_textures(root), TEXTURE_KIND, textures_root=root)
            self.assertEqual(
                [texture.path for texture in regrouped["MI_Wood"].textures],
                [texture.path for texture in textures],
            )

    def test_failed_write_removes_outputs_created_by_the_call(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            directory = Path(temp_dir)
            packed = _texture(directory, "SM_T_MI_Wood_T_Wood_ORM.png", "ORM")
            _packed_image().save(packed.path)
            roughness_path = splitter.derived_texture_path(packed.path, "Roughness")
            Image.new("RGB", (2, 2), (1, 1, 1)).save(roughness_path)
            group = MaterialGroup(textures=[packed])

            with self.assertLogs(level="ERROR"):
                result = splitter.split_packed_texture(group, packed, MetallicWriteFailsStore())

            self.assertFalse(result)
            self.assertEqual(group.textures, [packed])
            self.assertEqual(
                sorted(path.name for path in directory.iterdir()),
                ["SM_T_MI_Wood_T_Wood_ORM.png", "SM_T_MI_Wood_T_Wood_ORM_Roughness.png"],
            )

    def test_split_packed_textures_counts_results(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            directory = Path(temp_dir)
            good = _texture(directory, "SM_A_MI_A_T_A_ORM.png", "ORM")
            bad = _texture(directory, "SM_B_MI_B_T_B_MaskMap.png", "MaskMap")
            _packed_image().save(good.path)
            groups = {
                "MI_A": MaterialGroup(textures=[good]),
                "MI_B": MaterialGroup(textures=[bad]),
            }
            stats = OrganizeStats()

            with self.assertLogs(level="ERROR"):
                splitter.split_packed_textures(groups, FileSystemAssetStore(), stats)

            self.assertEqual(stats.packed_split, 1)
            self.assertEqual(stats.packed_failed, 1)
            self.assertEqual(len(stats.failures), 1)
            self.assertEqual(len(groups["MI_A"].textures), 3)
            self.assertEqual(groups["MI_B"].textures, [bad])


if __name__ == "__main__":
    unittest.main()
