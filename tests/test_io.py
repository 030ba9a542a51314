"""
Tests for glTF ingestion, palettes and the .vox codec.
"""

import sys
from pathlib import Path
import struct
import tempfile
import numpy as np
import unittest
from PIL import Image
from pygltflib import GLTF2, Node

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from skeleton_vox.ingestion import SkeletonLoader, decompose_matrix, parse_root_identifier
from skeleton_vox.color import load_palette, normalize_palette
from skeleton_vox.scene import SceneGraphBuilder, TransformRecord, GroupRecord, DEFAULT_MATERIAL
from skeleton_vox.walker import SkeletonWalker
from skeleton_vox.exporters import VoxExporter, load_vox
from skeleton_vox.exporters.vox_exporter import TransformChunk, GroupChunk, pack_dict
from skeleton_vox.errors import JointNotFound, MalformedHierarchy, SerializationFailure

from gltf_fixtures import skeleton_gltf, write_gltf


class TestSkeletonLoader(unittest.TestCase):
    """Tests for the glTF skeleton source."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.model = write_gltf(skeleton_gltf(), self.tmp)

    def tearDown(self):
        self._tmp.cleanup()

    def test_load_by_name(self):
        root = SkeletonLoader().load(self.model, "root").root
        assert root.name == "root"
        assert [child.name for child in root.children] == ["A", "C"]
        assert root.children[0].children[0].name == "B"
        assert list(root.children[0].translation) == [0.0, 10.0, 0.0]

    def test_load_by_index(self):
        root = SkeletonLoader().load(self.model, 1).root
        assert root.name == "A"
        assert root.index == 1

    def test_joint_not_found(self):
        for missing in ("nope", 42, -1):
            with self.assertRaises(JointNotFound) as ctx:
                SkeletonLoader().load(self.model, missing)
            assert ctx.exception.identifier == missing
            assert isinstance(ctx.exception, KeyError)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            SkeletonLoader().load(self.tmp / "missing.gltf", "root")

    def test_joint_names(self):
        loader = SkeletonLoader().open(self.model)
        assert loader.joint_names() == ["root", "A", "B", "C"]
        with self.assertRaises(RuntimeError):
            loader.root

    def test_matrix_node(self):
        gltf = GLTF2(nodes=[
            Node(name="root", children=[1]),
            Node(name="m", matrix=[2, 0, 0, 0, 0, 2, 0, 0, 0, 0, 2, 0, 1, 2, 3, 1]),
        ])
        joint = SkeletonLoader().load_from_gltf(gltf, "root").root.children[0]
        assert np.allclose(joint.translation, [1, 2, 3])
        assert np.allclose(joint.scale, [2, 2, 2])
        assert np.allclose(np.abs(joint.rotation), [0, 0, 0, 1])

    def test_decompose_rotation(self):
        # 90 degrees about Z, column-major
        matrix = [0, 1, 0, 0, -1, 0, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1]
        translation, quaternion, scale = decompose_matrix(matrix)
        half = np.sqrt(0.5)
        assert np.allclose(translation, 0)
        assert np.allclose(scale, 1)
        assert np.allclose(np.abs(quaternion), [0, 0, half, half])

    def test_dangling_child(self):
        gltf = GLTF2(nodes=[Node(name="root", children=[9])])
        with self.assertRaises(MalformedHierarchy):
            SkeletonLoader().load_from_gltf(gltf, "root")

    def test_cycle(self):
        gltf = GLTF2(nodes=[Node(name="a", children=[1]), Node(name="b", children=[0])])
        with self.assertRaises(MalformedHierarchy):
            SkeletonLoader().load_from_gltf(gltf, "a")

    def test_unnamed_node_reaches_walker(self):
        gltf = GLTF2(nodes=[Node(name="root", children=[1]), Node(translation=[0, 1, 0])])
        root = SkeletonLoader().load_from_gltf(gltf, "root").root
        with self.assertRaises(MalformedHierarchy) as ctx:
            SkeletonWalker().walk(root)
        assert ctx.exception.joint == 1

    def test_parse_root_identifier(self):
        assert parse_root_identifier("12") == 12
        assert parse_root_identifier("b_Hip_01") == "b_Hip_01"


class TestPalette(unittest.TestCase):
    """Tests for palette loading."""

    def test_load_palette_image(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "palette.png"
            img = Image.new("RGBA", (2, 1))
            img.putpixel((0, 0), (255, 0, 0, 255))
            img.putpixel((1, 0), (0, 0, 255, 128))
            img.save(path)

            palette = load_palette(path)

        assert palette.shape == (256, 4)
        assert list(palette[0]) == [255, 0, 0, 255]
        assert list(palette[1]) == [0, 0, 255, 128]
        assert list(palette[2]) == [0, 0, 0, 255]

    def test_truncates_long_palettes(self):
        palette = normalize_palette(np.full((300, 3), 7))
        assert palette.shape == (256, 4)
        assert np.all(palette[:, :3] == 7)

    def test_bad_shape(self):
        with self.assertRaises(ValueError):
            normalize_palette(np.zeros((4, 2)))

    def test_missing_image(self):
        with self.assertRaises(FileNotFoundError):
            load_palette("/nonexistent/palette.png")


class TestVoxExporter(unittest.TestCase):
    """Tests for .vox encoding and decoding."""

    def setUp(self):
        walker = SkeletonWalker()
        loader = SkeletonLoader().load_from_gltf(skeleton_gltf(), "root")
        self.boxes = walker.walk(loader.root)

    def test_header(self):
        data = VoxExporter().to_bytes(SceneGraphBuilder().build(self.boxes))
        assert data[:4] == b'VOX '
        assert struct.unpack('<I', data[4:8])[0] == 150
        assert data[8:12] == b'MAIN'

    def test_transform_chunk_layout(self):
        record = TransformRecord(child=2, rotation=8, translation="0 0 5", attributes={"_name": "A"})
        chunk = TransformChunk(3, record).pack()

        expected_content = (
            struct.pack('<i', 3) +
            struct.pack('<i', 1) +
            struct.pack('<i', 5) + b'_name' + struct.pack('<i', 1) + b'A' +
            struct.pack('<iiii', 2, -1, 0, 1) +
            struct.pack('<i', 2) +
            struct.pack('<i', 2) + b'_r' + struct.pack('<i', 1) + b'8' +
            struct.pack('<i', 2) + b'_t' + struct.pack('<i', 5) + b'0 0 5'
        )
        assert chunk[:4] == b'nTRN'
        assert struct.unpack('<II', chunk[4:12]) == (len(expected_content), 0)
        assert chunk[12:] == expected_content

    def test_group_chunk_layout(self):
        chunk = GroupChunk(1, GroupRecord(children=[3, 5])).pack()
        assert chunk[12:] == struct.pack('<i', 1) + pack_dict({}) + struct.pack('<iii', 2, 3, 5)

    def test_round_trip(self):
        """Decoded nodes, models and tables match the document."""
        doc = SceneGraphBuilder(
            group_bones=True,
            palette=np.array([[10, 20, 30, 40]]),
            layers=[{"_name": "bones"}],
        ).build(self.boxes)

        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scene.vox"
            VoxExporter().export(doc, path)
            loaded = load_vox(path)

        assert loaded.version == 150
        assert [m.size for m in loaded.models] == [m.size for m in doc.models]
        assert all(m.voxels.shape == (0, 4) for m in loaded.models)
        assert sorted(loaded.nodes) == list(range(len(doc.records)))
        for node_id, record in enumerate(doc.records):
            assert loaded.nodes[node_id] == record
        assert np.array_equal(loaded.palette, doc.palette)
        assert len(loaded.materials) == 256
        assert loaded.materials[17] == DEFAULT_MATERIAL
        assert loaded.layers == {0: {"_name": "bones"}}

    def test_serialization_failure(self):
        doc = SceneGraphBuilder().build(self.boxes)
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "missing_dir" / "scene.vox"
            with self.assertRaises(SerializationFailure) as ctx:
                VoxExporter().export(doc, path)
        assert isinstance(ctx.exception, OSError)
        assert isinstance(ctx.exception.cause, FileNotFoundError)

    def test_bad_magic(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "bad.vox"
            path.write_bytes(b'NOPE' + bytes(16))
            with self.assertRaises(ValueError):
                load_vox(path)


if __name__ == "__main__":
    unittest.main(verbosity=2)
