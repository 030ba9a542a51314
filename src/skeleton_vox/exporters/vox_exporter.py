"""
MagicaVoxel .vox Scene Exporter

The .vox format is a RIFF-style chunk-based binary format used by MagicaVoxel.
Besides models and a palette it can store a scene graph of transform,
group and shape nodes, plus layer and material tables.

File Structure:
- Header: "VOX " (4 bytes) + version (4 bytes, int32)
- MAIN chunk (container)
  - SIZE + XYZI chunks: one pair per model
  - nTRN / nGRP / nSHP chunks: one per scene record, node id = position
  - LAYR chunks: one per layer
  - RGBA chunk: 256-color palette
  - MATL chunks: one per material

Primitive types:
- INT: int32, little endian
- STRING: INT length + bytes (no terminator)
- DICT: INT pair count + (STRING key, STRING value) pairs
"""

from pathlib import Path
from typing import Dict, List, NamedTuple, Tuple, Union
import struct
import numpy as np

from ..errors import SerializationFailure
from ..scene import (
    SceneDocument, VoxelModel, TransformRecord, GroupRecord, ShapeRecord,
)


# VOX format constants
VOX_MAGIC = b'VOX '
VOX_VERSION = 150
RESERVED_ID = -1


def pack_string(value: str) -> bytes:
    data = value.encode('utf-8')
    return struct.pack('<i', len(data)) + data


def pack_dict(values: Dict[str, str]) -> bytes:
    out = struct.pack('<i', len(values))
    for key, value in values.items():
        out += pack_string(key) + pack_string(value)
    return out


class VoxChunk:
    """Base class for VOX chunks."""

    def __init__(self, chunk_id: bytes):
        self.chunk_id = chunk_id
        self.content = b''
        self.children = b''

    def pack(self) -> bytes:
        """Pack the chunk into bytes."""
        content_size = len(self.content)
        children_size = len(self.children)

        return (
            self.chunk_id +
            struct.pack('<II', content_size, children_size) +
            self.content +
            self.children
        )


class SizeChunk(VoxChunk):
    """SIZE chunk containing model dimensions."""

    def __init__(self, size_x: int, size_y: int, size_z: int):
        super().__init__(b'SIZE')
        # Note: VOX uses x, y, z where z is up
        self.content = struct.pack('<III', size_x, size_y, size_z)


class XYZIChunk(VoxChunk):
    """XYZI chunk containing voxel positions and color indices."""

    def __init__(self, voxels: np.ndarray):
        super().__init__(b'XYZI')
        voxels = np.asarray(voxels, dtype=np.uint8).reshape(-1, 4)
        self.content = struct.pack('<I', len(voxels)) + voxels.tobytes()


class RGBAChunk(VoxChunk):
    """RGBA chunk containing the 256-color palette."""

    def __init__(self, palette: np.ndarray):
        super().__init__(b'RGBA')
        # VOX palette format: 256 * RGBA (1024 bytes)
        self.content = np.asarray(palette, dtype=np.uint8).reshape(256, 4).tobytes()


class TransformChunk(VoxChunk):
    """nTRN chunk: node attributes, one child, layer and one frame."""

    def __init__(self, node_id: int, record: TransformRecord):
        super().__init__(b'nTRN')
        self.content = (
            struct.pack('<i', node_id) +
            pack_dict(record.attributes) +
            struct.pack('<iiii', record.child, RESERVED_ID, record.layer_id, 1) +
            pack_dict(record.frame)
        )


class GroupChunk(VoxChunk):
    """nGRP chunk: node attributes and child node ids."""

    def __init__(self, node_id: int, record: GroupRecord):
        super().__init__(b'nGRP')
        self.content = (
            struct.pack('<i', node_id) +
            pack_dict(record.attributes) +
            struct.pack('<i', len(record.children)) +
            b''.join(struct.pack('<i', child) for child in record.children)
        )


class ShapeChunk(VoxChunk):
    """nSHP chunk: node attributes and a single model reference."""

    def __init__(self, node_id: int, record: ShapeRecord):
        super().__init__(b'nSHP')
        self.content = (
            struct.pack('<i', node_id) +
            pack_dict(record.attributes) +
            struct.pack('<ii', 1, record.model_id) +
            pack_dict({})
        )


class LayerChunk(VoxChunk):
    """LAYR chunk: layer id and attributes."""

    def __init__(self, layer_id: int, attributes: Dict[str, str]):
        super().__init__(b'LAYR')
        self.content = (
            struct.pack('<i', layer_id) +
            pack_dict(attributes) +
            struct.pack('<i', RESERVED_ID)
        )


class MaterialChunk(VoxChunk):
    """MATL chunk: material id and properties."""

    def __init__(self, material_id: int, properties: Dict[str, str]):
        super().__init__(b'MATL')
        self.content = struct.pack('<i', material_id) + pack_dict(properties)


class MainChunk(VoxChunk):
    """MAIN container chunk."""

    def __init__(self):
        super().__init__(b'MAIN')

    def add_child(self, chunk: VoxChunk):
        """Add a child chunk."""
        self.children += chunk.pack()


RECORD_CHUNKS = {
    TransformRecord: TransformChunk,
    GroupRecord: GroupChunk,
    ShapeRecord: ShapeChunk,
}


class VoxExporter:
    """
    Export a SceneDocument to MagicaVoxel .vox format.

    Usage:
        exporter = VoxExporter()
        exporter.export(document, "output.vox")
    """

    def to_bytes(self, document: SceneDocument) -> bytes:
        """
        Encode a document into a complete .vox buffer.

        Args:
            document: A finished SceneDocument

        Returns:
            File contents
        """
        document.check_references()

        main_chunk = MainChunk()

        for model in document.models:
            main_chunk.add_child(SizeChunk(*model.size))
            main_chunk.add_child(XYZIChunk(model.voxels))

        for node_id, record in enumerate(document.records):
            main_chunk.add_child(RECORD_CHUNKS[type(record)](node_id, record))

        for layer_id, attributes in enumerate(document.layers):
            main_chunk.add_child(LayerChunk(layer_id, attributes))

        main_chunk.add_child(RGBAChunk(document.palette))

        for material_id, properties in enumerate(document.materials):
            main_chunk.add_child(MaterialChunk(material_id, properties))

        return VOX_MAGIC + struct.pack('<I', VOX_VERSION) + main_chunk.pack()

    def export(self, document: SceneDocument, output_path: Union[str, Path]):
        """
        Encode and write a document.

        The buffer is fully encoded before the file is opened, so an
        encoding error leaves no file behind.

        Args:
            document: A finished SceneDocument
            output_path: Output file path

        Raises:
            SerializationFailure: If the file cannot be written
        """
        output_path = Path(output_path)
        data = self.to_bytes(document)

        try:
            with open(output_path, 'wb') as f:
                f.write(data)
        except OSError as e:
            raise SerializationFailure(output_path, e) from e


class LoadedVox(NamedTuple):
    """Contents of a parsed .vox file."""
    version: int
    models: List[VoxelModel]
    palette: np.ndarray
    materials: Dict[int, Dict[str, str]]
    layers: Dict[int, Dict[str, str]]
    nodes: Dict[int, object]


class _Reader:
    """Cursor over chunk content."""

    def __init__(self, data: bytes):
        self.data = data
        self.offset = 0

    def read_int(self) -> int:
        value = struct.unpack_from('<i', self.data, self.offset)[0]
        self.offset += 4
        return value

    def read_string(self) -> str:
        length = self.read_int()
        value = self.data[self.offset:self.offset + length].decode('utf-8')
        self.offset += length
        return value

    def read_dict(self) -> Dict[str, str]:
        return {self.read_string(): self.read_string() for _ in range(self.read_int())}


def _read_node(chunk_id: bytes, content: bytes) -> Tuple[int, object]:
    r = _Reader(content)
    node_id = r.read_int()
    attributes = r.read_dict()

    if chunk_id == b'nTRN':
        child = r.read_int()
        r.read_int()  # reserved
        layer_id = r.read_int()
        frames = [r.read_dict() for _ in range(r.read_int())]
        frame = frames[0] if frames else {}
        rotation = int(frame['_r']) if '_r' in frame else None
        return node_id, TransformRecord(
            child=child,
            rotation=rotation,
            translation=frame.get('_t'),
            attributes=attributes,
            layer_id=layer_id,
        )

    if chunk_id == b'nGRP':
        children = [r.read_int() for _ in range(r.read_int())]
        return node_id, GroupRecord(children=children, attributes=attributes)

    num_models = r.read_int()
    model_id = r.read_int() if num_models > 0 else -1
    return node_id, ShapeRecord(model_id=model_id, attributes=attributes)


def load_vox(file_path: Union[str, Path]) -> LoadedVox:
    """
    Load a .vox file.

    Args:
        file_path: Path to .vox file

    Returns:
        LoadedVox with models (sizes and voxels), palette (256, 4),
        materials and layers keyed by id, and scene nodes keyed by node id
    """
    file_path = Path(file_path)

    with open(file_path, 'rb') as f:
        data = f.read()

    if data[:4] != VOX_MAGIC:
        raise ValueError(f"Invalid VOX file: bad magic {data[:4]}")
    version = struct.unpack_from('<I', data, 4)[0]

    if data[8:12] != b'MAIN':
        raise ValueError("Expected MAIN chunk")
    main_content_size, main_children_size = struct.unpack_from('<II', data, 12)

    models: List[VoxelModel] = []
    palette = np.zeros((256, 4), dtype=np.uint8)
    palette[:, 3] = 255  # Default opaque
    materials: Dict[int, Dict[str, str]] = {}
    layers: Dict[int, Dict[str, str]] = {}
    nodes: Dict[int, object] = {}
    pending_size = None

    offset = 20 + main_content_size
    end = offset + main_children_size
    while offset < end:
        chunk_id = data[offset:offset + 4]
        content_size, children_size = struct.unpack_from('<II', data, offset + 4)
        content = data[offset + 12:offset + 12 + content_size]
        offset += 12 + content_size + children_size

        if chunk_id == b'SIZE':
            pending_size = struct.unpack('<III', content[:12])

        elif chunk_id == b'XYZI':
            if pending_size is None:
                raise ValueError("XYZI chunk without preceding SIZE chunk")
            num_voxels = struct.unpack('<I', content[:4])[0]
            voxels = np.frombuffer(content[4:4 + num_voxels * 4], dtype=np.uint8).reshape(-1, 4)
            models.append(VoxelModel(*pending_size, voxels=voxels.copy()))
            pending_size = None

        elif chunk_id == b'RGBA':
            palette = np.frombuffer(content[:1024], dtype=np.uint8).reshape(256, 4).copy()

        elif chunk_id in (b'nTRN', b'nGRP', b'nSHP'):
            node_id, record = _read_node(chunk_id, content)
            nodes[node_id] = record

        elif chunk_id == b'LAYR':
            r = _Reader(content)
            layer_id = r.read_int()
            layers[layer_id] = r.read_dict()

        elif chunk_id == b'MATL':
            r = _Reader(content)
            material_id = r.read_int()
            materials[material_id] = r.read_dict()

    return LoadedVox(version, models, palette, materials, layers, nodes)
