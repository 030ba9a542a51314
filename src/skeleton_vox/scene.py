"""
Scene Graph Builder

Assembles a MagicaVoxel scene document from bone boxes:
- 256-entry palette and material tables
- One (empty) voxel model per bone box
- A record tree: root Transform -> root Group -> Transform -> Shape

Records live in a single append-only list and a record's node id is its
position in that list. A record may only reference records that were
appended before it; SceneDocument enforces this on every append.

The two leading records are reserved:
    0: root Transform (child = 1, layer = -1)
    1: root Group (children attached once all bones are appended)

Limitation: models carry bounding dimensions only. Their voxel contents
are always empty.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import numpy as np

from .color import default_palette, normalize_palette
from .errors import EmptyInput
from .rotation import RotationEncoder, to_vox_axes
from .walker import BoneBox


MATERIAL_COUNT = 256
MAX_MODEL_SIZE = 256
ROOT_GROUP = 1
NO_LAYER = -1
BONE_LAYER = 0

DEFAULT_MATERIAL = {
    "_type": "_diffuse",
    "_weight": "1",
    "_rough": "0.1",
    "_spec": "0.5",
    "_ior": "0.3",
}


@dataclass
class TransformRecord:
    """nTRN: places exactly one child node."""
    child: int
    rotation: Optional[int] = None
    translation: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    layer_id: int = BONE_LAYER

    @property
    def references(self) -> List[int]:
        return [self.child]

    @property
    def frame(self) -> Dict[str, str]:
        frame = {}
        if self.rotation is not None:
            frame["_r"] = str(self.rotation)
        if self.translation is not None:
            frame["_t"] = self.translation
        return frame


@dataclass
class GroupRecord:
    """nGRP: holds zero or more child nodes."""
    children: List[int] = field(default_factory=list)
    attributes: Dict[str, str] = field(default_factory=dict)

    @property
    def references(self) -> List[int]:
        return list(self.children)


@dataclass
class ShapeRecord:
    """nSHP: references one voxel model."""
    model_id: int
    attributes: Dict[str, str] = field(default_factory=dict)

    @property
    def references(self) -> List[int]:
        return []


@dataclass
class VoxelModel:
    """
    A model entry (SIZE + XYZI).

    Coordinates are MagicaVoxel's (x, y, z) with z up.
    """
    size_x: int
    size_y: int
    size_z: int
    voxels: np.ndarray = field(default_factory=lambda: np.zeros((0, 4), dtype=np.uint8))

    @property
    def size(self):
        return (self.size_x, self.size_y, self.size_z)

    @classmethod
    def from_box(cls, box: BoneBox) -> "VoxelModel":
        """
        Size a model from a bone box.

        Full extents are reordered (x, z, y) and truncated, never below 1.
        """
        dims = to_vox_axes(box.size)
        return cls(*(max(1, int(d)) for d in dims))


@dataclass
class SceneDocument:
    """In-memory .vox document."""

    palette: np.ndarray = field(default_factory=default_palette)
    materials: List[Dict[str, str]] = field(
        default_factory=lambda: [dict(DEFAULT_MATERIAL) for _ in range(MATERIAL_COUNT)]
    )
    layers: List[Dict[str, str]] = field(default_factory=list)
    models: List[VoxelModel] = field(default_factory=list)
    records: list = field(default_factory=list)

    def reserve_root(self):
        """Append the root Transform and root Group."""
        if self.records:
            raise ValueError("Root records must be the first two records")
        # The root pair is the one forward reference: 0 -> 1 is resolved
        # as soon as both are in place.
        self.records.append(TransformRecord(child=ROOT_GROUP, layer_id=NO_LAYER))
        self.records.append(GroupRecord())

    def append(self, record) -> int:
        """
        Append a record after checking its references.

        Args:
            record: TransformRecord, GroupRecord or ShapeRecord

        Returns:
            The record's node id (its position)
        """
        self._check(record, len(self.records))
        if isinstance(record, ShapeRecord) and not 0 <= record.model_id < len(self.models):
            raise ValueError(f"Shape references unknown model {record.model_id}")
        self.records.append(record)
        return len(self.records) - 1

    def add_model(self, model: VoxelModel) -> int:
        self.models.append(model)
        return len(self.models) - 1

    def attach_to_root(self, children: Sequence[int]):
        """Set the root group's children; all must already be appended."""
        group = GroupRecord(children=list(children), attributes=self.records[ROOT_GROUP].attributes)
        self._check(group, len(self.records))
        self.records[ROOT_GROUP] = group

    def check_references(self):
        """Validate every record's references against the finished list."""
        for position, record in enumerate(self.records):
            for ref in record.references:
                if not 0 <= ref < len(self.records) or ref == position:
                    raise ValueError(f"Record {position} has invalid reference {ref}")

    def oversized_models(self) -> List[int]:
        """Model ids with a dimension beyond MagicaVoxel's limit."""
        return [
            i for i, model in enumerate(self.models)
            if any(s > MAX_MODEL_SIZE for s in model.size)
        ]

    @staticmethod
    def _check(record, limit: int):
        for ref in record.references:
            if not 0 <= ref < limit:
                raise ValueError(
                    f"Reference {ref} is not an already-appended record (have {limit})"
                )


class SceneGraphBuilder:
    """
    Build a SceneDocument from bone boxes.

    Usage:
        builder = SceneGraphBuilder(group_bones=True)
        document = builder.build(boxes)
    """

    def __init__(
        self,
        palette: Optional[np.ndarray] = None,
        materials: Optional[Dict[str, str]] = None,
        layers: Optional[List[Dict[str, str]]] = None,
        group_bones: bool = False,
        encoder: Optional[RotationEncoder] = None
    ):
        """
        Initialize the builder.

        Args:
            palette: Optional (N, 3) or (N, 4) colors; opaque black if None
            materials: Optional properties merged over DEFAULT_MATERIAL
            layers: Optional layer attribute dicts (empty by default)
            group_bones: If True, wrap all bones in one extra group
            encoder: Rotation encoder (a fresh one if None)
        """
        self.palette = palette
        self.materials = materials or {}
        self.layers = layers or []
        self.group_bones = group_bones
        self.encoder = encoder or RotationEncoder()

    def build(self, boxes: Sequence[BoneBox]) -> SceneDocument:
        """
        Build the document.

        Args:
            boxes: Bone boxes in traversal order

        Returns:
            A finished SceneDocument

        Raises:
            EmptyInput: If boxes is empty
        """
        if len(boxes) == 0:
            raise EmptyInput()

        material = {**DEFAULT_MATERIAL, **self.materials}
        document = SceneDocument(
            palette=default_palette() if self.palette is None else normalize_palette(self.palette),
            materials=[dict(material) for _ in range(MATERIAL_COUNT)],
            layers=[dict(layer) for layer in self.layers],
        )
        document.reserve_root()

        bone_nodes = []
        for box in boxes:
            model_id = document.add_model(VoxelModel.from_box(box))
            shape_id = document.append(ShapeRecord(model_id))
            translation, rotation = self.encoder.encode(box.rotation, box.center)
            bone_nodes.append(document.append(TransformRecord(
                child=shape_id,
                rotation=rotation,
                translation=translation,
                attributes={"_name": box.name},
            )))

        if self.group_bones:
            # nGRP children must be nTRN nodes, so the group gets its own transform
            group_id = document.append(GroupRecord(children=bone_nodes))
            wrapper_id = document.append(TransformRecord(child=group_id, attributes={"_name": "bones"}))
            document.attach_to_root([wrapper_id])
        else:
            document.attach_to_root(bone_nodes)

        document.check_references()
        return document
