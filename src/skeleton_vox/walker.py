"""
Skeleton Walker

Traverses a joint hierarchy depth-first and produces one BoneBox per
non-root joint. A BoneBox spans from the parent joint's world position
to the child joint's world position, padded on every axis to a minimum
half-thickness so that short or axis-aligned bones still have volume.

The minimum half-thickness is an explicit configuration value:
- DEFAULT_MIN_HALF_EXTENT (0.5) keeps boxes one unit thick
- THICK_MIN_HALF_EXTENT (BONE_VOXEL_THICKNESS / 2 = 5.0) for chunkier bones
"""

from dataclasses import dataclass
from typing import List, Optional
import math
import numpy as np
from scipy.spatial.transform import Rotation

from .ingestion import Joint, Transform
from .errors import MalformedHierarchy


BONE_VOXEL_THICKNESS = 10.0
DEFAULT_MIN_HALF_EXTENT = 0.5
THICK_MIN_HALF_EXTENT = BONE_VOXEL_THICKNESS / 2


@dataclass(frozen=True, eq=False)
class BoneBox:
    """
    Bounding box standing in for one bone.

    Attributes:
        name: Name of the child joint the bone ends at
        center: Midpoint between parent and child world positions
        half_extents: Per-axis half size, floored at the configured minimum
        rotation: World rotation of the child joint
        depth: Traversal depth of the child joint (root = 0)
    """

    name: str
    center: np.ndarray
    half_extents: np.ndarray
    rotation: Rotation
    depth: int = 1

    def __post_init__(self):
        for attr in ("center", "half_extents"):
            value = np.array(getattr(self, attr), dtype=np.float64)
            value.setflags(write=False)
            object.__setattr__(self, attr, value)

    @property
    def size(self) -> np.ndarray:
        return self.half_extents * 2.0


class SkeletonWalker:
    """
    Depth-first converter from a Joint tree to BoneBoxes.

    World transforms are recomputed on every call to walk(); nothing is
    cached between calls, so one walker may be reused across skeletons.
    """

    def __init__(self, min_half_extent: float = DEFAULT_MIN_HALF_EXTENT):
        """
        Initialize the walker.

        Args:
            min_half_extent: Minimum half-thickness applied to every box axis
        """
        if not math.isfinite(min_half_extent) or min_half_extent < 0:
            raise ValueError(f"min_half_extent must be finite and >= 0, got {min_half_extent}")
        self.min_half_extent = float(min_half_extent)

    def walk(
        self,
        root_joint: Joint,
        root_world_transform: Optional[Transform] = None
    ) -> List[BoneBox]:
        """
        Produce bone boxes for every non-root joint.

        Args:
            root_joint: Root of the hierarchy (yields no box itself)
            root_world_transform: Transform of the root's parent space,
                identity if None

        Returns:
            BoneBoxes in depth-first pre-order, siblings in input order
        """
        if root_world_transform is None:
            root_world_transform = Transform.identity()

        boxes: List[BoneBox] = []
        self._visit(root_joint, root_world_transform, None, 0, boxes, set())
        return boxes

    def _visit(
        self,
        joint: Joint,
        parent_world: Transform,
        parent_position: Optional[np.ndarray],
        depth: int,
        boxes: List[BoneBox],
        seen: set
    ):
        if id(joint) in seen:
            raise MalformedHierarchy(joint.label, "joint reached twice (cycle)")
        seen.add(id(joint))

        world = parent_world.compose(joint.local_transform())
        position = world.translation

        if parent_position is not None:
            boxes.append(self.make_box(joint.name, parent_position, position, world.rotation, depth))

        for child in joint.children:
            self._visit(child, world, position, depth + 1, boxes, seen)

    def make_box(
        self,
        name: str,
        start: np.ndarray,
        end: np.ndarray,
        rotation: Optional[Rotation] = None,
        depth: int = 1
    ) -> BoneBox:
        """
        Build the box spanning two world positions.

        Args:
            name: Bone name
            start: Parent joint world position
            end: Child joint world position
            rotation: Child joint world rotation (identity if None)
            depth: Traversal depth of the child joint

        Returns:
            BoneBox centered on the midpoint
        """
        start = np.asarray(start, dtype=np.float64)
        end = np.asarray(end, dtype=np.float64)
        center = (start + end) / 2.0
        half_extents = np.maximum(np.abs(end - start) / 2.0, self.min_half_extent)
        return BoneBox(
            name=name,
            center=center,
            half_extents=half_extents,
            rotation=rotation if rotation is not None else Rotation.identity(),
            depth=depth,
        )


def describe_hierarchy(
    root_joint: Joint,
    root_world_transform: Optional[Transform] = None
) -> List[str]:
    """
    Render the hierarchy as indented lines with world positions.

    Args:
        root_joint: Root of the hierarchy
        root_world_transform: Parent space of the root, identity if None

    Returns:
        One line per joint, indented two spaces per depth level
    """
    lines = []

    def visit(joint: Joint, parent_world: Transform, depth: int):
        world = parent_world.compose(joint.local_transform())
        x, y, z = world.translation
        lines.append(f"{'  ' * depth}{joint.name} ({x:.3f}, {y:.3f}, {z:.3f})")
        for child in joint.children:
            visit(child, world, depth + 1)

    visit(root_joint, root_world_transform or Transform.identity(), 0)
    return lines
