"""
Skeleton Ingestion Module

This module handles:
- Loading glTF 2.0 files (.gltf / .glb) with pygltflib
- Locating the root joint by node name or node index
- Building an in-memory Joint tree with local TRS transforms
- Transform composition (parent world * child local)

Quaternions follow the glTF convention (x, y, z, w), which is also the
scalar-last order used by scipy.spatial.transform.Rotation.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple, List, Union, Sequence
import numpy as np
from scipy.spatial.transform import Rotation
from pygltflib import GLTF2

from .errors import JointNotFound, MalformedHierarchy


RootIdentifier = Union[str, int]


@dataclass(frozen=True, eq=False)
class Transform:
    """
    Translation, rotation and non-uniform scale.

    Instances are never mutated; composition returns a new Transform.
    """

    translation: np.ndarray
    rotation: Rotation
    scale: np.ndarray

    def __post_init__(self):
        for name in ("translation", "scale"):
            value = np.array(getattr(self, name), dtype=np.float64)
            value.setflags(write=False)
            object.__setattr__(self, name, value)

    @classmethod
    def identity(cls) -> "Transform":
        return cls(np.zeros(3), Rotation.identity(), np.ones(3))

    def compose(self, local: "Transform") -> "Transform":
        """
        Apply a child's local transform on top of this (parent) transform.

        Args:
            local: The child's transform relative to this one

        Returns:
            The child's transform in this transform's space
        """
        translation = self.translation + self.rotation.apply(self.scale * local.translation)
        return Transform(
            translation,
            self.rotation * local.rotation,
            self.scale * local.scale,
        )


@dataclass(eq=False)
class Joint:
    """
    A node of a skinned model's bone hierarchy.

    Joints are produced by SkeletonLoader and are read-only to the
    walker. Components are stored as given so that the walker can detect
    and report malformed values instead of papering over them.
    """

    name: Optional[str]
    index: int
    translation: Optional[Sequence[float]] = (0.0, 0.0, 0.0)
    rotation: Optional[Sequence[float]] = (0.0, 0.0, 0.0, 1.0)
    scale: Optional[Sequence[float]] = (1.0, 1.0, 1.0)
    children: List["Joint"] = field(default_factory=list)

    @property
    def label(self) -> Union[str, int]:
        """Name if present, otherwise the node index."""
        return self.name if self.name else self.index

    def local_transform(self) -> Transform:
        """
        Resolve this joint's local transform.

        Raises:
            MalformedHierarchy: If the name or any component is missing,
                has the wrong length, is non-finite, or the rotation
                quaternion has zero length
        """
        if not self.name:
            raise MalformedHierarchy(self.index, "joint has no name")

        translation = self._component("translation", self.translation, 3)
        quaternion = self._component("rotation", self.rotation, 4)
        scale = self._component("scale", self.scale, 3)

        if np.linalg.norm(quaternion) < 1e-12:
            raise MalformedHierarchy(self.name, "rotation quaternion has zero length")

        return Transform(translation, Rotation.from_quat(quaternion), scale)

    def _component(self, kind: str, value, length: int) -> np.ndarray:
        if value is None:
            raise MalformedHierarchy(self.name, f"missing {kind}")
        try:
            array = np.asarray(value, dtype=np.float64)
        except (TypeError, ValueError):
            raise MalformedHierarchy(self.name, f"{kind} is not numeric: {value!r}")
        if array.shape != (length,):
            raise MalformedHierarchy(
                self.name, f"{kind} must have {length} components, got shape {array.shape}"
            )
        if not np.all(np.isfinite(array)):
            raise MalformedHierarchy(self.name, f"{kind} contains non-finite values")
        return array

    def iter_depth_first(self):
        """Yield (joint, depth) pairs in pre-order."""
        stack = [(self, 0)]
        while stack:
            joint, depth = stack.pop()
            yield joint, depth
            for child in reversed(joint.children):
                stack.append((child, depth + 1))


def parse_root_identifier(text: str) -> RootIdentifier:
    """Interpret command-line text as a node index when it is all digits."""
    return int(text) if text.isdigit() else text


def decompose_matrix(matrix: Sequence[float]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Split a glTF column-major 4x4 matrix into translation, quaternion, scale.

    Args:
        matrix: 16 floats, column-major

    Returns:
        (translation, quaternion_xyzw, scale)
    """
    m = np.asarray(matrix, dtype=np.float64).reshape(4, 4).T
    translation = m[:3, 3].copy()
    basis = m[:3, :3]
    scale = np.linalg.norm(basis, axis=0)
    if np.any(scale < 1e-12):
        raise ValueError("matrix has a zero-length basis vector")
    rotation_matrix = basis / scale
    # A mirrored basis cannot be a rotation; fold the reflection into scale
    if np.linalg.det(rotation_matrix) < 0:
        scale[0] = -scale[0]
        rotation_matrix[:, 0] = -rotation_matrix[:, 0]
    quaternion = Rotation.from_matrix(rotation_matrix).as_quat()
    return translation, quaternion, scale


class SkeletonLoader:
    """
    glTF skeleton loader.

    Key features:
    - Root lookup by node name or node index
    - Node `matrix` decomposition into TRS
    - Cycle and dangling-child detection
    """

    def __init__(self):
        self._gltf: Optional[GLTF2] = None
        self._source: Optional[str] = None
        self._root: Optional[Joint] = None

    def load(
        self,
        model_path: Union[str, Path],
        root: RootIdentifier
    ) -> "SkeletonLoader":
        """
        Load a glTF file and build the joint tree below `root`.

        Args:
            model_path: Path to a .gltf or .glb file
            root: Node name, or node index into the file's node list

        Returns:
            self for method chaining
        """
        self.open(model_path)
        self._root = self._build_tree(self.find_node(root))
        return self

    def open(self, model_path: Union[str, Path]) -> "SkeletonLoader":
        """
        Parse a glTF file without building a joint tree.

        Args:
            model_path: Path to a .gltf or .glb file

        Returns:
            self for method chaining
        """
        model_path = Path(model_path)
        if not model_path.exists():
            raise FileNotFoundError(f"Model not found: {model_path}")

        self._gltf = GLTF2().load(str(model_path))
        self._source = str(model_path)
        self._root = None
        return self

    def load_from_gltf(self, gltf: GLTF2, root: RootIdentifier) -> "SkeletonLoader":
        """
        Build the joint tree from an already-parsed glTF document.

        Args:
            gltf: pygltflib document
            root: Node name or node index

        Returns:
            self for method chaining
        """
        self._gltf = gltf
        self._source = None
        self._root = self._build_tree(self.find_node(root))
        return self

    @property
    def root(self) -> Joint:
        if self._root is None:
            raise RuntimeError("No skeleton loaded")
        return self._root

    def joint_names(self) -> List[Optional[str]]:
        """Names of every node in the file, in node order."""
        if self._gltf is None:
            raise RuntimeError("No skeleton loaded")
        return [node.name for node in self._gltf.nodes]

    def find_node(self, root: RootIdentifier) -> int:
        """
        Resolve a root identifier to a node index.

        Raises:
            JointNotFound: If no node has that name or the index is out of range
        """
        nodes = self._gltf.nodes or []
        if isinstance(root, int):
            if 0 <= root < len(nodes):
                return root
            raise JointNotFound(root, self._source)

        for index, node in enumerate(nodes):
            if node.name == root:
                return index
        raise JointNotFound(root, self._source)

    def _build_tree(self, root_index: int) -> Joint:
        nodes = self._gltf.nodes
        visited = set()

        def build(index: int) -> Joint:
            if index in visited:
                raise MalformedHierarchy(nodes[index].name or index, "node reached twice (cycle)")
            visited.add(index)

            node = nodes[index]
            if node.matrix is not None:
                try:
                    translation, rotation, scale = decompose_matrix(node.matrix)
                except ValueError as e:
                    raise MalformedHierarchy(node.name or index, str(e))
            else:
                translation = node.translation if node.translation is not None else [0.0, 0.0, 0.0]
                rotation = node.rotation if node.rotation is not None else [0.0, 0.0, 0.0, 1.0]
                scale = node.scale if node.scale is not None else [1.0, 1.0, 1.0]

            joint = Joint(
                name=node.name,
                index=index,
                translation=translation,
                rotation=rotation,
                scale=scale,
            )

            for child_index in node.children or []:
                if not 0 <= child_index < len(nodes):
                    raise MalformedHierarchy(
                        node.name or index, f"child index {child_index} out of range"
                    )
                joint.children.append(build(child_index))

            return joint

        return build(root_index)
