"""
Skeleton Vox
============

Convert a skinned model's bone hierarchy into a MagicaVoxel scene.

This package loads the joint hierarchy of a glTF model, derives one
bounding box per bone, and writes those boxes as a .vox scene graph:
one model per bone, each wrapped in a transform carrying the bone's name,
position and nearest axis-aligned rotation.

Key Features:
- Depth-first bone box extraction with a configurable minimum thickness
- Snapping of arbitrary rotations to the 24 axis-aligned orientations
- MagicaVoxel nTRN/nGRP/nSHP scene graph, palette and material tables
- Root joint lookup by name or node index

Models are emitted with bounding dimensions only; their voxel contents
are empty.

Example Usage:
    from skeleton_vox import SkeletonConverter

    converter = SkeletonConverter(min_half_extent=0.5)
    converter.load("Fox.gltf", "b_Hip_01")
    converter.walk()
    converter.build()
    converter.export("fox_bones.vox")
"""

__version__ = "0.1.0"
__author__ = "Skeleton Vox Team"

from .converter import SkeletonConverter, BatchProcessor, convert_file
from .ingestion import Joint, Transform, SkeletonLoader
from .walker import (
    SkeletonWalker, BoneBox, DEFAULT_MIN_HALF_EXTENT, THICK_MIN_HALF_EXTENT,
)
from .rotation import RotationEncoder
from .scene import SceneGraphBuilder, SceneDocument
from .errors import (
    SkeletonVoxError, JointNotFound, MalformedHierarchy, EmptyInput, SerializationFailure,
)

__all__ = [
    "SkeletonConverter",
    "BatchProcessor",
    "convert_file",
    "Joint",
    "Transform",
    "SkeletonLoader",
    "SkeletonWalker",
    "BoneBox",
    "DEFAULT_MIN_HALF_EXTENT",
    "THICK_MIN_HALF_EXTENT",
    "RotationEncoder",
    "SceneGraphBuilder",
    "SceneDocument",
    "SkeletonVoxError",
    "JointNotFound",
    "MalformedHierarchy",
    "EmptyInput",
    "SerializationFailure",
]
