"""
Main SkeletonConverter Class

This is the primary interface for the skeleton-to-voxel-scene pipeline.
It orchestrates:
1. Skeleton loading (glTF)
2. Bone box extraction (depth-first walk)
3. Scene graph building (rotation encoding per bone)
4. Export to MagicaVoxel .vox

Example Usage:
    converter = SkeletonConverter(min_half_extent=0.5)
    converter.load("Fox.gltf", "b_Hip_01")
    converter.walk()
    converter.build()
    converter.export("fox_bones.vox")
"""

from pathlib import Path
from typing import Union, Optional, Dict, List, Any
import numpy as np

from .ingestion import SkeletonLoader, Joint, Transform, RootIdentifier
from .walker import SkeletonWalker, BoneBox, DEFAULT_MIN_HALF_EXTENT, describe_hierarchy
from .scene import SceneGraphBuilder, SceneDocument
from .exporters import VoxExporter


class SkeletonConverter:
    """
    High-level interface for skeleton to voxel scene conversion.

    One converter handles one conversion at a time; create one per
    skeleton when converting several independently.

    Attributes:
        root: The loaded root joint
        boxes: Bone boxes from the last walk
        document: Scene document from the last build
    """

    def __init__(
        self,
        min_half_extent: float = DEFAULT_MIN_HALF_EXTENT,
        group_bones: bool = False,
        palette: Optional[np.ndarray] = None,
        materials: Optional[Dict[str, str]] = None
    ):
        """
        Initialize the SkeletonConverter.

        Args:
            min_half_extent: Minimum half-thickness of every bone box axis
            group_bones: Wrap all bone transforms in one extra group
            palette: Optional palette colors (opaque black if None)
            materials: Optional material properties overriding the defaults
        """
        self.min_half_extent = min_half_extent
        self.group_bones = group_bones
        self.palette = palette
        self.materials = materials

        self._walker = SkeletonWalker(min_half_extent)
        self._root: Optional[Joint] = None
        self._root_world: Optional[Transform] = None
        self._boxes: Optional[List[BoneBox]] = None
        self._document: Optional[SceneDocument] = None

    def load(
        self,
        model_path: Union[str, Path],
        root: RootIdentifier
    ) -> "SkeletonConverter":
        """
        Load a skeleton from a glTF file.

        Args:
            model_path: Path to a .gltf or .glb file
            root: Root joint name or node index

        Returns:
            self for method chaining
        """
        loader = SkeletonLoader()
        loader.load(model_path, root)
        return self.load_joint(loader.root)

    def load_joint(self, root_joint: Joint) -> "SkeletonConverter":
        """
        Use an in-memory joint tree as the skeleton.

        Args:
            root_joint: Root of the hierarchy

        Returns:
            self for method chaining
        """
        self._root = root_joint
        self._boxes = None
        self._document = None
        return self

    def walk(self, root_world_transform: Optional[Transform] = None) -> "SkeletonConverter":
        """
        Extract bone boxes from the loaded skeleton.

        Args:
            root_world_transform: Parent space of the root, identity if None

        Returns:
            self for method chaining
        """
        if self._root is None:
            raise RuntimeError("No skeleton loaded. Call load() first.")

        self._root_world = root_world_transform
        self._boxes = self._walker.walk(self._root, root_world_transform)
        self._document = None
        return self

    def build(self) -> "SkeletonConverter":
        """
        Build the scene document from the bone boxes.

        Returns:
            self for method chaining
        """
        if self._boxes is None:
            raise RuntimeError("No bone boxes. Call walk() first.")

        builder = SceneGraphBuilder(
            palette=self.palette,
            materials=self.materials,
            group_bones=self.group_bones,
        )
        self._document = builder.build(self._boxes)
        return self

    def to_bytes(self) -> bytes:
        """Encode the built document as .vox bytes."""
        if self._document is None:
            raise RuntimeError("No scene document. Call build() first.")
        return VoxExporter().to_bytes(self._document)

    def export(self, output_path: Union[str, Path]) -> "SkeletonConverter":
        """
        Export to MagicaVoxel .vox format.

        Args:
            output_path: Output file path

        Returns:
            self for method chaining
        """
        if self._document is None:
            raise RuntimeError("No scene document. Call build() first.")

        VoxExporter().export(self._document, output_path)
        return self

    @property
    def root(self) -> Optional[Joint]:
        return self._root

    @property
    def boxes(self) -> Optional[List[BoneBox]]:
        return self._boxes

    @property
    def document(self) -> Optional[SceneDocument]:
        return self._document

    def hierarchy_lines(self) -> List[str]:
        """Indented hierarchy dump of the loaded skeleton."""
        if self._root is None:
            raise RuntimeError("No skeleton loaded. Call load() first.")
        return describe_hierarchy(self._root, self._root_world)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the current conversion.

        Returns:
            Dictionary with joint, bone, model and record counts
        """
        stats: Dict[str, Any] = {}

        if self._root is not None:
            stats["joint_count"] = sum(1 for _ in self._root.iter_depth_first())
            stats["max_depth"] = max(depth for _, depth in self._root.iter_depth_first())

        if self._boxes is not None:
            stats["bone_count"] = len(self._boxes)

        if self._document is not None:
            stats["model_count"] = len(self._document.models)
            stats["record_count"] = len(self._document.records)
            stats["oversized_models"] = self._document.oversized_models()

        return stats


def convert_file(
    input_path: Union[str, Path],
    root: RootIdentifier,
    output_path: Union[str, Path],
    min_half_extent: float = DEFAULT_MIN_HALF_EXTENT,
    group_bones: bool = False,
    palette: Optional[np.ndarray] = None
) -> SceneDocument:
    """
    Run the whole pipeline on one file.

    Args:
        input_path: glTF model path
        root: Root joint name or node index
        output_path: .vox output path
        min_half_extent: Minimum half-thickness of every bone box axis
        group_bones: Wrap all bone transforms in one extra group
        palette: Optional palette colors

    Returns:
        The exported SceneDocument
    """
    converter = SkeletonConverter(
        min_half_extent=min_half_extent,
        group_bones=group_bones,
        palette=palette,
    )
    converter.load(input_path, root).walk().build().export(output_path)
    return converter.document


class BatchProcessor:
    """
    Batch conversion for a directory of models sharing a root joint name.
    """

    def __init__(self, **converter_kwargs):
        """
        Initialize the batch processor.

        Args:
            **converter_kwargs: Arguments passed to SkeletonConverter
        """
        self.converter_kwargs = converter_kwargs

    def process_directory(
        self,
        input_dir: Union[str, Path],
        output_dir: Union[str, Path],
        root: RootIdentifier,
        pattern: str = "*.gltf"
    ) -> List[str]:
        """
        Convert all models in a directory.

        Args:
            input_dir: Input directory
            output_dir: Output directory
            root: Root joint name or node index used for every model
            pattern: Glob pattern for input files

        Returns:
            List of output file paths
        """
        input_dir = Path(input_dir)
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        outputs = []

        for model_path in sorted(input_dir.glob(pattern)):
            output_path = output_dir / f"{model_path.stem}.vox"
            converter = SkeletonConverter(**self.converter_kwargs)
            converter.load(model_path, root).walk().build().export(output_path)
            outputs.append(str(output_path))

        return outputs
