"""
Export modules for voxel scene formats.

Supported formats:
- MagicaVoxel (.vox) - scene graph with one model per bone
"""

from .vox_exporter import VoxExporter, load_vox

__all__ = ["VoxExporter", "load_vox"]
