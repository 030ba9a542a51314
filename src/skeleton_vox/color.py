"""
Palette Management Module

Handles:
- The default 256-entry palette (opaque black)
- Normalizing caller-supplied palettes to 256 x RGBA uint8
- Loading palettes from images (e.g. MagicaVoxel's 256x1 palette PNGs)

The .vox format always stores exactly 256 colors. Palettes with fewer
entries are padded with opaque black; extra entries are dropped.
"""

from pathlib import Path
from typing import Union
import numpy as np
from PIL import Image


PALETTE_SIZE = 256


def default_palette() -> np.ndarray:
    """Return a 256 x 4 palette of opaque black."""
    palette = np.zeros((PALETTE_SIZE, 4), dtype=np.uint8)
    palette[:, 3] = 255
    return palette


def normalize_palette(colors: np.ndarray) -> np.ndarray:
    """
    Coerce an RGB or RGBA color array into a 256 x 4 palette.

    Args:
        colors: Array of shape (N, 3) or (N, 4) with values 0-255

    Returns:
        Array of shape (256, 4), dtype uint8
    """
    colors = np.asarray(colors)
    if colors.ndim != 2 or colors.shape[1] not in (3, 4):
        raise ValueError(f"Palette must have shape (N, 3) or (N, 4), got {colors.shape}")

    palette = default_palette()
    n = min(len(colors), PALETTE_SIZE)
    palette[:n, :colors.shape[1]] = np.clip(colors[:n], 0, 255).astype(np.uint8)
    return palette


def load_palette(image_path: Union[str, Path]) -> np.ndarray:
    """
    Load a palette from an image file.

    Pixels are read row-major; the first 256 become palette entries.

    Args:
        image_path: Path to the palette image (PNG recommended)

    Returns:
        Array of shape (256, 4), dtype uint8
    """
    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Palette image not found: {image_path}")

    img = Image.open(image_path)
    if img.mode != "RGBA":
        img = img.convert("RGBA")

    pixels = np.array(img, dtype=np.uint8).reshape(-1, 4)
    return normalize_palette(pixels)
