"""
Rotation Encoding for MagicaVoxel Scene Frames

MagicaVoxel stores a node's orientation as one byte describing a signed
axis permutation, so only the 24 axis-aligned rotations are
representable. This module snaps an arbitrary rotation onto that set and
packs it, and formats translations into the frame's "_t" string.

Coordinate Systems:
- glTF (source): Right-handed, Y-up (+X Right, +Y Up, +Z Front)
- MagicaVoxel (target): Z-up; vectors are written as (x, z, y)

Packed byte layout (rows read in order 0, 2, 1):
    bit 0-1 : axis index of the non-zero entry in the first read row
    bit 2-3 : axis index of the non-zero entry in the second read row
    bit 4   : sign of the first read row (0 = positive)
    bit 5   : sign of the second read row
    bit 6   : sign of the third read row
    bit 7   : unused (0)
"""

from typing import Tuple, Union, Sequence
import numpy as np
from scipy.spatial.transform import Rotation


# Candidate order doubles as the tie-break order: the first maximum wins
AXIS_CANDIDATES = np.array([
    [1, 0, 0],
    [-1, 0, 0],
    [0, 1, 0],
    [0, -1, 0],
    [0, 0, 1],
    [0, 0, -1],
], dtype=np.float64)

# Row read order used by the packed byte
PACK_ROW_ORDER = (0, 2, 1)

# Y-up to Z-up: x' = x, y' = z, z' = y
Y_UP_TO_Z_UP = np.array([
    [1, 0, 0],
    [0, 0, 1],
    [0, 1, 0]
], dtype=np.float64)

RotationLike = Union[Rotation, np.ndarray, Sequence[float]]


def to_vox_axes(vector: Sequence[float]) -> np.ndarray:
    """Reorder a glTF (x, y, z) vector into MagicaVoxel (x, z, y)."""
    return Y_UP_TO_Z_UP @ np.asarray(vector, dtype=np.float64)


def rotation_matrix(rotation: RotationLike) -> np.ndarray:
    """
    Get a 3x3 orientation matrix from any supported rotation form.

    Args:
        rotation: scipy Rotation, quaternion (x, y, z, w) or 3x3 matrix

    Returns:
        3x3 float64 matrix
    """
    if isinstance(rotation, Rotation):
        return rotation.as_matrix()
    array = np.asarray(rotation, dtype=np.float64)
    if array.shape == (3, 3):
        return array
    if array.shape == (4,):
        return Rotation.from_quat(array).as_matrix()
    raise ValueError(f"Expected a Rotation, quaternion or 3x3 matrix, got shape {array.shape}")


class RotationEncoder:
    """
    Stateless encoder for MagicaVoxel frame attributes.

    Usage:
        encoder = RotationEncoder()
        t, r = encoder.encode(rotation, translation)
        frame = {"_t": t, "_r": str(r)}
    """

    def snap(self, matrix: np.ndarray) -> np.ndarray:
        """
        Replace each row with its closest signed unit axis.

        Args:
            matrix: 3x3 orientation matrix

        Returns:
            3x3 matrix whose rows are each one of +-X, +-Y, +-Z
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        snapped = np.zeros((3, 3), dtype=np.float64)
        for i, row in enumerate(matrix):
            # argmax returns the first maximum, matching candidate order
            snapped[i] = AXIS_CANDIDATES[np.argmax(AXIS_CANDIDATES @ row)]
        return snapped

    def pack(self, snapped: np.ndarray) -> int:
        """
        Pack a snapped matrix into the MagicaVoxel rotation byte.

        Args:
            snapped: Output of snap()

        Returns:
            Packed rotation in range 0-127
        """
        rows = np.asarray(snapped)[list(PACK_ROW_ORDER)]
        indices = [int(np.argmax(np.abs(row))) for row in rows]
        negative = [bool(row[index] < 0) for row, index in zip(rows, indices)]

        packed = indices[0] | (indices[1] << 2)
        packed |= int(negative[0]) << 4
        packed |= int(negative[1]) << 5
        packed |= int(negative[2]) << 6
        return packed

    @staticmethod
    def unpack(packed: int) -> Tuple[int, int, bool, bool, bool]:
        """
        Decode a packed rotation byte.

        Returns:
            (first_index, second_index, first_negative, second_negative,
            third_negative) for the rows in packed read order
        """
        return (
            packed & 0b11,
            (packed >> 2) & 0b11,
            bool(packed & (1 << 4)),
            bool(packed & (1 << 5)),
            bool(packed & (1 << 6)),
        )

    def format_translation(self, translation: Sequence[float]) -> str:
        """
        Format a translation as MagicaVoxel's "_t" attribute.

        Components are reordered to (x, z, y) and truncated toward zero.
        """
        return " ".join(str(int(c)) for c in to_vox_axes(translation))

    def encode_rotation(self, rotation: RotationLike) -> int:
        """Snap and pack a rotation."""
        return self.pack(self.snap(rotation_matrix(rotation)))

    def encode(
        self,
        rotation: RotationLike,
        translation: Sequence[float] = (0.0, 0.0, 0.0)
    ) -> Tuple[str, int]:
        """
        Encode a frame's translation and rotation.

        Args:
            rotation: scipy Rotation, quaternion (x, y, z, w) or 3x3 matrix
            translation: World position (glTF axes)

        Returns:
            (translation_string, packed_rotation)
        """
        return self.format_translation(translation), self.encode_rotation(rotation)
