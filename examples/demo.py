#!/usr/bin/env python3
"""
Skeleton Vox Demo Script

This script demonstrates the full conversion pipeline by:
1. Building a synthetic humanoid skeleton (no external models needed)
2. Extracting bone boxes with two different minimum thicknesses
3. Exporting flat and grouped .vox scenes
4. Printing statistics and the packed rotation of every bone

Run with: python examples/demo.py
"""

import sys
from pathlib import Path
import time
from scipy.spatial.transform import Rotation

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from skeleton_vox import SkeletonConverter, Joint, RotationEncoder
from skeleton_vox.walker import DEFAULT_MIN_HALF_EXTENT, THICK_MIN_HALF_EXTENT
from skeleton_vox.exporters import load_vox


def quat(axis: str, degrees: float) -> tuple:
    return tuple(Rotation.from_euler(axis, degrees, degrees=True).as_quat())


def create_test_skeleton() -> Joint:
    """
    Create a small humanoid skeleton, Y-up, units in centimeters.

    Returns:
        Root joint (hips)
    """
    index = iter(range(100))

    def joint(name, translation, rotation=(0, 0, 0, 1), children=()):
        return Joint(name, next(index), translation, rotation, (1, 1, 1), list(children))

    def arm(side: float, prefix: str) -> Joint:
        return joint(f"{prefix}_shoulder", (side * 18, 45, 0), quat("z", side * -90), [
            joint(f"{prefix}_elbow", (0, 28, 0), children=[
                joint(f"{prefix}_wrist", (0, 25, 0)),
            ]),
        ])

    def leg(side: float, prefix: str) -> Joint:
        return joint(f"{prefix}_hip", (side * 10, -5, 0), quat("z", 180), [
            joint(f"{prefix}_knee", (0, 42, 0), children=[
                joint(f"{prefix}_ankle", (0, 40, 0), quat("x", 90), [
                    joint(f"{prefix}_toe", (0, 15, 0)),
                ]),
            ]),
        ])

    return joint("hips", (0, 95, 0), children=[
        joint("spine", (0, 20, 0), children=[
            joint("neck", (0, 30, 0), children=[joint("head", (0, 20, 0))]),
            arm(1, "l"),
            arm(-1, "r"),
        ]),
        leg(1, "l"),
        leg(-1, "r"),
    ])


def run_demo(output_dir: Path):
    skeleton = create_test_skeleton()
    encoder = RotationEncoder()

    for label, minimum, group in (
        ("thin", DEFAULT_MIN_HALF_EXTENT, False),
        ("thick", THICK_MIN_HALF_EXTENT, True),
    ):
        print(f"\n=== {label}: min half-extent {minimum}, grouped={group} ===")
        start = time.time()

        converter = SkeletonConverter(min_half_extent=minimum, group_bones=group)
        converter.load_joint(skeleton).walk().build()

        output_path = output_dir / f"humanoid_{label}.vox"
        converter.export(output_path)
        elapsed = (time.time() - start) * 1000

        stats = converter.get_stats()
        print(f"  Joints: {stats['joint_count']}, bones: {stats['bone_count']}, "
              f"records: {stats['record_count']}")
        print(f"  Exported: {output_path} ({output_path.stat().st_size} bytes, {elapsed:.1f} ms)")

        if label == "thin":
            print("\n  Hierarchy:")
            for line in converter.hierarchy_lines():
                print(f"    {line}")

            print("\n  Bones:")
            for box, model in zip(converter.boxes, converter.document.models):
                t, r = encoder.encode(box.rotation, box.center)
                print(f"    {box.name:12s} size {str(model.size):14s} _t '{t}' _r {r}")

        loaded = load_vox(output_path)
        assert len(loaded.models) == stats["bone_count"]


def main():
    output_dir = Path(__file__).parent / "output"
    output_dir.mkdir(exist_ok=True)

    print("Skeleton Vox Demo")
    print("=" * 40)
    run_demo(output_dir)
    print("\nDone.")


if __name__ == "__main__":
    main()
