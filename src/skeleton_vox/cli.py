"""
Command-Line Interface for Skeleton Vox

Usage:
    skelvox Fox.gltf --root b_Hip_01 -o fox.vox
    skelvox Fox.gltf --root 3 -o fox.vox --thick --group
    skelvox --batch models/ --output-dir scenes/ --root b_Hip_01

"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional
import time

from .converter import SkeletonConverter, BatchProcessor
from .ingestion import SkeletonLoader, parse_root_identifier
from .color import load_palette
from .walker import DEFAULT_MIN_HALF_EXTENT, THICK_MIN_HALF_EXTENT


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="skelvox",
        description="Skeleton Vox - Convert a model's bone hierarchy to a MagicaVoxel scene",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  skelvox Fox.gltf --root b_Hip_01 -o fox.vox
      One box per bone below b_Hip_01, at least 1 unit thick

  skelvox Fox.gltf --root b_Hip_01 --thick --group -o fox.vox
      10 unit thick bones, all wrapped in a single group

  skelvox Fox.gltf --list-joints
      Print every node name with its index

  skelvox --batch models/ --output-dir scenes/ --root b_Hip_01
      Convert every .gltf in models/
        """
    )

    # Input
    parser.add_argument(
        "input",
        nargs="?",
        help="Input model file (.gltf or .glb)"
    )

    parser.add_argument(
        "-r", "--root",
        help="Root joint name, or node index"
    )

    # Output
    parser.add_argument(
        "-o", "--output",
        help="Output .vox path (default: input name with .vox)"
    )

    # Bone settings
    thickness = parser.add_mutually_exclusive_group()
    thickness.add_argument(
        "--min-half-extent",
        type=float,
        default=DEFAULT_MIN_HALF_EXTENT,
        help=f"Minimum half-thickness of each bone box (default: {DEFAULT_MIN_HALF_EXTENT})"
    )

    thickness.add_argument(
        "--thick",
        action="store_true",
        help=f"Use a minimum half-thickness of {THICK_MIN_HALF_EXTENT}"
    )

    # Scene settings
    parser.add_argument(
        "--group",
        action="store_true",
        help="Wrap all bones in a single group"
    )

    parser.add_argument(
        "--palette",
        help="Palette image (first 256 pixels are used)"
    )

    # Batch processing
    parser.add_argument(
        "--batch",
        help="Batch process directory of models"
    )

    parser.add_argument(
        "--output-dir",
        help="Output directory for batch processing"
    )

    parser.add_argument(
        "--pattern",
        default="*.gltf",
        help="File pattern for batch processing (default: *.gltf)"
    )

    # Misc
    parser.add_argument(
        "--list-joints",
        action="store_true",
        help="List node names and indices, then exit"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output with hierarchy dump"
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print conversion statistics"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0"
    )

    return parser


def get_min_half_extent(args) -> float:
    return THICK_MIN_HALF_EXTENT if args.thick else args.min_half_extent


def list_joints(args) -> int:
    """Print all node names of the input file."""
    if not args.input:
        print("Error: No input file specified", file=sys.stderr)
        return 1

    try:
        loader = SkeletonLoader().open(args.input)
        for index, name in enumerate(loader.joint_names()):
            print(f"{index:4d}  {name}")
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def process_single(args) -> int:
    """Convert a single model file."""
    if not args.input:
        print("Error: No input file specified", file=sys.stderr)
        return 1

    if args.root is None:
        print("Error: --root is required", file=sys.stderr)
        return 1

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    output_path = Path(args.output) if args.output else input_path.with_suffix(".vox")

    start_time = time.time()

    try:
        palette = load_palette(args.palette) if args.palette else None

        converter = SkeletonConverter(
            min_half_extent=get_min_half_extent(args),
            group_bones=args.group,
            palette=palette
        )

        if args.verbose:
            print(f"Loading: {input_path}")

        converter.load(input_path, parse_root_identifier(args.root))

        if args.verbose:
            print("\nHierarchy:")
            for line in converter.hierarchy_lines():
                print(f"  {line}")

        converter.walk()

        if args.verbose:
            print("\nBones:")
            for box in converter.boxes:
                cx, cy, cz = box.center
                hx, hy, hz = box.half_extents
                print(f"  {box.name}: center ({cx:.2f}, {cy:.2f}, {cz:.2f}) "
                      f"half-extents ({hx:.2f}, {hy:.2f}, {hz:.2f})")

        converter.build()

        stats = converter.get_stats()
        for model_id in stats["oversized_models"]:
            size = converter.document.models[model_id].size
            print(f"Warning: model {model_id} ({converter.boxes[model_id].name}) "
                  f"exceeds 256 voxels: {size}", file=sys.stderr)

        if args.stats or args.verbose:
            print("\nConversion Statistics:")
            print(f"  Joints: {stats['joint_count']}")
            print(f"  Max depth: {stats['max_depth']}")
            print(f"  Bones: {stats['bone_count']}")
            print(f"  Models: {stats['model_count']}")
            print(f"  Scene records: {stats['record_count']}")

        converter.export(output_path)
        if args.verbose:
            print(f"Exported: {output_path}")

        elapsed = time.time() - start_time
        if args.verbose:
            print(f"\nCompleted in {elapsed:.2f}s")

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def process_batch(args) -> int:
    """Convert a directory of model files."""
    if not args.batch:
        print("Error: No batch directory specified", file=sys.stderr)
        return 1

    if args.root is None:
        print("Error: --root is required", file=sys.stderr)
        return 1

    batch_dir = Path(args.batch)
    if not batch_dir.is_dir():
        print(f"Error: Batch directory not found: {batch_dir}", file=sys.stderr)
        return 1

    output_dir = Path(args.output_dir) if args.output_dir else batch_dir / "output"

    start_time = time.time()

    try:
        palette = load_palette(args.palette) if args.palette else None

        processor = BatchProcessor(
            min_half_extent=get_min_half_extent(args),
            group_bones=args.group,
            palette=palette
        )

        outputs = processor.process_directory(
            batch_dir,
            output_dir,
            parse_root_identifier(args.root),
            pattern=args.pattern
        )

        elapsed = time.time() - start_time
        print(f"Processed {len(outputs)} files in {elapsed:.2f}s")
        print(f"Output directory: {output_dir}")

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Determine mode
    if args.list_joints:
        return list_joints(args)
    elif args.batch:
        return process_batch(args)
    else:
        return process_single(args)


if __name__ == "__main__":
    sys.exit(main())
