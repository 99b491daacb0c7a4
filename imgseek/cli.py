"""Command-line front end.

    python -m imgseek match HAYSTACK NEEDLE [--config FILE] [--[no-]verify-exact] ...
    python -m imgseek faces PATH [OUTPUT]
    python -m imgseek shapes IMAGE [--no-display] [--output FILE]
"""

import argparse
import sys
from typing import List, Optional

import cv2

from .faces import FaceDetector, detect_path
from .image import InvalidInput, load_image
from .matcher import MatchParams, TemplateMatcher
from .overlay import annotate_shapes, draw_match, show
from .shapes import find_shapes

__all__ = ["main", "build_parser"]


def _add_switch(parser: argparse.ArgumentParser, name: str, help: str) -> None:
    """Add ``--name`` / ``--no-name`` storing True/False, default None."""
    dest = name.replace("-", "_")
    group = parser.add_mutually_exclusive_group()
    group.add_argument(f"--{name}", dest=dest, action="store_true", default=None,
                       help=help)
    group.add_argument(f"--no-{name}", dest=dest, action="store_false", default=None,
                       help=f"Turn off --{name}, e.g. when set in --config")


def build_parser() -> argparse.ArgumentParser:
    """Build the ``imgseek`` parser with its match/faces/shapes subcommands."""
    parser = argparse.ArgumentParser(
        prog="imgseek",
        description="Search images: template matching, face detection, shape detection",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser(
        "match",
        help="Search a needle image in a haystack image",
        description="Searches needle image in haystack and returns result match value from 0 to 1.",
    )
    p.add_argument("haystack", help="Image to search in")
    p.add_argument("needle", help="Image to search for")
    p.add_argument("--config", type=str, default=None,
                   help="JSON file with match parameters (flags below override it)")
    p.add_argument("--capacity", type=int, default=None,
                   help="Candidate shortlist size (default: 50)")
    _add_switch(p, "include-far-edge",
                "Also scan placements touching the haystack's right/bottom edge")
    _add_switch(p, "verify-exact",
                "Verify zero-sum-difference candidates pixel by pixel")
    _add_switch(p, "verbose", "Print pipeline stage summaries to stderr")
    p.add_argument("--output", type=str, default=None,
                   help="Write the annotated haystack to this file")
    p.add_argument("--no-display", action="store_true",
                   help="Headless mode: no OpenCV window")
    p.set_defaults(func=cmd_match)

    p = sub.add_parser(
        "faces",
        help="Detect faces and eyes in an image or directory tree",
    )
    p.add_argument("path", help="Image file or directory")
    p.add_argument("output", nargs="?", default=None,
                   help="Output file (for a file input) or directory")
    p.add_argument("--face-cascade", type=str, default=None,
                   help="Face cascade XML (default: haarcascade_frontalface_alt.xml)")
    p.add_argument("--eyes-cascade", type=str, default=None,
                   help="Eye cascade XML (default: haarcascade_eye_tree_eyeglasses.xml)")
    p.set_defaults(func=cmd_faces)

    p = sub.add_parser(
        "shapes",
        help="Detect geometric shapes (circle, triangle, rectangle, ...) in an image",
    )
    p.add_argument("image", help="Image file")
    p.add_argument("--output", type=str, default=None,
                   help="Write the annotated image to this file")
    p.add_argument("--no-display", action="store_true",
                   help="Headless mode: no OpenCV window")
    p.set_defaults(func=cmd_shapes)

    return parser


def _match_params(args: argparse.Namespace) -> MatchParams:
    """Merge ``--config`` values with flags given on the command line."""
    params = MatchParams.from_json(args.config) if args.config else MatchParams()
    overrides = {
        "capacity": args.capacity,
        "include_far_edge": args.include_far_edge,
        "verify_exact": args.verify_exact,
        "verbose": args.verbose,
    }
    data = params.to_dict()
    data.update({k: v for k, v in overrides.items() if v is not None})
    return MatchParams.from_dict(data)


def _write(path: str, image) -> None:
    if not cv2.imwrite(path, image):
        raise RuntimeError(f"Failed to write {path}")


def cmd_match(args: argparse.Namespace) -> int:
    """Run template matching and print the score and location."""
    try:
        params = _match_params(args)
    except (OSError, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    try:
        haystack = load_image(args.haystack)
        needle = load_image(args.needle)
    except (FileNotFoundError, InvalidInput) as e:
        print(f"Couldn't load images! {e}", file=sys.stderr)
        return 1

    try:
        result = TemplateMatcher(params).match(haystack, needle)
    except InvalidInput as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 1

    print(f"Result: {result.score:.6g}")
    if result.found:
        print(f"Found at [{result.x},{result.y}]")
        annotated = draw_match(haystack, result, needle.width, needle.height)
        if args.output:
            _write(args.output, annotated)
        if not args.no_display:
            show(annotated, "Result")
    return 0


def cmd_faces(args: argparse.Namespace) -> int:
    """Detect faces in a file or tree; exit code 2 if cascades fail to load."""
    try:
        detector = FaceDetector(args.face_cascade, args.eyes_cascade)
    except FileNotFoundError as e:
        print(f"Could not load cascade files. {e}", file=sys.stderr)
        return 2

    found = detect_path(detector, args.path, args.output)
    if found == 0:
        print(f"Could not find any faces in {args.path}", file=sys.stderr)
    else:
        print(f"Faces found in {found} image(s)")
    return 0


def cmd_shapes(args: argparse.Namespace) -> int:
    """Detect shapes, print per-kind counts and show/write the outlines."""
    try:
        image = load_image(args.image)
    except (FileNotFoundError, InvalidInput) as e:
        print(f"Couldn't load image {args.image}: {e}", file=sys.stderr)
        return 1

    shapes = find_shapes(image)
    counts = {}
    for shape in shapes:
        counts[shape.kind] = counts.get(shape.kind, 0) + 1
    summary = ", ".join(f"{k}={v}" for k, v in sorted(counts.items()))
    print(f"Shapes: {len(shapes)}" + (f" ({summary})" if summary else ""))

    annotated = annotate_shapes(image, [s.points for s in shapes])
    if args.output:
        _write(args.output, annotated)
    if not args.no_display:
        show(annotated, "Geometrical shapes")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Parse ``argv`` and dispatch to the chosen subcommand."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
