"""Face and eye detection with OpenCV Haar cascades.

Faces are detected on an equalized grayscale copy of the image; eyes are
then searched inside each face region.  ``detect_path`` runs the detector
over a single file or a whole directory tree and writes annotated copies.

Usage:
    detector = FaceDetector()
    for face in detector.detect(image):
        print(face.rect, face.eyes)

    found = detect_path(detector, "photos/", output="annotated/")
"""

import os
import warnings
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple, Union

import cv2
import numpy as np

from ._constants import IMAGE_SUFFIXES
from .image import Image, load_image
from .overlay import COLOR_GREEN, draw_rectangles, writable_copy

__all__ = ["FaceDetection", "FaceDetector", "detect_path", "iter_image_files"]

DEFAULT_FACE_CASCADE = "haarcascade_frontalface_alt.xml"
DEFAULT_EYES_CASCADE = "haarcascade_eye_tree_eyeglasses.xml"

Rect = Tuple[int, int, int, int]


@dataclass(frozen=True)
class FaceDetection:
    """A detected face and the eyes found inside it.

    Attributes:
        rect: Face (x, y, w, h) in image coordinates.
        eyes: Eye (x, y, w, h) rectangles in image coordinates.
    """
    rect: Rect
    eyes: Tuple[Rect, ...] = field(default_factory=tuple)


def _cascade_path(name: str) -> str:
    if os.path.isfile(name):
        return name
    return os.path.join(cv2.data.haarcascades, name)


def _load_cascade(path: str) -> cv2.CascadeClassifier:
    cascade = cv2.CascadeClassifier()
    try:
        loaded = os.path.isfile(path) and cascade.load(path)
    except cv2.error as e:
        raise FileNotFoundError(f"Could not load cascade file: {path} ({e})") from e
    if not loaded:
        raise FileNotFoundError(f"Could not load cascade file: {path}")
    return cascade


class FaceDetector:
    """Haar-cascade face detector with a nested eye detector."""

    def __init__(self, face_cascade_path: Optional[str] = None,
                 eyes_cascade_path: Optional[str] = None,
                 scale_factor: float = 1.1, min_neighbors: int = 2,
                 min_size: Tuple[int, int] = (30, 30)):
        """Load both cascades.

        Args:
            face_cascade_path: Cascade XML path, or a file name looked up in
                ``cv2.data.haarcascades``.  Defaults to the frontal-face
                cascade.
            eyes_cascade_path: Same for eyes.  Defaults to the
                eyeglasses-tolerant eye cascade.
            scale_factor: Image pyramid step for ``detectMultiScale``.
            min_neighbors: Neighbor count a detection needs to survive.
            min_size: Smallest (w, h) object considered.

        Raises:
            FileNotFoundError: If either cascade cannot be loaded.
        """
        self._face_cascade = _load_cascade(
            _cascade_path(face_cascade_path or DEFAULT_FACE_CASCADE))
        self._eyes_cascade = _load_cascade(
            _cascade_path(eyes_cascade_path or DEFAULT_EYES_CASCADE))
        self._scale_factor = scale_factor
        self._min_neighbors = min_neighbors
        self._min_size = tuple(min_size)

    def _detect(self, cascade: cv2.CascadeClassifier, gray: np.ndarray) -> List[Rect]:
        rects = cascade.detectMultiScale(
            gray, scaleFactor=self._scale_factor, minNeighbors=self._min_neighbors,
            flags=cv2.CASCADE_SCALE_IMAGE, minSize=self._min_size,
        )
        return [tuple(int(v) for v in r) for r in rects]

    def detect(self, image: Union[Image, np.ndarray]) -> List[FaceDetection]:
        """Detect faces, then eyes inside each face."""
        image = Image.from_array(image)
        gray = cv2.cvtColor(np.ascontiguousarray(image.pixels), cv2.COLOR_BGR2GRAY)
        gray = cv2.equalizeHist(gray)

        detections = []
        for fx, fy, fw, fh in self._detect(self._face_cascade, gray):
            roi = gray[fy:fy + fh, fx:fx + fw]
            eyes = tuple(
                (fx + ex, fy + ey, ew, eh)
                for ex, ey, ew, eh in self._detect(self._eyes_cascade, roi)
            )
            detections.append(FaceDetection((fx, fy, fw, fh), eyes))
        return detections

    @staticmethod
    def annotate(image: Union[Image, np.ndarray],
                 detections: List[FaceDetection]) -> np.ndarray:
        """Draw face and eye rectangles on a copy of ``image``."""
        out = writable_copy(image)
        for det in detections:
            draw_rectangles(out, [det.rect], COLOR_GREEN, 2)
            draw_rectangles(out, det.eyes, COLOR_GREEN, 2)
        return out


def iter_image_files(path: str) -> Iterator[str]:
    """Yield image files under ``path`` (or ``path`` itself if it is a file).

    Directories are walked with an explicit stack; entries are visited in
    sorted order.  Files without a known image suffix are skipped.
    """
    path = os.fspath(path)
    if not os.path.isdir(path):
        if os.path.isfile(path):
            yield path
        return

    stack = [path]
    while stack:
        current = stack.pop()
        try:
            names = sorted(os.listdir(current))
        except OSError as e:
            warnings.warn(f"Cannot list directory {current}: {e}", RuntimeWarning)
            continue
        subdirs = []
        for name in names:
            full = os.path.join(current, name)
            if os.path.isdir(full):
                subdirs.append(full)
            elif os.path.splitext(name)[1].lower() in IMAGE_SUFFIXES:
                yield full
        # Reversed so the first subdirectory is popped first.
        stack.extend(reversed(subdirs))


def detect_path(detector: FaceDetector, path: str,
                output: Optional[str] = None) -> int:
    """Detect faces in a file or directory tree.

    Args:
        detector: Loaded FaceDetector.
        path: Image file or directory.
        output: Where annotated images go.  For a file input, the output
            file name; for a directory, an output directory mirroring the
            input tree.  None writes nothing.

    Returns:
        Number of images in which at least one face was found.
    """
    path = os.fspath(path)
    is_dir = os.path.isdir(path)
    found = 0
    for file_path in iter_image_files(path):
        try:
            image = load_image(file_path)
        except (FileNotFoundError, ValueError) as e:
            warnings.warn(f"Skipping {file_path}: {e}", RuntimeWarning)
            continue

        detections = detector.detect(image)
        if detections:
            found += 1

        if output:
            if is_dir:
                dest = os.path.join(output, os.path.relpath(file_path, path))
            else:
                dest = output
            parent = os.path.dirname(dest)
            if parent:
                os.makedirs(parent, exist_ok=True)
            if not cv2.imwrite(dest, detector.annotate(image, detections)):
                raise RuntimeError(f"Failed to write {dest}")
    return found
