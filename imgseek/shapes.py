"""Geometric shape detection (triangles, rectangles, pentagons, hexagons, circles).

Each color plane of a denoised copy of the image is binarized at several
levels (Canny edges for the first level, plain thresholds after that).
Contours of every binarization are approximated by polygons and
classified by vertex count and corner angles.  The same shape usually
shows up at several levels, so results are not deduplicated.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Union

import cv2
import numpy as np

from .image import Image

__all__ = ["Shape", "find_shapes", "corner_cosine"]

THRESHOLD_LEVELS = 11
CANNY_THRESHOLD = 50
MIN_AREA = 100.0
APPROX_EPSILON = 0.02

# (min cosine, max cosine) over all corners, per vertex count
_CORNER_COSINE_RANGES = {
    4: ("rectangle", -0.1, 0.3),
    5: ("pentagon", -0.35, -0.21),
    6: ("hexagon", -0.55, -0.45),
}


@dataclass(frozen=True, eq=False)
class Shape:
    """A detected shape.

    Attributes:
        kind: "triangle", "rectangle", "pentagon", "hexagon" or "circle".
        points: (N, 2) int32 polygon vertices.
    """
    kind: str
    points: np.ndarray


def corner_cosine(pt1, pt2, pt0) -> float:
    """Cosine of the angle between vectors pt0->pt1 and pt0->pt2."""
    dx1 = float(pt1[0] - pt0[0])
    dy1 = float(pt1[1] - pt0[1])
    dx2 = float(pt2[0] - pt0[0])
    dy2 = float(pt2[1] - pt0[1])
    return (dx1 * dx2 + dy1 * dy2) / math.sqrt(
        (dx1 * dx1 + dy1 * dy1) * (dx2 * dx2 + dy2 * dy2) + 1e-10)


def _classify(contour: np.ndarray, approx: np.ndarray) -> Optional[str]:
    vtc = len(approx)
    if vtc == 3:
        return "triangle"
    if 4 <= vtc <= 6:
        pts = approx.reshape(-1, 2)
        cosines = sorted(
            corner_cosine(pts[j % vtc], pts[j - 2], pts[j - 1])
            for j in range(2, vtc + 1)
        )
        kind, lo, hi = _CORNER_COSINE_RANGES[vtc]
        if cosines[0] >= lo and cosines[-1] <= hi:
            return kind
        return None
    if vtc > 6:
        area = cv2.contourArea(contour)
        _, _, w, h = cv2.boundingRect(contour)
        radius = w // 2
        if radius == 0 or h == 0:
            return None
        if (abs(1 - w / h) <= 0.3
                and abs(1 - area / (math.pi * radius ** 2)) <= 0.2):
            return "circle"
    return None


def find_shapes(image: Union[Image, np.ndarray]) -> List[Shape]:
    """Detect convex geometric shapes in a BGR image."""
    image = Image.from_array(image)
    src = np.ascontiguousarray(image.pixels)
    h, w = src.shape[:2]

    # Down- and up-scale to filter out noise.
    pyr = cv2.pyrDown(src, dstsize=((w + 1) // 2, (h + 1) // 2))
    timg = cv2.pyrUp(pyr, dstsize=(w, h))

    shapes = []
    for c in range(3):
        plane = np.ascontiguousarray(timg[:, :, c])
        for level in range(THRESHOLD_LEVELS):
            if level == 0:
                # Canny catches shapes with gradient shading; dilate closes
                # gaps between edge segments.
                gray = cv2.Canny(plane, 0, CANNY_THRESHOLD, apertureSize=5)
                gray = cv2.dilate(gray, None)
            else:
                gray = np.where(
                    plane >= (level + 1) * 255 // THRESHOLD_LEVELS, 255, 0
                ).astype(np.uint8)

            contours, _ = cv2.findContours(gray, cv2.RETR_LIST, cv2.CHAIN_APPROX_SIMPLE)
            for contour in contours:
                approx = cv2.approxPolyDP(
                    contour, cv2.arcLength(contour, True) * APPROX_EPSILON, True)
                if (abs(cv2.contourArea(contour)) < MIN_AREA
                        or not cv2.isContourConvex(approx)):
                    continue
                kind = _classify(contour, approx)
                if kind is not None:
                    shapes.append(Shape(kind, approx.reshape(-1, 2).astype(np.int32)))
    return shapes
