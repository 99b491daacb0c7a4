"""OpenCV rendering helpers for match, face and shape results.

All ``draw_*`` functions draw in place on a BGR uint8 array; ``draw_match``
and ``annotate_shapes`` work on a writable copy and return it so the
caller's (possibly read-only) image is left untouched.
"""

from typing import Iterable, Sequence, Tuple, Union

import cv2
import numpy as np

from .image import Image
from .refiner import MatchResult


# Color scheme constants (BGR format for OpenCV)
COLOR_GREEN = (0, 255, 0)
COLOR_RED = (0, 0, 255)
COLOR_WHITE = (255, 255, 255)
COLOR_BLACK = (0, 0, 0)

Rect = Tuple[int, int, int, int]  # x, y, width, height


def writable_copy(image: Union[Image, np.ndarray]) -> np.ndarray:
    """Return a contiguous, writable uint8 copy of ``image``."""
    if isinstance(image, Image):
        image = image.pixels
    return np.ascontiguousarray(image, dtype=np.uint8).copy()


def draw_label(
    img: np.ndarray,
    text: str,
    anchor: Tuple[int, int],
    font_scale: float = 0.4,
    text_color: Tuple[int, int, int] = COLOR_WHITE,
    bg_color: Tuple[int, int, int] = COLOR_BLACK,
    padding: int = 2
) -> Rect:
    """Draw ``text`` on a filled box whose top-left corner is near ``anchor``.

    The box is shifted so it lies inside ``img`` whenever it fits, which
    keeps labels for windows at the top or right edge readable.

    Returns:
        The (x, y, w, h) box actually filled.
    """
    font = cv2.FONT_HERSHEY_SIMPLEX
    (text_w, text_h), baseline = cv2.getTextSize(text, font, font_scale, 1)
    box_w = text_w + 2 * padding
    box_h = text_h + baseline + 2 * padding

    height, width = img.shape[:2]
    bx = min(max(int(anchor[0]), 0), max(width - box_w, 0))
    by = min(max(int(anchor[1]), 0), max(height - box_h, 0))

    cv2.rectangle(img, (bx, by), (bx + box_w - 1, by + box_h - 1), bg_color, -1)
    cv2.putText(img, text, (bx + padding, by + padding + text_h),
                font, font_scale, text_color, 1, cv2.LINE_AA)
    return bx, by, box_w, box_h


def draw_rectangles(
    img: np.ndarray,
    rects: Iterable[Rect],
    color: Tuple[int, int, int] = COLOR_GREEN,
    thickness: int = 2
) -> None:
    """Draw (x, y, w, h) rectangles in place."""
    for x, y, w, h in rects:
        cv2.rectangle(img, (int(x), int(y)), (int(x + w), int(y + h)), color, thickness)


def draw_polygons(
    img: np.ndarray,
    polygons: Iterable[np.ndarray],
    color: Tuple[int, int, int] = COLOR_GREEN,
    thickness: int = 1
) -> None:
    """Draw closed anti-aliased polylines, one per (N, 2) point array."""
    pts = [np.asarray(p, dtype=np.int32).reshape(-1, 1, 2) for p in polygons]
    if pts:
        cv2.polylines(img, pts, True, color, thickness, cv2.LINE_AA)


def draw_match(
    image: Union[Image, np.ndarray],
    result: MatchResult,
    needle_width: int,
    needle_height: int,
    color: Tuple[int, int, int] = COLOR_BLACK,
    label: bool = True
) -> np.ndarray:
    """Draw the matched window on a copy of the haystack.

    Args:
        image: Haystack image.
        result: Match to draw.  Nothing is drawn when it was not found.
        needle_width: Window width.
        needle_height: Window height.
        color: Rectangle color.
        label: Also render the score above the rectangle.

    Returns:
        Annotated BGR copy of ``image``.
    """
    out = writable_copy(image)
    if not result.found:
        return out
    x, y = result.x, result.y
    cv2.rectangle(out, (x, y), (x + needle_width, y + needle_height), color, 2)
    if label:
        # Above the rectangle; draw_label pushes it back inside at the top edge.
        draw_label(out, f"{result.score:.3f}", (x, y - 16), bg_color=color)
    return out


def annotate_shapes(image: Union[Image, np.ndarray],
                    polygons: Sequence[np.ndarray]) -> np.ndarray:
    """Draw detected shape outlines on a copy of ``image``."""
    out = writable_copy(image)
    draw_polygons(out, polygons)
    return out


def show(image: np.ndarray, window_name: str = "imgseek") -> None:
    """Display ``image`` until a key is pressed, then close the window."""
    cv2.imshow(window_name, image)
    cv2.waitKey(0)
    cv2.destroyWindow(window_name)
