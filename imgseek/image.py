"""Image container and input validation.

Every matching entry point accepts either an ``Image`` or a raw numpy
array of shape (H, W, 3).  Arrays are normalized once through
``Image.from_array`` so the rest of the pipeline can assume a read-only
uint8 buffer with non-zero dimensions.

Usage:
    haystack = load_image("screen.png")
    needle = Image.from_array(patch)
    print(needle.width, needle.height, needle.pixel(0, 0))
"""

import os
import warnings
from dataclasses import dataclass
from typing import Tuple, Union

import cv2
import numpy as np

from ._constants import CHANNELS, CHANNEL_MAX

__all__ = ["Image", "InvalidInput", "load_image"]


class InvalidInput(ValueError):
    """Raised when an input image is empty or not a 3-channel color image."""


@dataclass(frozen=True, eq=False)
class Image:
    """Read-only 3-channel 8-bit image.

    Attributes:
        pixels: uint8 array of shape (height, width, 3), not writeable.
    """
    pixels: np.ndarray

    def __post_init__(self):
        _validate_pixels(self.pixels)

    @classmethod
    def from_array(cls, array: Union["Image", np.ndarray]) -> "Image":
        """Normalize an array (or pass through an Image).

        Args:
            array: (H, W, 3) array.  uint8 is used as is; other numeric
                   dtypes are clipped to [0, 255] and cast.  Float arrays
                   entirely inside [0, 1] are treated as normalized and
                   rescaled with a warning.

        Returns:
            Image sharing memory with ``array`` when no conversion was needed.

        Raises:
            InvalidInput: If the array is None, empty, not (H, W, 3), or
                holds non-finite floats.
        """
        if isinstance(array, Image):
            return array
        if array is None:
            raise InvalidInput("Image is None")

        array = np.asarray(array)
        _validate_shape(array)

        if array.dtype != np.uint8:
            if not np.issubdtype(array.dtype, np.number) or np.issubdtype(array.dtype, np.complexfloating):
                raise InvalidInput(f"Unsupported pixel dtype {array.dtype}")
            if np.issubdtype(array.dtype, np.floating) and not np.all(np.isfinite(array)):
                raise InvalidInput("Image contains NaN or infinite pixel values")
            if (np.issubdtype(array.dtype, np.floating)
                    and array.max() <= 1.0 and array.min() >= 0.0 and array.max() > 0.0):
                warnings.warn(
                    f"Pixel values in [0, {array.max():.2f}] look normalized. "
                    f"Expected [0, {CHANNEL_MAX}] range. Rescaling to [0, {CHANNEL_MAX}].",
                    UserWarning,
                    stacklevel=2,
                )
                array = array * float(CHANNEL_MAX)
            array = np.clip(np.round(array), 0, CHANNEL_MAX).astype(np.uint8)

        view = array.view()
        view.flags.writeable = False
        return cls(view)

    # ── Properties ────────────────────────────────────────────────────

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Array shape (height, width, channels)."""
        return self.pixels.shape

    # ── Accessors ─────────────────────────────────────────────────────

    def pixel(self, x: int, y: int) -> Tuple[int, int, int]:
        """Return the three channel values at column ``x``, row ``y``."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(
                f"Pixel ({x}, {y}) outside {self.width}x{self.height} image"
            )
        c0, c1, c2 = self.pixels[y, x]
        return int(c0), int(c1), int(c2)

    def window(self, x: int, y: int, width: int, height: int) -> np.ndarray:
        """Return the (height, width, 3) sub-array with top-left (x, y).

        Raises:
            ValueError: If the window does not lie inside the image.
        """
        if (x < 0 or y < 0 or width < 0 or height < 0
                or x + width > self.width or y + height > self.height):
            raise ValueError(
                f"Window at ({x}, {y}) of size {width}x{height} exceeds "
                f"{self.width}x{self.height} image"
            )
        return self.pixels[y:y + height, x:x + width]


def load_image(path: str) -> Image:
    """Decode an image file into a 3-channel Image (OpenCV BGR order).

    Raises:
        FileNotFoundError: If the file does not exist or cannot be decoded.
    """
    path = os.fspath(path)
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Image file not found: {path}")
    img = cv2.imread(path, cv2.IMREAD_COLOR)
    if img is None:
        raise FileNotFoundError(f"Cannot read image: {path}")
    return Image.from_array(img)


def _validate_shape(array: np.ndarray) -> None:
    if array.size == 0 or array.ndim < 2 or 0 in array.shape[:2]:
        raise InvalidInput(f"Image is empty (shape {array.shape})")
    if array.ndim != 3 or array.shape[2] != CHANNELS:
        raise InvalidInput(
            f"Expected a {CHANNELS}-channel image of shape (H, W, {CHANNELS}), "
            f"got shape {array.shape}"
        )


def _validate_pixels(pixels: np.ndarray) -> None:
    if not isinstance(pixels, np.ndarray):
        raise InvalidInput(f"Expected numpy array, got {type(pixels).__name__}")
    _validate_shape(pixels)
    if pixels.dtype != np.uint8:
        raise InvalidInput(
            f"Image pixels must be uint8, got {pixels.dtype}; use Image.from_array()"
        )
