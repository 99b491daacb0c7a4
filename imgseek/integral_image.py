"""Summed-area tables for O(1) rectangle sums.

Cell (x, y) of the table holds the sum of all three channel values of
every pixel in the rectangle from the origin to (x, y) inclusive.  Any
axis-aligned rectangle sum then costs four lookups:

    sum = I(x2, y2) - I(x1, y2) - I(x2, y1) + I(x1, y1)

where (x1, y1) sits one pixel above and to the left of the rectangle and
(x2, y2) is its bottom-right pixel.  Lookups at negative indices count
as zero.
"""

from typing import Union

import numpy as np

from .image import Image

__all__ = ["IntegralImage", "build_integral_image"]


class IntegralImage:
    """Immutable summed-area table over the channel sums of an Image."""

    def __init__(self, table: np.ndarray):
        """Wrap an existing table.  Use ``IntegralImage.build()`` to compute one.

        Args:
            table: (height, width) integer array of cumulative sums.
        """
        table = np.asarray(table)
        if table.ndim != 2 or 0 in table.shape:
            raise ValueError(f"Integral table must be a non-empty 2-D array, got shape {table.shape}")
        if not np.issubdtype(table.dtype, np.signedinteger):
            raise ValueError(f"Integral table must hold signed integers, got {table.dtype}")
        table = table.astype(np.int64, copy=False).view()
        table.flags.writeable = False
        self._table = table

        # Zero row and column in front of the table so window lookups at
        # index -1 need no branching.
        padded = np.zeros((table.shape[0] + 1, table.shape[1] + 1), dtype=np.int64)
        padded[1:, 1:] = table
        padded.flags.writeable = False
        self._padded = padded

    @classmethod
    def build(cls, image: Union[Image, np.ndarray]) -> "IntegralImage":
        """Compute the table row by row in a single pass.

        Each row is a running sum of per-pixel channel totals, added to the
        row above it.

        Raises:
            InvalidInput: If the image is empty or not 3-channel.
        """
        image = Image.from_array(image)
        pixel_sums = image.pixels.sum(axis=2, dtype=np.int64)
        row_sums = np.cumsum(pixel_sums, axis=1)
        return cls(np.cumsum(row_sums, axis=0))

    # ── Properties ────────────────────────────────────────────────────

    @property
    def width(self) -> int:
        return self._table.shape[1]

    @property
    def height(self) -> int:
        return self._table.shape[0]

    @property
    def table(self) -> np.ndarray:
        """Read-only (height, width) int64 table."""
        return self._table

    @property
    def total(self) -> int:
        """Sum of every channel of every pixel (the final cell)."""
        return int(self._table[-1, -1])

    # ── Queries ───────────────────────────────────────────────────────

    def at(self, x: int, y: int) -> int:
        """Table value at (x, y); 0 when either index is negative."""
        if x < 0 or y < 0:
            return 0
        if x >= self.width or y >= self.height:
            raise IndexError(f"({x}, {y}) outside {self.width}x{self.height} table")
        return int(self._table[y, x])

    def rectangle_sum(self, x: int, y: int, width: int, height: int) -> int:
        """Sum of channel values over pixels [x, x+width) x [y, y+height).

        Raises:
            ValueError: If the rectangle does not lie inside the image.
        """
        if (x < 0 or y < 0 or width < 0 or height < 0
                or x + width > self.width or y + height > self.height):
            raise ValueError(
                f"Rectangle at ({x}, {y}) of size {width}x{height} exceeds "
                f"{self.width}x{self.height} table"
            )
        if width == 0 or height == 0:
            return 0
        x1, y1 = x - 1, y - 1
        x2, y2 = x + width - 1, y + height - 1
        return self.at(x2, y2) - self.at(x1, y2) - self.at(x2, y1) + self.at(x1, y1)

    def window_sums(self, width: int, height: int) -> np.ndarray:
        """Sums of every ``width`` x ``height`` window that fits in the image.

        Returns:
            int64 array of shape (H - height + 1, W - width + 1) where entry
            [y, x] equals ``rectangle_sum(x, y, width, height)``.  Empty when
            the window is larger than the image in either axis.
        """
        if width < 1 or height < 1:
            raise ValueError(f"Window size must be positive, got {width}x{height}")
        rows = self.height - height + 1
        cols = self.width - width + 1
        if rows <= 0 or cols <= 0:
            return np.zeros((max(rows, 0), max(cols, 0)), dtype=np.int64)
        p = self._padded
        return (p[height:, width:]
                - p[:rows, width:]
                - p[height:, :cols]
                + p[:rows, :cols])

    def __repr__(self) -> str:
        return f"IntegralImage(width={self.width}, height={self.height}, total={self.total})"


def build_integral_image(image: Union[Image, np.ndarray]) -> IntegralImage:
    """Build the summed-area table for ``image``."""
    return IntegralImage.build(image)
