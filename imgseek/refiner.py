"""Exact re-scoring of the candidate shortlist.

Each candidate window is compared pixel by pixel with the needle using
the L1 distance (sum of absolute per-channel differences).  The final
similarity is

    score = 1 - min_l1 / (needle_w * needle_h * 255 * 3)

so 1.0 means a pixel-identical window and 0.0 the worst possible one.
"""

from dataclasses import dataclass
from typing import Iterable, Union

import numpy as np

from ._constants import CHANNELS, CHANNEL_MAX
from .candidates import Candidate
from .image import Image

__all__ = ["MatchResult", "NOT_FOUND", "Refiner", "l1_distance", "max_l1_distance"]


@dataclass(frozen=True)
class MatchResult:
    """Best verified match.

    Attributes:
        score: Similarity in [0, 1].
        x: Left column of the matched window, -1 if nothing was found.
        y: Top row of the matched window, -1 if nothing was found.
    """
    score: float
    x: int
    y: int

    @property
    def found(self) -> bool:
        return self.x >= 0 and self.y >= 0

    @property
    def location(self):
        """(x, y) of the matched window."""
        return self.x, self.y


NOT_FOUND = MatchResult(0.0, -1, -1)


def max_l1_distance(needle_width: int, needle_height: int) -> int:
    """Worst-case total L1 distance for a window of the given size."""
    return needle_width * needle_height * CHANNEL_MAX * CHANNELS


def l1_distance(haystack: Union[Image, np.ndarray], needle: Union[Image, np.ndarray],
                x: int, y: int) -> int:
    """L1 distance between ``needle`` and the haystack window at (x, y)."""
    haystack = Image.from_array(haystack)
    needle = Image.from_array(needle)
    window = haystack.window(x, y, needle.width, needle.height)
    return int(np.abs(window.astype(np.int32) - needle.pixels.astype(np.int32)).sum())


class Refiner:
    """Resolve a shortlist to the single best-matching window."""

    def __init__(self, verify_exact: bool = False):
        """
        Args:
            verify_exact: Score every candidate by pixels even when the best
                one has a zero sum difference.  Off by default: a zero
                diff is accepted as a perfect match without comparing
                pixels, so a sum collision can report 1.0.
        """
        self._verify_exact = verify_exact

    @property
    def verify_exact(self) -> bool:
        return self._verify_exact

    def refine(self, haystack: Union[Image, np.ndarray],
               needle: Union[Image, np.ndarray],
               candidates: Iterable[Candidate]) -> MatchResult:
        """Pick the candidate with the lowest L1 distance.

        Args:
            haystack: Image being searched.
            needle: Reference image.
            candidates: Shortlist ascending by diff.

        Returns:
            MatchResult; ``NOT_FOUND`` when ``candidates`` is empty.
        """
        haystack = Image.from_array(haystack)
        needle = Image.from_array(needle)
        candidates = list(candidates)
        if not candidates:
            return NOT_FOUND

        first = candidates[0]
        if first.diff == 0 and not self._verify_exact:
            return MatchResult(1.0, first.x, first.y)

        needle_px = needle.pixels.astype(np.int32)
        best_s = None
        best_x = best_y = -1
        for cand in candidates:
            window = haystack.window(cand.x, cand.y, needle.width, needle.height)
            s = int(np.abs(window.astype(np.int32) - needle_px).sum())
            if best_s is None or s < best_s:
                best_s, best_x, best_y = s, cand.x, cand.y
            if s == 0:
                break

        score = 1.0 - best_s / max_l1_distance(needle.width, needle.height)
        return MatchResult(score, best_x, best_y)
