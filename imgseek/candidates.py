"""Candidate search over a haystack summed-area table.

Slides a needle-sized window across the haystack and scores each
top-left position by ``diff = |window_sum - needle_sum|``.  The scan keeps
a bounded shortlist of the lowest-diff positions; equal sums do not imply
equal pixels, so the shortlist is only a prefilter for the refiner.

Usage:
    hay = IntegralImage.build(haystack)
    shortlist = CandidateSearcher().search(hay, nw, nh, needle_sum)
    best = shortlist.best
"""

import bisect
from dataclasses import dataclass
from typing import Iterator, List, Optional

import numpy as np

from ._constants import CANDIDATE_CAPACITY
from .integral_image import IntegralImage

__all__ = ["Candidate", "CandidateList", "CandidateSearcher", "search_candidates"]


@dataclass(frozen=True)
class Candidate:
    """A haystack window position and its heuristic score.

    Attributes:
        diff: |window channel sum - needle channel sum| (>= 0).
        x: Window left column.
        y: Window top row.
        sum: Channel sum of the haystack window.
    """
    diff: int
    x: int
    y: int
    sum: int


class CandidateList:
    """Fixed-capacity list of candidates kept in ascending ``diff`` order.

    ``insert()`` places a candidate after every entry with a ``diff`` less
    than or equal to its own, so entries with equal diff stay in the order
    they were offered.  When the list grows past ``capacity`` the last
    entry is evicted and returned.  An evicted window never re-enters.
    """

    def __init__(self, capacity: int = CANDIDATE_CAPACITY):
        if capacity < 1:
            raise ValueError(f"Capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._items: List[Candidate] = []
        self._diffs: List[int] = []

    def insert(self, candidate: Candidate) -> Optional[Candidate]:
        """Insert ``candidate`` in order.

        Returns:
            The evicted candidate (possibly ``candidate`` itself when it
            ranks after every entry of a full list), or None.
        """
        if candidate.diff < 0:
            raise ValueError(f"Candidate diff must be >= 0, got {candidate.diff}")
        if self.is_full and candidate.diff >= self._diffs[-1]:
            return candidate

        pos = bisect.bisect_right(self._diffs, candidate.diff)
        self._items.insert(pos, candidate)
        self._diffs.insert(pos, candidate.diff)

        if len(self._items) > self._capacity:
            self._diffs.pop()
            return self._items.pop()
        return None

    # ── Properties ────────────────────────────────────────────────────

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self._capacity

    @property
    def best(self) -> Optional[Candidate]:
        """Lowest-diff candidate, or None if empty."""
        return self._items[0] if self._items else None

    @property
    def worst(self) -> Optional[Candidate]:
        """Highest-diff candidate, or None if empty."""
        return self._items[-1] if self._items else None

    # ── Sequence protocol ─────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self._items)

    def __getitem__(self, index):
        return self._items[index]

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:
        return f"CandidateList(capacity={self._capacity}, size={len(self._items)})"


class CandidateSearcher:
    """Sum-difference scan producing a ranked shortlist of window positions."""

    def __init__(self, capacity: int = CANDIDATE_CAPACITY,
                 include_far_edge: bool = False):
        """
        Args:
            capacity: Shortlist size.
            include_far_edge: Also scan the last row and column of
                placements, where the window touches the haystack's far
                edges.  Off by default: positions run over
                ``x < W - nw`` and ``y < H - nh``.
        """
        if capacity < 1:
            raise ValueError(f"Capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._include_far_edge = include_far_edge

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def include_far_edge(self) -> bool:
        return self._include_far_edge

    def scan_shape(self, haystack: IntegralImage,
                   needle_width: int, needle_height: int):
        """Number of (rows, cols) of top-left positions the scan visits."""
        rows = haystack.height - needle_height
        cols = haystack.width - needle_width
        if self._include_far_edge:
            rows += 1
            cols += 1
        return max(rows, 0), max(cols, 0)

    def window_sums(self, haystack: IntegralImage, needle_width: int,
                    needle_height: int) -> np.ndarray:
        """Window channel sums for every scanned position, indexed [y, x]."""
        rows, cols = self.scan_shape(haystack, needle_width, needle_height)
        if rows == 0 or cols == 0:
            return np.zeros((rows, cols), dtype=np.int64)
        return haystack.window_sums(needle_width, needle_height)[:rows, :cols]

    def diff_map(self, haystack: IntegralImage, needle_width: int,
                 needle_height: int, needle_sum: int) -> np.ndarray:
        """Heuristic ``diff`` for every scanned position, indexed [y, x]."""
        return np.abs(self.window_sums(haystack, needle_width, needle_height) - needle_sum)

    def search(self, haystack: IntegralImage, needle_width: int,
               needle_height: int, needle_sum: int) -> CandidateList:
        """Scan the haystack row by row, left to right.

        Args:
            haystack: Summed-area table of the haystack.
            needle_width: Window width.
            needle_height: Window height.
            needle_sum: Channel sum of the whole needle.

        Returns:
            Up to ``capacity`` candidates, ascending by diff.  Empty when
            the needle does not fit inside the scan range.
        """
        if needle_width < 1 or needle_height < 1:
            raise ValueError(
                f"Needle size must be positive, got {needle_width}x{needle_height}"
            )
        shortlist = CandidateList(self._capacity)
        sums = self.window_sums(haystack, needle_width, needle_height)
        if sums.size == 0:
            return shortlist
        cols = sums.shape[1]
        diffs = np.abs(sums - needle_sum)

        # A position whose diff exceeds the capacity-th smallest diff always
        # has a full list of better entries ahead of it, so skip it.
        flat = diffs.ravel()
        if flat.size > self._capacity:
            cutoff = np.partition(flat, self._capacity - 1)[self._capacity - 1]
            keep = np.flatnonzero(flat <= cutoff)
        else:
            keep = np.arange(flat.size)

        for idx in keep:
            y, x = divmod(int(idx), cols)
            shortlist.insert(Candidate(int(flat[idx]), x, y, int(sums[y, x])))
        return shortlist


def search_candidates(haystack: IntegralImage, needle_width: int,
                      needle_height: int, needle_sum: int,
                      capacity: int = CANDIDATE_CAPACITY,
                      include_far_edge: bool = False) -> CandidateList:
    """Run a ``CandidateSearcher`` scan with the given settings."""
    searcher = CandidateSearcher(capacity, include_far_edge=include_far_edge)
    return searcher.search(haystack, needle_width, needle_height, needle_sum)
