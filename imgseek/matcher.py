"""TemplateMatcher — locate a needle image inside a haystack image.

Pipeline:
1. Build summed-area tables for haystack and needle.
2. Scan every needle-sized haystack window, keeping the ``capacity``
   windows whose channel sum is closest to the needle's.
3. Re-score that shortlist by exact L1 pixel distance.

Usage:
    result = match(haystack, needle)
    if result.found:
        print(result.score, result.x, result.y)

    matcher = TemplateMatcher(MatchParams(verify_exact=True))
    result = matcher.match(haystack, needle)
"""

import json
import sys
from dataclasses import asdict, dataclass, fields
from typing import Optional, Union

import numpy as np

from ._constants import CANDIDATE_CAPACITY
from .candidates import CandidateList, CandidateSearcher
from .image import Image, InvalidInput
from .integral_image import IntegralImage
from .refiner import MatchResult, NOT_FOUND, Refiner

__all__ = ["MatchParams", "TemplateMatcher", "match"]


@dataclass
class MatchParams:
    """Tunable matcher settings.

    Defaults reproduce the reference behavior: a 50-entry shortlist, the
    last row/column of placements left unscanned, and a zero sum
    difference accepted without pixel verification.
    """
    capacity: int = CANDIDATE_CAPACITY
    include_far_edge: bool = False
    verify_exact: bool = False
    verbose: bool = False

    def __post_init__(self):
        if isinstance(self.capacity, bool) or not isinstance(self.capacity, int):
            raise ValueError(f"capacity must be an integer, got {self.capacity!r}")
        if self.capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {self.capacity}")
        for name in ("include_far_edge", "verify_exact", "verbose"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ValueError(f"{name} must be true or false, got {value!r}")

    @classmethod
    def from_dict(cls, data: dict) -> "MatchParams":
        """Build params from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(
                f"Unknown match parameter(s): {', '.join(unknown)}. "
                f"Expected any of: {', '.join(sorted(known))}"
            )
        return cls(**data)

    @classmethod
    def from_json(cls, path: str) -> "MatchParams":
        """Load params from a JSON file holding a single object."""
        with open(path, "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object, got {type(data).__name__}")
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        """Plain-dict form, suitable for ``json.dump`` and ``from_dict``."""
        return asdict(self)


class TemplateMatcher:
    """Integral-image prefilter followed by exact L1 refinement."""

    def __init__(self, params: Optional[MatchParams] = None):
        if params is None:
            params = MatchParams()
        self._params = params
        self._searcher = CandidateSearcher(
            params.capacity, include_far_edge=params.include_far_edge)
        self._refiner = Refiner(verify_exact=params.verify_exact)
        self._last_candidates: Optional[CandidateList] = None

    @property
    def params(self) -> MatchParams:
        return self._params

    @property
    def last_candidates(self) -> Optional[CandidateList]:
        """Shortlist produced by the most recent ``match()`` call."""
        return self._last_candidates

    def match(self, haystack: Union[Image, np.ndarray],
              needle: Union[Image, np.ndarray]) -> MatchResult:
        """Find the haystack window most similar to ``needle``.

        Args:
            haystack: Image to search, (H, W, 3).
            needle: Reference image, (h, w, 3).

        Returns:
            MatchResult.  ``NOT_FOUND`` (score 0, coordinates -1) when the
            needle does not fit inside the scanned range.

        Raises:
            InvalidInput: If either image is empty or not 3-channel.
        """
        haystack = _as_image(haystack, "haystack")
        needle = _as_image(needle, "needle")

        hay_sum = IntegralImage.build(haystack)
        needle_sum = IntegralImage.build(needle)
        ns = needle_sum.total

        if self._params.verbose:
            print(f"  haystack {haystack.width}x{haystack.height} total={hay_sum.total}, "
                  f"needle {needle.width}x{needle.height} total={ns}", file=sys.stderr)

        candidates = self._searcher.search(hay_sum, needle.width, needle.height, ns)
        self._last_candidates = candidates

        if self._params.verbose:
            if candidates:
                print(f"  candidates: {len(candidates)} "
                      f"diff=[{candidates.best.diff}, {candidates.worst.diff}]",
                      file=sys.stderr)
            else:
                print("  candidates: none (needle does not fit)", file=sys.stderr)

        if not candidates:
            return NOT_FOUND

        result = self._refiner.refine(haystack, needle, candidates)

        if self._params.verbose:
            print(f"  result: score={result.score:.6f} at ({result.x}, {result.y})",
                  file=sys.stderr)
        return result


def match(haystack: Union[Image, np.ndarray], needle: Union[Image, np.ndarray],
          params: Optional[MatchParams] = None) -> MatchResult:
    """Locate ``needle`` in ``haystack`` with a one-off TemplateMatcher."""
    return TemplateMatcher(params).match(haystack, needle)


def _as_image(image, name: str) -> Image:
    try:
        return Image.from_array(image)
    except InvalidInput as e:
        raise InvalidInput(f"Invalid {name}: {e}") from e
