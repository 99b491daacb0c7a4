#!/usr/bin/env python3
"""Tests for exact L1 refinement of the candidate shortlist."""

import numpy as np
import pytest

from imgseek.candidates import Candidate, CandidateList
from imgseek.refiner import (
    MatchResult, NOT_FOUND, Refiner, l1_distance, max_l1_distance,
)


def _shortlist(*positions, diff=1):
    lst = CandidateList()
    for x, y in positions:
        lst.insert(Candidate(diff, x, y, 0))
    return lst


class TestMatchResult:

    def test_not_found(self):
        """NOT_FOUND should have score 0, coordinates -1 and found False."""
        assert NOT_FOUND == MatchResult(0.0, -1, -1)
        assert not NOT_FOUND.found

    def test_found(self):
        """A result with coordinates should report found and its location."""
        r = MatchResult(0.5, 3, 0)
        assert r.found
        assert r.location == (3, 0)


class TestL1Distance:

    def test_identical_window_is_zero(self, random_haystack):
        """A window identical to the needle should have distance 0."""
        needle = random_haystack[4:9, 6:12]
        assert l1_distance(random_haystack, needle, 6, 4) == 0

    def test_known_distance(self, solid):
        """Distance should add absolute channel differences over the window."""
        hay = solid(4, 4, (10, 20, 30))
        needle = solid(2, 2, (13, 20, 25))
        # 4 pixels x (3 + 0 + 5)
        assert l1_distance(hay, needle, 1, 1) == 32

    def test_no_uint8_wraparound(self, solid):
        """Distances should not wrap around in uint8 arithmetic."""
        hay = solid(2, 2, (0, 0, 0))
        needle = solid(1, 1, (255, 255, 255))
        assert l1_distance(hay, needle, 0, 0) == 765

    def test_max_l1_distance(self):
        """max_l1_distance should be w * h * 255 * 3."""
        assert max_l1_distance(2, 3) == 2 * 3 * 255 * 3


class TestRefiner:

    def test_empty_shortlist(self, random_haystack):
        """An empty shortlist should give NOT_FOUND."""
        needle = random_haystack[:3, :3]
        assert Refiner().refine(random_haystack, needle, CandidateList()) == NOT_FOUND

    def test_zero_diff_shortcut_skips_pixels(self, solid):
        """A zero-diff first candidate should score 1.0 without a pixel check."""
        # Window at (0, 0) has the needle's channel sum but different
        # pixels; the shortcut still reports a perfect match there.
        hay = solid(4, 4, (0, 0, 0))
        hay[0, 0] = (255, 0, 0)
        needle = solid(1, 1, (0, 0, 255))
        lst = CandidateList()
        lst.insert(Candidate(0, 0, 0, 255))
        result = Refiner().refine(hay, needle, lst)
        assert result == MatchResult(1.0, 0, 0)

    def test_verify_exact_scores_collisions(self, solid):
        """verify_exact should score a zero-diff candidate by its pixels."""
        hay = solid(4, 4, (0, 0, 0))
        hay[0, 0] = (255, 0, 0)
        needle = solid(1, 1, (0, 0, 255))
        lst = CandidateList()
        lst.insert(Candidate(0, 0, 0, 255))
        result = Refiner(verify_exact=True).refine(hay, needle, lst)
        assert result.x == 0 and result.y == 0
        assert result.score == pytest.approx(1 - 510 / 765)

    def test_picks_minimum_l1(self, random_haystack):
        """The candidate with the smallest L1 distance should win."""
        needle = random_haystack[10:14, 20:25].copy()
        needle[0, 0] = 255 - needle[0, 0]
        lst = _shortlist((0, 0), (20, 10), (5, 5))
        result = Refiner().refine(random_haystack, needle, lst)
        assert (result.x, result.y) == (20, 10)
        min_s = l1_distance(random_haystack, needle, 20, 10)
        assert result.score == pytest.approx(1 - min_s / max_l1_distance(5, 4))
        assert result.score < 1.0

    def test_exact_pixel_match_scores_one(self, random_haystack):
        """An exact pixel match should score 1.0."""
        needle = random_haystack[3:8, 2:9]
        lst = _shortlist((0, 0), (2, 3), (9, 9))
        result = Refiner().refine(random_haystack, needle, lst)
        assert result == MatchResult(1.0, 2, 3)

    def test_stops_at_first_zero(self, solid):
        """Refinement should stop at the first zero-distance candidate."""
        hay = solid(6, 6, (50, 50, 50))
        needle = solid(2, 2, (50, 50, 50))
        lst = _shortlist((0, 0), (1, 1), (2, 2))
        result = Refiner().refine(hay, needle, lst)
        assert (result.x, result.y) == (0, 0)

    def test_tie_keeps_earliest_candidate(self, solid):
        """Equal distances should keep the earlier candidate."""
        hay = solid(6, 6, (50, 50, 50))
        needle = solid(2, 2, (60, 50, 50))
        lst = _shortlist((3, 1), (0, 0))
        result = Refiner().refine(hay, needle, lst)
        assert (result.x, result.y) == (3, 1)

    def test_score_decreases_with_distance(self, solid):
        """Score should fall strictly as the needle drifts from the window."""
        hay = solid(4, 4, (100, 100, 100))
        scores = []
        for delta in (0, 1, 10, 100, 155):
            needle = solid(2, 2, (100 + delta, 100, 100))
            lst = _shortlist((0, 0))
            scores.append(Refiner(verify_exact=True).refine(hay, needle, lst).score)
        assert scores[0] == 1.0
        assert all(a > b for a, b in zip(scores, scores[1:]))

    def test_worst_case_is_zero(self, solid):
        """Black against white should score 0.0 and still count as found."""
        hay = solid(3, 3, (0, 0, 0))
        needle = solid(2, 2, (255, 255, 255))
        result = Refiner().refine(hay, needle, _shortlist((0, 0)))
        assert result.score == 0.0
        assert result.found

    def test_accepts_plain_iterable(self, random_haystack):
        """refine should accept a plain list of candidates."""
        needle = random_haystack[0:2, 0:2]
        result = Refiner().refine(random_haystack, needle, [Candidate(3, 0, 0, 0)])
        assert result == MatchResult(1.0, 0, 0)
