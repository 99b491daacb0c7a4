#!/usr/bin/env python3
"""Tests for geometric shape detection."""

import math

import cv2
import numpy as np
import pytest

from imgseek.shapes import Shape, corner_cosine, find_shapes


def _canvas(size=200):
    return np.zeros((size, size, 3), dtype=np.uint8)


class TestCornerCosine:

    def test_right_angle(self):
        """A right angle should have cosine 0."""
        assert corner_cosine((1, 0), (0, 1), (0, 0)) == pytest.approx(0.0, abs=1e-9)

    def test_straight_line(self):
        """Opposite vectors should have cosine -1."""
        assert corner_cosine((1, 0), (-1, 0), (0, 0)) == pytest.approx(-1.0)

    def test_same_direction(self):
        """Parallel vectors should have cosine 1."""
        assert corner_cosine((2, 0), (5, 0), (0, 0)) == pytest.approx(1.0)

    def test_hexagon_corner(self):
        """A 120 degree corner should have cosine -0.5."""
        a = math.radians(120)
        assert corner_cosine((1, 0), (math.cos(a), math.sin(a)), (0, 0)) == pytest.approx(-0.5)

    def test_degenerate_vector_is_finite(self):
        """A zero-length vector should give 0, not NaN."""
        assert corner_cosine((0, 0), (1, 1), (0, 0)) == 0.0


class TestFindShapes:

    def test_blank_image_has_no_shapes(self):
        """A black image should contain no shapes."""
        assert find_shapes(_canvas()) == []

    def test_rectangle(self):
        """A filled rectangle should be found as a 4-point int32 polygon."""
        img = _canvas()
        cv2.rectangle(img, (40, 50), (150, 130), (255, 255, 255), -1)
        rects = [s for s in find_shapes(img) if s.kind == "rectangle"]
        assert rects
        for s in rects:
            assert s.points.shape == (4, 2)
            assert s.points.dtype == np.int32

    def test_triangle(self):
        """A filled triangle should be classified as a triangle."""
        img = _canvas()
        pts = np.array([[100, 20], [180, 170], [20, 170]], dtype=np.int32)
        cv2.fillPoly(img, [pts], (0, 200, 255))
        kinds = [s.kind for s in find_shapes(img)]
        assert "triangle" in kinds

    def test_small_blobs_ignored(self):
        """Blobs below the area threshold should be ignored."""
        img = _canvas()
        cv2.rectangle(img, (10, 10), (15, 15), (255, 255, 255), -1)
        assert find_shapes(img) == []

    def test_shape_record(self):
        """Shape should expose its kind and points."""
        s = Shape("triangle", np.zeros((3, 2), dtype=np.int32))
        assert s.kind == "triangle"
        assert len(s.points) == 3
