"""Tests for the planar geometry helpers."""

import math
import unittest

import numpy as np

from robonav.core import (
    wrap_angle, compute_curvature, closest_point_on_line, point_at_distance, draw_line_on_grid
)
from robonav.core.geometry import supercover_line


class TestAngles(unittest.TestCase):

    def test_wrap_angle_range(self):
        self.assertAlmostEqual(wrap_angle(3 * math.pi / 2), -math.pi / 2)
        self.assertAlmostEqual(wrap_angle(-3 * math.pi / 2), math.pi / 2)
        self.assertAlmostEqual(wrap_angle(math.pi), -math.pi)
        self.assertAlmostEqual(wrap_angle(0.25), 0.25)


class TestCurvature(unittest.TestCase):
    """compute_curvature sign convention and finiteness."""

    def test_point_straight_ahead(self):
        self.assertAlmostEqual(compute_curvature((0.0, 0.0), 0.0, (2.0, 0.0)), -1.0)
        self.assertAlmostEqual(compute_curvature((0.0, 0.0), math.pi / 2, (0.0, 0.5)), 0.0)

    def test_point_on_the_side(self):
        self.assertAlmostEqual(compute_curvature((0.0, 0.0), 0.0, (0.0, 1.0)), -2.0, places=6)

    def test_goal_on_robot_is_finite(self):
        kappa = compute_curvature((1.0, 1.0), 0.3, (1.0, 1.0))
        self.assertTrue(math.isfinite(kappa))
        self.assertEqual(kappa, 0.0)


class TestLines(unittest.TestCase):

    def test_projection(self):
        x, y = closest_point_on_line((0.0, 0.0), (10.0, 0.0), (3.0, 4.0))
        self.assertAlmostEqual(x, 3.0)
        self.assertAlmostEqual(y, 0.0)
        x, y = closest_point_on_line((10.0, 0.0), (0.0, 10.0), (0.0, 0.0))
        self.assertAlmostEqual(x, 5.0)
        self.assertAlmostEqual(y, 5.0)

    def test_projection_on_degenerate_line(self):
        self.assertEqual(closest_point_on_line((2.0, 2.0), (2.0, 2.0), (7.0, -1.0)), (2.0, 2.0))

    def test_point_at_distance(self):
        x, y = point_at_distance((0.0, 0.0), (1.0, 1.0), (0.0, 0.0), math.sqrt(2))
        self.assertAlmostEqual(x, 1.0)
        self.assertAlmostEqual(y, 1.0)
        self.assertEqual(point_at_distance((0.0, 5.0), (0.0, 0.0), (0.0, 3.0), 1.0), (0.0, 2.0))

    def test_supercover_covers_both_ends(self):
        cells = supercover_line((0, 0), (3, 1))
        self.assertEqual(cells[0], (0, 0))
        self.assertEqual(cells[-1], (3, 1))
        for (ax, ay), (bx, by) in zip(cells, cells[1:]):
            self.assertLessEqual(abs(ax - bx) + abs(ay - by), 2)

    def test_supercover_diagonal_through_corners(self):
        self.assertEqual(supercover_line((0, 0), (2, 2)), [(0, 0), (1, 1), (2, 2)])

    def test_draw_line_clips_to_grid(self):
        grid = np.zeros((3, 3), dtype=np.uint8)
        draw_line_on_grid(grid, (-2, 1), (5, 1), 0, 0, 127)
        self.assertEqual(grid[1].tolist(), [127, 127, 127])
        self.assertEqual(int(grid.sum()), 3 * 127)

    def test_draw_line_with_offset(self):
        grid = np.zeros((2, 2), dtype=np.uint8)
        draw_line_on_grid(grid, (10, 20), (10, 21), 10, 20, 50)
        self.assertEqual(grid[:, 0].tolist(), [50, 50])

    def test_draw_line_errors(self):
        with self.assertRaises(ValueError):
            draw_line_on_grid(np.zeros((0, 0), dtype=np.uint8), (0, 0), (1, 1), 0, 0, 1)
        with self.assertRaises(ValueError):
            draw_line_on_grid(np.zeros((2, 2), dtype=np.uint8), (0, 0), (1, 1), 0, 0, -1)


if __name__ == '__main__':
    unittest.main()
