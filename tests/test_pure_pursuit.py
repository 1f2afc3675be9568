"""Tests for the pure pursuit controller."""

import math
import unittest

from robonav.core import RobotModel, Transform
from robonav.costmap import CostMapPose
from robonav.navigation import Path, PurePursuit, PurePursuitVelocityGenerator, PursuitConfig


def grid_path(cells, resolution=1.0):
    return Path(CostMapPose(x, y, resolution) for x, y in cells)


class TestPurePursuit(unittest.TestCase):

    def setUp(self):
        self.pursuit = PurePursuit(lookahead_distance=0.5)
        self.origin = Transform.from_xy_theta(0.0, 0.0)

    def test_should_move(self):
        self.assertTrue(self.pursuit.should_move(self.origin, (0.3, 0.4)))
        self.assertTrue(self.pursuit.is_close_to_node(self.origin, (0.0, -0.2)))
        self.assertFalse(self.pursuit.should_move(self.origin, (0.4, 0.4)))
        self.assertTrue(self.pursuit.should_move(self.origin, (0.0, 0.4)))
        self.assertFalse(self.pursuit.should_move(self.origin, (0.0, 1.0)))

    def test_curvature_facing_forward(self):
        kappa = self.pursuit.compute_curvature_to_reach(self.origin, (10.0, 0.0), (0.0, 10.0))
        self.assertAlmostEqual(kappa, -0.2821, places=4)

    def test_curvature_facing_backward(self):
        robot = Transform.from_xy_theta(0.0, 0.0, theta=math.pi)
        kappa = self.pursuit.compute_curvature_to_reach(robot, (-10.0, 0.0), (0.0, 10.0))
        self.assertAlmostEqual(kappa, 0.2821, places=4)

    def test_curvature_aligned_with_segment(self):
        robot = Transform.from_xy_theta(0.0, 0.0, theta=math.pi / 2)
        for start, end in [((0.0, 10.0), (0.0, 20.0)), ((0.0, -10.0), (0.0, 10.0))]:
            kappa = self.pursuit.compute_curvature_to_reach(robot, start, end)
            self.assertAlmostEqual(kappa, 0.0, delta=1e-6)

    def test_curvature_on_degenerate_segment_is_finite(self):
        kappa = self.pursuit.compute_curvature_to_reach(self.origin, (1.0, 1.0), (1.0, 1.0))
        self.assertTrue(math.isfinite(kappa))

    def test_invalid_lookahead(self):
        with self.assertRaises(ValueError):
            PurePursuit(0.0)
        with self.assertRaises(ValueError):
            PursuitConfig(max_node_distance=0.0)


class TestVelocityGenerator(unittest.TestCase):

    def setUp(self):
        self.model = RobotModel(max_linear_speed=0.5, max_angular_speed=1.0)
        self.generator = PurePursuitVelocityGenerator(self.model, PursuitConfig())

    def test_short_path(self):
        robot = Transform.from_xy_theta(0.5, 0.5)
        self.assertIsNone(self.generator.compute_velocities(robot, None))
        self.assertIsNone(self.generator.compute_velocities(robot, grid_path([(0, 0)])))

    def test_advances_along_path(self):
        robot = Transform.from_xy_theta(0.5, 0.5, theta=math.pi / 2)
        path = grid_path([(0, 0), (0, 1), (0, 2), (0, 3)])

        cmd, remaining = self.generator.compute_velocities(robot, path)

        self.assertEqual(remaining, path[1:])
        self.assertAlmostEqual(cmd.angular, 0.0, delta=1e-6)
        self.assertAlmostEqual(cmd.linear, 0.5)

    def test_slows_down_on_last_segment(self):
        robot = Transform.from_xy_theta(0.5, 0.0, theta=math.pi / 2)
        path = grid_path([(0, 0), (0, 1)])

        cmd, remaining = self.generator.compute_velocities(robot, path)

        # Last segment: the head is kept even though it is within lookahead
        self.assertEqual(remaining, path)
        self.assertAlmostEqual(cmd.linear, 0.25)

    def test_angular_speed_clamped(self):
        robot = Transform.from_xy_theta(0.5, 0.5)
        cmd, _ = self.generator.compute_velocities(robot, grid_path([(0, 0), (1, 0)]))
        self.assertEqual(cmd.angular, -1.0)
        self.assertEqual(cmd.linear, 0.0)


if __name__ == '__main__':
    unittest.main()
