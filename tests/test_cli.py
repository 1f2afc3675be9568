"""Tests for the headless simulation."""

import os
import shutil
import tempfile
import unittest

from robonav.cli import SimulatedRobot, main
from robonav.core import VelocityCommand

WORLD = """\
name: corridor
smoothed:
{waypoints}
points_of_interest:
  end: [2.0, 0.0]
"""


class TestSimulatedRobot(unittest.TestCase):

    def test_bumper_blocks_forward_motion(self):
        robot = SimulatedRobot(0.0, 0.0, 0.0, 0.2, obstacles=[(0.5, 0.0, 0.2)])
        self.assertTrue(robot.obstacle_ahead())
        robot.step(VelocityCommand(0.5, 0.0), 1.0)
        self.assertEqual(robot.x, 0.0)

    def test_obstacle_behind_is_ignored(self):
        robot = SimulatedRobot(0.0, 0.0, 0.0, 0.2, obstacles=[(-0.5, 0.0, 0.2)])
        self.assertFalse(robot.obstacle_ahead())
        robot.step(VelocityCommand(0.5, 0.0), 1.0)
        self.assertAlmostEqual(robot.x, 0.5)
        self.assertAlmostEqual(robot.distance_travelled, 0.5)


class TestMain(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        waypoints = "\n".join(f"  - [{0.1 * i:.1f}, 0.0]" for i in range(21))
        self.world = os.path.join(self.tmpdir, 'corridor.yaml')
        with open(self.world, 'w') as f:
            f.write(WORLD.format(waypoints=waypoints))

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_reaches_point_of_interest(self):
        self.assertEqual(main(['--world', self.world, '--poi', 'end']), 0)

    def test_reaches_explicit_goal(self):
        self.assertEqual(main(['--world', self.world, '--goal', '2.0', '0.0']), 0)

    def test_unknown_point_of_interest(self):
        self.assertEqual(main(['--world', self.world, '--poi', 'garage']), 1)

    def test_missing_world(self):
        missing = os.path.join(self.tmpdir, 'missing.yaml')
        self.assertEqual(main(['--world', missing, '--poi', 'end']), 2)


if __name__ == '__main__':
    unittest.main()
