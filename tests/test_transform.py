"""Tests for rigid body transforms."""

import math
import unittest

from robonav.core import Transform


class TestTransform(unittest.TestCase):
    """Transform construction, composition and distances."""

    def test_yaw_round_trip(self):
        for theta in (0.0, 0.5, math.pi / 2, -2.0, 3.0):
            tf = Transform.from_xy_theta(1.0, 2.0, theta=theta)
            self.assertAlmostEqual(tf.rotation_z, theta, places=9)

    def test_malformed_position_rejected(self):
        with self.assertRaises(ValueError):
            Transform((1.0, 2.0))
        with self.assertRaises(ValueError):
            Transform((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))

    def test_equality_is_element_wise(self):
        a = Transform.from_xy_theta(1.0, 2.0, theta=0.3, timestamp=4.0)
        b = Transform.from_xy_theta(1.0, 2.0, theta=0.3, timestamp=4.0)
        self.assertEqual(a, b)
        self.assertNotEqual(a, a.with_timestamp(5.0))

    def test_compose_rotates_then_translates(self):
        robot = Transform.from_xy_theta(1.0, 2.0, theta=math.pi / 2, timestamp=1.0)
        offset = Transform.from_xy_theta(0.5, 0.0, timestamp=3.0)
        ahead = robot * offset
        self.assertAlmostEqual(ahead.x, 1.0)
        self.assertAlmostEqual(ahead.y, 2.5)
        self.assertAlmostEqual(ahead.rotation_z, math.pi / 2)
        self.assertEqual(ahead.timestamp, 3.0)

    def test_inverse_gives_identity(self):
        tf = Transform.from_xy_theta(3.0, -1.0, 0.5, theta=1.2)
        identity = tf * tf.inverse()
        for value in identity.position:
            self.assertAlmostEqual(value, 0.0)
        self.assertAlmostEqual(identity.rotation_z, 0.0)

    def test_planar_distance_ignores_z(self):
        a = Transform.from_xy_theta(0.0, 0.0, 0.0)
        b = Transform.from_xy_theta(3.0, 4.0, 10.0)
        self.assertAlmostEqual(a.planar_distance_squared(b), 25.0)
        self.assertAlmostEqual(a.planar_distance_to(b), 5.0)

    def test_facing(self):
        tf = Transform.facing((1.0, 1.0), (1.0, 3.0))
        self.assertEqual(tf.xy, (1.0, 1.0))
        self.assertAlmostEqual(tf.rotation_z, math.pi / 2)


if __name__ == '__main__':
    unittest.main()
