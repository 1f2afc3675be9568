"""Tests for the cost map manager."""

import time
import unittest

import numpy as np

from robonav.costmap import (
    CostMap, CostMapConfig, CostMapGeometry, CostMapManager, GeometryCostMap, InflationType, Source
)


class TestCostMapConfig(unittest.TestCase):

    def test_inflation_type_from_string(self):
        config = CostMapConfig(inflation_type='factor_radius')
        self.assertEqual(config.inflation_type, InflationType.FACTOR_RADIUS)

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            CostMapConfig(resolution=0.0)
        with self.assertRaises(ValueError):
            CostMapConfig(inflation_factor=-1.0)
        with self.assertRaises(ValueError):
            CostMapConfig(inflation_type="circle")


class TestCostMapManager(unittest.TestCase):

    def setUp(self):
        self.manager = CostMapManager(CostMapConfig(resolution=1.0), robot_radius=1.0)

    def test_nothing_published_without_sources(self):
        self.assertIsNone(self.manager.recompute())
        self.assertIsNone(self.manager.get_published())

    def test_static_map_is_inflated_and_published(self):
        grid = np.zeros((5, 5))
        grid[2, 2] = CostMap.OBSTACLE_COST
        published = []
        self.manager.on_publish(published.append)

        self.manager.set_costmap(CostMap(Source.FLOORPLAN, 1.0, 0, 0, grid))
        self.assertTrue(self.manager.is_dirty)
        costmap = self.manager.recompute()

        self.assertFalse(self.manager.is_dirty)
        self.assertIs(self.manager.get_published(), costmap)
        self.assertEqual(published, [costmap])
        self.assertFalse(costmap.is_mutable())
        self.assertEqual(costmap.get_cost(1, 1), CostMap.OBSTACLE_COST)
        self.assertEqual(costmap.get_cost(0, 0), 0)

    def test_live_source_marks_dirty(self):
        bumper = GeometryCostMap(Source.BUMPER, 1.0, robot_radius=0.0)
        self.manager.add_source(bumper)
        self.manager.recompute()
        self.assertFalse(self.manager.is_dirty)

        bumper.update(0.0, [CostMapGeometry.from_points([(3.5, 3.5)], expire_time=1.0)])
        self.assertTrue(self.manager.is_dirty)
        costmap = self.manager.recompute()
        self.assertEqual(costmap.get_cost(3, 3), CostMap.OBSTACLE_COST)

    def test_remove_source(self):
        self.manager.set_costmap(CostMap(Source.FLOORPLAN, 1.0, 0, 0, np.zeros((2, 2))))
        self.manager.recompute()
        self.manager.remove_source(Source.FLOORPLAN)
        self.assertIsNone(self.manager.recompute())

    def test_background_thread(self):
        self.manager.set_costmap(CostMap(Source.FLOORPLAN, 1.0, 0, 0, np.zeros((2, 2))))
        self.manager.start(interval=0.01)
        try:
            deadline = time.time() + 2.0
            while self.manager.get_published() is None and time.time() < deadline:
                time.sleep(0.01)
        finally:
            self.manager.stop()
        self.assertIsNotNone(self.manager.get_published())


if __name__ == '__main__':
    unittest.main()
