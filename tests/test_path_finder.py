"""Tests for the A* and Dijkstra grid path finders."""

import unittest

import numpy as np

from robonav.costmap import CostMap, CostMapPose, Source
from robonav.navigation import (
    AStarPathFinder, DijkstraPathFinder, PlannerType, make_path_finder
)

WALL = [
    [0, 127, 0, 0],
    [0, 127, 0, 0],
    [127, 127, 127, 127],
    [0, 127, 0, 0],
]

WALL_WITH_HOLE = [
    [0, 127, 0, 0],
    [0, 0, 0, 0],
    [127, 127, 127, 127],
    [0, 127, 0, 0],
]


def make_map(rows, lower_x=0, lower_y=0):
    return CostMap(Source.FLOORPLAN, 1.0, lower_x, lower_y, np.array(rows))


def cells(path):
    return [(p.x, p.y) for p in path]


class TestAStar(unittest.TestCase):

    def setUp(self):
        self.finder = AStarPathFinder()

    def plan(self, origin, target):
        return self.finder.compute_plan(CostMapPose(*origin), CostMapPose(*target))

    def test_no_map(self):
        self.assertIsNone(self.plan((0, 0), (1, 1)))
        self.finder.set_cost_map(CostMap(Source.FLOORPLAN, 1.0))
        self.assertIsNone(self.plan((0, 0), (1, 1)))

    def test_empty_grid(self):
        self.finder.set_cost_map(make_map(np.zeros((4, 4))))
        self.assertEqual(cells(self.plan((0, 0), (0, 3))), [(0, 0), (0, 1), (0, 2), (0, 3)])
        self.assertEqual(cells(self.plan((0, 0), (3, 3))), [(0, 0), (1, 1), (2, 2), (3, 3)])

    def test_same_cell(self):
        self.finder.set_cost_map(make_map(np.zeros((4, 4))))
        self.assertEqual(cells(self.plan((2, 1), (2, 1))), [(2, 1)])

    def test_out_of_bounds(self):
        self.finder.set_cost_map(make_map(np.zeros((4, 4))))
        self.assertIsNone(self.plan((-1, 0), (3, 3)))
        self.assertIsNone(self.plan((0, 0), (4, 0)))
        self.assertIsNone(self.plan((0, 0), (0, 7)))

    def test_obstacle_at_either_end(self):
        self.finder.set_cost_map(make_map(WALL))
        self.assertIsNone(self.plan((1, 0), (0, 0)))
        self.assertIsNone(self.plan((0, 0), (1, 0)))

    def test_wall_blocks_every_route(self):
        self.finder.set_cost_map(make_map(WALL))
        self.assertIsNone(self.plan((0, 0), (0, 3)))
        self.assertIsNone(self.plan((0, 0), (2, 0)))
        self.assertIsNone(self.plan((3, 1), (0, 1)))

    def test_hole_in_wall(self):
        self.finder.set_cost_map(make_map(WALL_WITH_HOLE))
        self.assertEqual(cells(self.plan((0, 0), (2, 0))), [(0, 0), (1, 1), (2, 0)])
        self.assertEqual(cells(self.plan((3, 1), (0, 1))), [(3, 1), (2, 1), (1, 1), (0, 1)])
        self.assertIsNone(self.plan((0, 0), (0, 3)))

    def test_offset_map(self):
        self.finder.set_cost_map(make_map(np.zeros((4, 4)), lower_x=-20, lower_y=-10))
        path = self.plan((-20, -10), (-17, -7))
        self.assertEqual(cells(path), [(-20, -10), (-19, -9), (-18, -8), (-17, -7)])
        self.assertIsNone(self.plan((0, 0), (-17, -7)))

    def test_path_cells_carry_resolution(self):
        self.finder.set_cost_map(CostMap(Source.FLOORPLAN, 0.05, 0, 0, np.zeros((3, 3))))
        path = self.plan((0, 0), (2, 2))
        self.assertTrue(all(p.resolution == 0.05 for p in path))
        self.assertTrue(path.is_valid())

    def test_planning_on_mutable_map_uses_snapshot(self):
        costmap = CostMap(Source.FLOORPLAN, 1.0, 0, 0, np.zeros((1, 3)), mutable=True)
        self.finder.set_cost_map(costmap)
        costmap.set_cost(1, 0, CostMap.OBSTACLE_COST)
        self.assertEqual(cells(self.plan((0, 0), (2, 0))), [(0, 0), (1, 0), (2, 0)])


class TestDijkstra(unittest.TestCase):

    def setUp(self):
        self.finder = DijkstraPathFinder()

    def plan(self, origin, target):
        return self.finder.compute_plan(CostMapPose(*origin), CostMapPose(*target))

    def test_around_single_obstacle(self):
        grid = np.zeros((3, 3))
        grid[0, 1] = 127
        self.finder.set_cost_map(make_map(grid))
        self.assertEqual(cells(self.plan((0, 0), (2, 0))), [(0, 0), (1, 1), (2, 0)])
        self.assertEqual(cells(self.plan((1, 1), (0, 2))), [(1, 1), (0, 2)])
        self.assertEqual(cells(self.plan((1, 1), (1, 1))), [(1, 1)])

    def test_over_vertical_wall(self):
        grid = np.zeros((5, 5))
        grid[1:5, 2] = 127
        self.finder.set_cost_map(make_map(grid))
        self.assertEqual(
            cells(self.plan((3, 4), (1, 4))),
            [(3, 4), (3, 3), (3, 2), (3, 1), (2, 0), (1, 1), (1, 2), (1, 3), (1, 4)]
        )

    def test_prefers_cheap_cells(self):
        rows = [[0, 0, 0, 0, 0]] + [[15, 15, 15, 15, 0] for _ in range(4)]
        self.finder.set_cost_map(make_map(rows))
        self.assertEqual(
            cells(self.plan((0, 0), (4, 4))),
            [(0, 0), (1, 0), (2, 0), (3, 0), (4, 1), (4, 2), (4, 3), (4, 4)]
        )


class TestFactory(unittest.TestCase):

    def test_make_path_finder(self):
        self.assertIsInstance(make_path_finder(PlannerType.ASTAR), AStarPathFinder)
        self.assertIsInstance(make_path_finder(PlannerType.DIJKSTRA), DijkstraPathFinder)


if __name__ == '__main__':
    unittest.main()
