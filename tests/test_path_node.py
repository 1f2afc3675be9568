"""Tests for the waypoint graph."""

import unittest

from robonav.core import Transform
from robonav.navigation import PathNode, build_graph, generate_plan
from robonav.navigation.path_node import (
    closest_node, connect_node, find_unreachable, prune_transforms
)


def line(count, spacing, y=0.0):
    return [Transform.from_xy_theta(i * spacing, y) for i in range(count)]


class TestPathNode(unittest.TestCase):

    def test_cannot_be_own_neighbor(self):
        node = PathNode(Transform())
        with self.assertRaises(ValueError):
            node.put_close_distance(node, 1.0)

    def test_negative_distance(self):
        a, b = PathNode(Transform()), PathNode(Transform())
        with self.assertRaises(ValueError):
            a.put_close_distance(b, -0.1)
        with self.assertRaises(ValueError):
            a.put_close_distance(None, 0.1)

    def test_null_transform(self):
        with self.assertRaises(ValueError):
            PathNode(None)

    def test_identity_hashing(self):
        a, b = PathNode(Transform()), PathNode(Transform())
        a.put_close_distance(b, 0.0)
        self.assertEqual(a.get_close_distance(b), 0.0)
        self.assertIsNone(b.get_close_distance(a))
        self.assertEqual(len({a, b}), 2)

    def test_close_distances_is_a_copy(self):
        a, b = PathNode(Transform()), PathNode(Transform())
        a.put_close_distance(b, 1.0)
        a.close_distances.clear()
        self.assertEqual(a.close_distance_count, 1)
        a.remove_close_distance(b)
        self.assertEqual(a.close_distance_count, 0)


class TestGraph(unittest.TestCase):

    def test_prune_transforms(self):
        transforms = line(11, 0.02)
        pruned = prune_transforms(transforms, 0.05)
        self.assertEqual([round(t.x, 2) for t in pruned], [0.0, 0.06, 0.12, 0.18])

    def test_build_graph_links_close_pairs(self):
        nodes = build_graph(line(4, 0.2), 0.25)
        self.assertEqual([n.close_distance_count for n in nodes], [1, 2, 2, 1])
        self.assertAlmostEqual(nodes[0].get_close_distance(nodes[1]), 0.2)
        self.assertAlmostEqual(nodes[1].get_close_distance(nodes[0]), 0.2)

    def test_disconnected_graph_warns(self):
        transforms = line(3, 0.2) + [Transform.from_xy_theta(5.0, 5.0)]
        with self.assertLogs('robonav.navigation.path_node', level='WARNING'):
            nodes = build_graph(transforms, 0.25)
        self.assertEqual(find_unreachable(nodes), [nodes[3]])

    def test_closest_node(self):
        nodes = build_graph(line(5, 0.2), 0.25)
        self.assertIs(closest_node(nodes, Transform.from_xy_theta(0.45, 0.1)), nodes[2])
        self.assertIsNone(closest_node(nodes, None))
        self.assertIsNone(closest_node([], Transform()))

    def test_connect_node(self):
        nodes = build_graph(line(3, 0.2), 0.25)
        far = PathNode(Transform.from_xy_theta(0.2, 1.0))
        connect_node(far, nodes, 0.25, force_nodes={nodes[0]})
        self.assertEqual(far.close_nodes, [nodes[0]])
        self.assertIsNotNone(nodes[0].get_close_distance(far))

    def test_generate_plan(self):
        nodes = build_graph(line(6, 0.2), 0.25)
        plan = generate_plan(nodes[0], nodes[5])
        self.assertEqual(plan, nodes)
        self.assertEqual(generate_plan(nodes[2], nodes[2]), [nodes[2]])

    def test_generate_plan_takes_shortest_route(self):
        # A square with a shortcut across one corner
        a, b, c, d = (PathNode(Transform.from_xy_theta(x, y))
                      for x, y in [(0, 0), (1, 0), (1, 1), (0, 1)])
        for n1, n2, dist in [(a, b, 1.0), (b, c, 1.0), (c, d, 1.0), (d, a, 0.9), (a, c, 1.5)]:
            n1.put_close_distance(n2, dist)
            n2.put_close_distance(n1, dist)
        self.assertEqual(generate_plan(a, c), [a, c])
        self.assertEqual(generate_plan(b, d), [b, a, d])

    def test_generate_plan_unreachable(self):
        nodes = build_graph([Transform(), Transform.from_xy_theta(3.0, 0.0)], 0.25)
        self.assertIsNone(generate_plan(nodes[0], nodes[1]))


if __name__ == '__main__':
    unittest.main()
