"""
Waypoint Graph

PathNodes wrap the transforms of a world and link every pair closer than a
connection distance, weighted by their planar distance. The path follower
searches this sparse graph instead of the cost map for long-horizon routes.

Nodes are hashed by identity: two nodes at the same transform are still
distinct vertices.
"""

import heapq
import logging
from collections import deque
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..core.transform import Transform

logger = logging.getLogger(__name__)


class PathNode:
    """A waypoint graph vertex with distances to its close neighbors."""

    def __init__(self, transform: Transform):
        if transform is None:
            raise ValueError("PathNode requires a transform")
        self._transform = transform
        self._close_distances: Dict['PathNode', float] = {}

    @property
    def transform(self) -> Transform:
        return self._transform

    def put_close_distance(self, node: 'PathNode', distance: float):
        """
        Record node as a neighbor at distance meters.

        Raises:
            ValueError: if node is this node, None, or distance is negative
        """
        if node is None:
            raise ValueError("Neighbor node cannot be None")
        if node is self:
            raise ValueError("A path node cannot be its own neighbor")
        if distance < 0:
            raise ValueError(f"Distance is less than 0: {distance}")
        self._close_distances[node] = distance

    def remove_close_distance(self, node: 'PathNode'):
        self._close_distances.pop(node, None)

    def clear_close_distances(self):
        self._close_distances.clear()

    def get_close_distance(self, node: 'PathNode') -> Optional[float]:
        return self._close_distances.get(node)

    @property
    def close_distances(self) -> List[Tuple['PathNode', float]]:
        """(neighbor, distance) pairs, as a copy."""
        return list(self._close_distances.items())

    @property
    def close_nodes(self) -> List['PathNode']:
        return list(self._close_distances.keys())

    @property
    def close_distance_count(self) -> int:
        return len(self._close_distances)

    def __repr__(self) -> str:
        return (f"PathNode({self._transform.x:.2f}, {self._transform.y:.2f}, "
                f"{len(self._close_distances)} neighbors)")


def prune_transforms(transforms: Iterable[Transform], pruning_distance: float) -> List[Transform]:
    """Drop every transform closer than pruning_distance to the previously kept one."""
    pruning_sq = pruning_distance * pruning_distance
    kept: List[Transform] = []
    for tf in transforms:
        if kept and kept[-1].planar_distance_squared(tf) < pruning_sq:
            continue
        kept.append(tf)
    return kept


def build_graph(transforms: Iterable[Transform], connection_distance: float) -> List[PathNode]:
    """
    Create fresh nodes for the transforms and connect every close pair.

    Args:
        transforms: Waypoint transforms, in order
        connection_distance: Pairs strictly closer than this (m) are linked

    Returns:
        The nodes, in the same order as the transforms
    """
    nodes = [PathNode(tf) for tf in transforms]
    connection_sq = connection_distance * connection_distance
    for i in range(len(nodes)):
        for k in range(i + 1, len(nodes)):
            dist_sq = nodes[i].transform.planar_distance_squared(nodes[k].transform)
            if dist_sq < connection_sq:
                dist = dist_sq ** 0.5
                nodes[i].put_close_distance(nodes[k], dist)
                nodes[k].put_close_distance(nodes[i], dist)

    unreachable = find_unreachable(nodes)
    if unreachable:
        logger.warning(f"[PathGraph] Node list is not complete, "
                       f"{len(unreachable)} of {len(nodes)} nodes are inaccessible")
    return nodes


def connect_node(node: PathNode, nodes: Iterable[PathNode], connection_distance: float,
                 force_nodes: Optional[Set[PathNode]] = None):
    """Link node to every other node within connection_distance, or listed in force_nodes."""
    force = force_nodes or set()
    connection_sq = connection_distance * connection_distance
    for other in nodes:
        if other is node:
            continue
        dist_sq = other.transform.planar_distance_squared(node.transform)
        if dist_sq < connection_sq or other in force:
            dist = dist_sq ** 0.5
            node.put_close_distance(other, dist)
            other.put_close_distance(node, dist)


def find_unreachable(nodes: List[PathNode]) -> List[PathNode]:
    """Nodes that cannot be reached from the first node (iterative BFS)."""
    if not nodes:
        return []
    visited = {nodes[0]}
    queue = deque([nodes[0]])
    while queue:
        node = queue.popleft()
        for neighbor in node.close_nodes:
            if neighbor not in visited:
                visited.add(neighbor)
                queue.append(neighbor)
    return [n for n in nodes if n not in visited]


def closest_node(nodes: Iterable[PathNode], target: Optional[Transform]) -> Optional[PathNode]:
    """Node with the smallest planar distance to target (linear scan), None if there is none."""
    if target is None:
        return None
    best: Optional[PathNode] = None
    best_sq = float('inf')
    for node in nodes:
        dist_sq = node.transform.planar_distance_squared(target)
        if dist_sq < best_sq:
            best = node
            best_sq = dist_sq
    return best


def generate_plan(current: PathNode, target: PathNode) -> Optional[List[PathNode]]:
    """
    Shortest node sequence from current to target (Dijkstra).

    Uses a binary heap with lazy deletion: a node may be pushed several times and
    stale entries are skipped when popped.

    Returns:
        Nodes from current to target inclusive, None if target is unreachable
    """
    if current is target:
        return [current]

    counter = 0
    scores: Dict[PathNode, float] = {current: 0.0}
    previous: Dict[PathNode, PathNode] = {}
    visited: Set[PathNode] = set()
    heap: List[Tuple[float, int, PathNode]] = [(0.0, counter, current)]

    while heap:
        score, _, node = heapq.heappop(heap)
        if node in visited:
            continue
        visited.add(node)
        if node is target:
            break
        for neighbor, dist in node.close_distances:
            candidate = score + dist
            if candidate < scores.get(neighbor, float('inf')):
                scores[neighbor] = candidate
                previous[neighbor] = node
                counter += 1
                heapq.heappush(heap, (candidate, counter, neighbor))

    if target not in visited:
        logger.info("[PathGraph] No route to target")
        return None

    path = [target]
    while path[-1] is not current:
        path.append(previous[path[-1]])
    path.reverse()
    return path
