"""
Paths

An ordered, immutable sequence of path elements (grid cells or waypoint
nodes), from origin to target.
"""

from typing import Generic, Iterable, Iterator, Optional, Tuple, TypeVar

from ..costmap.costmap import CostMap

T = TypeVar('T')


class Path(Generic[T]):
    """
    Immutable ordered path.

    Two paths are equal when they hold equal elements in the same order.
    A path is valid when it links at least two elements.
    """

    __slots__ = ('_elements',)

    def __init__(self, elements: Iterable[T] = ()):
        self._elements: Tuple[T, ...] = tuple(elements)

    @property
    def elements(self) -> Tuple[T, ...]:
        return self._elements

    def is_valid(self) -> bool:
        return len(self._elements) > 1

    def first(self) -> Optional[T]:
        return self._elements[0] if self._elements else None

    def last(self) -> Optional[T]:
        return self._elements[-1] if self._elements else None

    def reversed(self) -> 'Path[T]':
        return Path(reversed(self._elements))

    def __len__(self) -> int:
        return len(self._elements)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Path(self._elements[index])
        return self._elements[index]

    def __iter__(self) -> Iterator[T]:
        return iter(self._elements)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Path):
            return NotImplemented
        return self._elements == other._elements

    def __hash__(self) -> int:
        return hash(self._elements)

    def __repr__(self) -> str:
        return f"Path({list(self._elements)})"


def is_path_through_obstacle(path: Optional[Path], costmap: Optional[CostMap]) -> bool:
    """
    True if any cell of a grid path lies on an obstacle of costmap.

    Missing or invalid paths, and missing or empty maps, are never blocked.
    """
    if path is None or not path.is_valid():
        return False
    if costmap is None or costmap.is_empty():
        return False
    return any(CostMap.is_obstacle(costmap.get_cost(cell.x, cell.y)) for cell in path)
