"""Mesh cells and the arena that owns them.

Cells refer to their vertices and neighbors through integer handles into a
:class:`Mesh`: vertex handles index ``Mesh.points`` and neighbor handles index
``Mesh.cells``. Vertex membership is therefore decided by handle identity,
never by coordinate value.

Slot convention (clockwise vertices v0, v1, v2):

    neighbors[0] borders edge (v0, v1)
    neighbors[1] borders edge (v1, v2)
    neighbors[2] borders edge (v2, v0)
"""
from __future__ import annotations
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from .geometry import Point, barycentric, centroid, circumcenter, distance_sq_plane

__all__ = ['Cell', 'Mesh']


class Cell:
    """One triangle of the mesh with lazily cached derived geometry."""

    __slots__ = ('index', 'vertices', 'neighbors', 'stamp', 'alive',
                 '_points', '_center', '_circumcenter', '_radius_sq')

    def __init__(self, points: List[Point], index: int, vertices: Sequence[int],
                 neighbors: Sequence[Optional[int]] = (None, None, None)):
        self._points = points
        self.index = index
        self.vertices = list(vertices)
        self.neighbors = list(neighbors)
        self.stamp = -1
        self.alive = True
        self._center = None
        self._circumcenter = None
        self._radius_sq = None

    # -- vertex access -------------------------------------------------
    @property
    def points(self) -> Tuple[Point, Point, Point]:
        pts = self._points
        v = self.vertices
        return pts[v[0]], pts[v[1]], pts[v[2]]

    def set_vertex(self, i: int, handle: int) -> None:
        """Replace vertex ``i`` and drop every cached derived value."""
        self.vertices[i] = handle
        self._center = None
        self._circumcenter = None
        self._radius_sq = None

    def touches(self, handles: Iterable[int]) -> bool:
        """True if any of ``handles`` is a vertex of this cell."""
        v = self.vertices
        return any(h in v for h in handles)

    # -- derived geometry ----------------------------------------------
    def center(self) -> Point:
        if self._center is None:
            self._center = centroid(*self.points)
        return self._center

    def circumcenter(self) -> Point:
        if self._circumcenter is None:
            self._circumcenter = circumcenter(*self.points)
        return self._circumcenter

    def circumradius_sq(self) -> float:
        if self._radius_sq is None:
            self._radius_sq = distance_sq_plane(self.circumcenter(), self._points[self.vertices[0]])
        return self._radius_sq

    def circumradius(self) -> float:
        return math.sqrt(self.circumradius_sq())

    def distance_to_circumcenter(self, p) -> float:
        return distance_sq_plane(self.circumcenter(), p)

    def distance_to_center(self, p) -> float:
        return distance_sq_plane(self.center(), p)

    def barycentric(self, p) -> Tuple[float, float]:
        return barycentric(p, *self.points)

    def contains_point(self, p, tol: float = 0.0) -> bool:
        """Inclusive containment: points on an edge or vertex count as inside.

        ``tol`` widens the test by that much in barycentric units so that a
        point on a shared edge is not lost to round-off on both sides.
        """
        u, v = self.barycentric(p)
        return u >= -tol and v >= -tol and u + v <= 1.0 + tol

    # -- topology ------------------------------------------------------
    def neighbor_slot(self, other: int) -> int:
        """Slot holding neighbor ``other``; ValueError if it is not a neighbor."""
        return self.neighbors.index(other)

    def replace_neighbor(self, old: int, new: Optional[int]) -> None:
        self.neighbors[self.neighbor_slot(old)] = new

    def __repr__(self):
        pts = " ".join(str(p) for p in self.points)
        return f"Cell({self.index}: {pts})"


class Mesh:
    """Arena of vertices and cells addressed by stable integer handles.

    Cells are only ever appended; a cell replaced by a split is marked dead
    and left in place so handles stay valid.
    """

    def __init__(self):
        self.points: List[Point] = []
        self.cells: List[Cell] = []

    def add_point(self, point: Point) -> int:
        self.points.append(point)
        return len(self.points) - 1

    def add_cell(self, vertices: Sequence[int],
                 neighbors: Sequence[Optional[int]] = (None, None, None)) -> int:
        idx = len(self.cells)
        self.cells.append(Cell(self.points, idx, vertices, neighbors))
        return idx

    def retire(self, idx: int) -> None:
        cell = self.cells[idx]
        cell.alive = False
        cell.neighbors = [None, None, None]

    def relink(self, outer: Optional[int], old: int, new: int) -> None:
        """Point ``outer``'s back-reference at ``old`` to ``new`` (no-op for a missing neighbor)."""
        if outer is not None:
            self.cells[outer].replace_neighbor(old, new)

    def live_cells(self) -> List[Cell]:
        return [c for c in self.cells if c.alive]

    def __len__(self):
        return sum(1 for c in self.cells if c.alive)
