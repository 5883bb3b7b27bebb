"""Incremental Delaunay triangulation engine.

Points are inserted one at a time into a mesh seeded with a single oversized
bounding triangle. Every insertion runs the full cycle

    locate -> split (1->3, or 2->4 when the point lands on an edge) -> repair

where repair flips edges until no cell has a neighbor vertex strictly inside
its circumcircle (within a relative tolerance). Cells touching one of the
three bounding vertices stay in the mesh but are filtered out of harvests.

Example
-------
    >>> tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    >>> tri.insert([(5, 5, 0), (1, 1, 0), (9, 1, 0), (5, 9, 0)])
    >>> len(tri.collect())
    3
"""
from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import TriangulationConfig
from .errors import (CoincidentPointError, DegenerateGeometryError, DuplicatePointError, LocationFailure,
                     MeshInvariantError, PreconditionError, TriangulationError)
from .geometry import Point, bounding_triangle, orient
from .locator import find_containing_cell
from .logging_utils import get_logger
from .mesh import Cell, Mesh
from .stats import InsertStats

__all__ = ['DelaunayTriangulation', 'InsertionAnomaly']

# Errors after which a batch insert skips the point and carries on
_RECOVERABLE = (LocationFailure, DegenerateGeometryError, PreconditionError)


@dataclass
class InsertionAnomaly:
    """A point skipped by a batch :meth:`DelaunayTriangulation.insert`."""
    position: int
    point: Point
    error: TriangulationError


def _fan_triples(verts: Sequence[int], p: int) -> List[List[int]]:
    """Vertex lists of the three cells replacing ``verts`` around an interior point ``p``."""
    v0, v1, v2 = verts
    return [[v0, v1, p], [p, v1, v2], [v0, p, v2]]


def _half_triples(verts: Sequence[int], k: int, p: int) -> List[List[int]]:
    """Vertex lists of the two halves of ``verts`` when ``p`` splits its edge at slot ``k``."""
    xk, xk1, xk2 = verts[k], verts[(k + 1) % 3], verts[(k + 2) % 3]
    return [[xk, p, xk2], [p, xk1, xk2]]


def _off_index(verts: Sequence[int], other: Sequence[int]) -> Optional[int]:
    """Index in ``verts`` of the first vertex handle absent from ``other``."""
    for i, v in enumerate(verts):
        if v not in other:
            return i
    return None


class DelaunayTriangulation:
    """Delaunay triangulation of a growing planar point set.

    Parameters
    ----------
    min_x, max_x, min_y, max_y : float
        Box every future point is expected to lie in. Points outside it may
        still be accepted as long as the bounding triangle contains them.
    config : TriangulationConfig, optional

    Attributes
    ----------
    mesh : Mesh
        Arena holding all vertices (the three bounding vertices first) and
        all cells ever created.
    current : int
        Most recently created cell; start of every search.
    anomalies : list of InsertionAnomaly
        Points skipped by batch inserts.
    stats : InsertStats
    """

    def __init__(self, min_x: float, max_x: float, min_y: float, max_y: float,
                 config: Optional[TriangulationConfig] = None):
        self.logger = get_logger(f'dtmesh.triangulation.{self.__class__.__name__}')
        self.config = config or TriangulationConfig()
        self.bounds = (float(min_x), float(max_x), float(min_y), float(max_y))
        self.mesh = Mesh()
        corners = bounding_triangle(*self.bounds, slack=self.config.slack)
        self.bounding_handles: Tuple[int, int, int] = tuple(self.mesh.add_point(p) for p in corners)
        self.current: int = self.mesh.add_cell(self.bounding_handles)
        # A collapsed box makes the root itself degenerate; nothing can be inserted then.
        self.mesh.cells[self.current].circumcenter()
        self._generation = 0
        self._planar_index: Dict[Tuple[float, float], int] = {}
        self.anomalies: List[InsertionAnomaly] = []
        self.stats = InsertStats()
        self.logger.debug('bounding triangle %s %s %s for box %s', *corners, self.bounds)

    # ------------------------------------------------------------------
    # read access
    # ------------------------------------------------------------------
    @property
    def bounding_vertices(self) -> Tuple[Point, Point, Point]:
        pts = self.mesh.points
        return tuple(pts[h] for h in self.bounding_handles)

    @property
    def vertices(self) -> List[Point]:
        """Inserted points in insertion order (bounding vertices excluded)."""
        return self.mesh.points[len(self.bounding_handles):]

    @property
    def num_vertices(self) -> int:
        return len(self.mesh.points) - len(self.bounding_handles)

    def __len__(self):
        return self.num_vertices

    def vertex_index(self, handle: int) -> int:
        """Public vertex index (position in :attr:`vertices`) of a mesh handle."""
        return handle - len(self.bounding_handles)

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    # ------------------------------------------------------------------
    # insertion
    # ------------------------------------------------------------------
    def insert(self, points) -> None:
        """Insert points in order, each settling completely before the next.

        ``points`` is anything numpy turns into an (N, 2) or (N, 3) float
        array; a missing z is 0. Points that cannot be inserted (location
        failure, degenerate geometry, duplicate or non-finite coordinates) are
        logged, appended to :attr:`anomalies` and skipped, unless
        ``config.strict`` is set, in which case the error propagates.
        """
        arr = np.asarray(points, dtype=np.float64)
        if arr.size == 0:
            return
        if arr.ndim == 1:
            arr = arr.reshape(1, -1)
        if arr.ndim != 2 or arr.shape[1] not in (2, 3):
            raise ValueError(f"expected an (N, 2) or (N, 3) array of points, got shape {arr.shape}")
        has_z = arr.shape[1] == 3
        skipped = 0
        for i, row in enumerate(arr):
            x, y = float(row[0]), float(row[1])
            z = float(row[2]) if has_z else 0.0
            try:
                self.insert_point(x, y, z)
            except _RECOVERABLE as exc:
                if self.config.strict:
                    raise
                skipped += 1
                self.anomalies.append(InsertionAnomaly(i, Point(x, y, z), exc))
                if self.config.log_anomalies:
                    self.logger.warning('insert: skipped point %d %s: %s', i, Point(x, y, z), exc)
        self.logger.debug('insert: batch of %d done, skipped=%d vertices=%d',
                          arr.shape[0], skipped, self.num_vertices)

    def insert_point(self, x: float, y: float, z: float = 0.0) -> int:
        """Insert one point and return its vertex index.

        Raises
        ------
        PreconditionError
            Non-finite coordinates, or (as DuplicatePointError) a vertex
            with the same x and y but another z already exists.
        LocationFailure
            No cell contains the point (it lies outside the bounding triangle).
        DegenerateGeometryError
            The point repeats a vertex (CoincidentPointError), falls on one
            within ``config.edge_tolerance``, or would create a cell that is
            not clockwise. The mesh is untouched in all these cases.
        MeshInvariantError
            Splitting or repair failed after the mesh was modified.
        """
        stats = self.stats
        stats.attempts += 1
        t0 = time.perf_counter()
        try:
            handle = self._insert(Point(float(x), float(y), float(z)))
        except LocationFailure:
            stats.fail += 1
            stats.location_failures += 1
            raise
        except DegenerateGeometryError:
            stats.fail += 1
            stats.degenerate_rejects += 1
            raise
        except PreconditionError:
            stats.fail += 1
            stats.precondition_rejects += 1
            raise
        except Exception:
            stats.fail += 1
            raise
        finally:
            stats.record_time(time.perf_counter() - t0)
        stats.success += 1
        return self.vertex_index(handle)

    def _insert(self, point: Point) -> int:
        if not (math.isfinite(point.x) and math.isfinite(point.y) and math.isfinite(point.z)):
            raise PreconditionError(f"point {point} has non-finite coordinates")
        key = (point.x, point.y)
        existing = self._planar_index.get(key)
        if existing is not None:
            if self.vertices[existing].z == point.z:
                raise CoincidentPointError(point, existing)
            raise DuplicatePointError(point, existing)

        idx = find_containing_cell(self.mesh, self.current, point, self._next_generation(),
                                   self.config.edge_tolerance)
        if idx is None:
            raise LocationFailure(point)
        idx, slot = self._classify(idx, point)
        cell = self.mesh.cells[idx]
        u, v = cell.barycentric(point)
        tol = self.config.edge_tolerance
        if sum(1 for w in (1.0 - u - v, u, v) if w <= tol) > 1:
            raise DegenerateGeometryError(f"point {point} coincides with a vertex of {cell!r}")

        # every cell the insertion creates must be clockwise before anything is touched
        p = len(self.mesh.points)
        if slot is None:
            planned = _fan_triples(cell.vertices, p)
        else:
            planned = _half_triples(cell.vertices, slot, p)
            other = cell.neighbors[slot]
            if other is not None:
                j = self.mesh.cells[other].neighbor_slot(idx)
                planned += _half_triples(self.mesh.cells[other].vertices, j, p)
        self._check_clockwise(planned, point)

        handle = self.mesh.add_point(point)
        try:
            if slot is not None:
                new_cells = self._split_edge(idx, slot, handle)
                self.stats.edge_splits += 1
            else:
                new_cells = self._split(idx, handle)
                self.stats.splits += 1
            self.current = new_cells[0]
            flips = self._repair(new_cells)
        except _RECOVERABLE as exc:
            raise MeshInvariantError(f"inserting {point} failed after the mesh was modified: {exc}") from exc
        self._planar_index[key] = self.vertex_index(handle)
        self.stats.flips += flips
        self.logger.debug('insert %s: cell=%d on_edge=%s flips=%d', point, idx, slot is not None, flips)
        return handle

    def _edge_side(self, cell: Cell, slot: int, point) -> float:
        """Orientation of ``point`` against edge ``slot`` of ``cell``; negative on the cell's side.

        The edge is evaluated with its endpoints in handle order so the two
        cells sharing it always see exactly opposite signs.
        """
        a = cell.vertices[slot]
        b = cell.vertices[(slot + 1) % 3]
        pts = self.mesh.points
        if a < b:
            return orient(pts[a], pts[b], point)
        return -orient(pts[b], pts[a], point)

    def _classify(self, idx: int, point) -> Tuple[int, Optional[int]]:
        """Settle which cell holds ``point`` and whether it lies on one of its edges.

        The locator accepts cells within ``edge_tolerance``; here the exact
        edge sides decide. A point strictly outside an edge moves the walk to
        the neighbor across it. Returns ``(cell, slot)`` with ``slot`` None
        for a strictly interior point.
        """
        cells = self.mesh.cells
        gen = self._next_generation()
        while True:
            cell = cells[idx]
            if cell.stamp == gen:
                raise DegenerateGeometryError(f"edge tests around cell {idx} disagree on where {point} lies")
            cell.stamp = gen
            sides = [self._edge_side(cell, k, point) for k in range(3)]
            outside = [k for k in range(3) if sides[k] > 0.0]
            if outside:
                nb = cell.neighbors[outside[0]]
                if nb is None:
                    raise LocationFailure(point)
                idx = nb
                continue
            on_edge = [k for k in range(3) if sides[k] == 0.0]
            if len(on_edge) > 1:
                raise DegenerateGeometryError(f"point {point} coincides with a vertex of {cell!r}")
            return idx, (on_edge[0] if on_edge else None)

    def _check_clockwise(self, triples, point) -> None:
        pts = self.mesh.points
        n = len(pts)
        for tri in triples:
            a, b, c = (pts[h] if h < n else point for h in tri)
            if not orient(a, b, c) < 0.0:
                raise DegenerateGeometryError(f"inserting {point} would create a degenerate cell")

    def _split(self, idx: int, p: int) -> List[int]:
        """Replace cell ``idx`` by three cells sharing the new vertex ``p``."""
        mesh = self.mesh
        parent = mesh.cells[idx]
        n0, n1, n2 = parent.neighbors
        a = len(mesh.cells)
        b, c = a + 1, a + 2
        t0, t1, t2 = _fan_triples(parent.vertices, p)
        mesh.add_cell(t0, [n0, b, c])
        mesh.add_cell(t1, [a, n1, c])
        mesh.add_cell(t2, [a, b, n2])
        mesh.relink(n0, idx, a)
        mesh.relink(n1, idx, b)
        mesh.relink(n2, idx, c)
        mesh.retire(idx)
        return [a, b, c]

    def _split_half(self, idx: int, k: int, p: int) -> Tuple[int, int]:
        """Split cell ``idx`` along the segment from ``p`` (on edge slot ``k``) to the opposite vertex.

        Returns (first, second): ``first`` owns the half edge starting at
        vertex k, ``second`` the half ending at vertex k+1; both keep slot 0
        open for the cell across the split edge.
        """
        mesh = self.mesh
        cell = mesh.cells[idx]
        n_right = cell.neighbors[(k + 1) % 3]
        n_left = cell.neighbors[(k + 2) % 3]
        first = len(mesh.cells)
        second = first + 1
        t_first, t_second = _half_triples(cell.vertices, k, p)
        mesh.add_cell(t_first, [None, second, n_left])
        mesh.add_cell(t_second, [None, n_right, first])
        mesh.relink(n_left, idx, first)
        mesh.relink(n_right, idx, second)
        return first, second

    def _split_edge(self, idx: int, k: int, p: int) -> List[int]:
        """Split the edge at slot ``k`` of cell ``idx`` and both cells sharing it."""
        mesh = self.mesh
        cells = mesh.cells
        cell = cells[idx]
        other = cell.neighbors[k]
        if other is not None:
            j = cells[other].neighbor_slot(idx)
            ov = cells[other].vertices
            if ov[j] != cell.vertices[(k + 1) % 3] or ov[(j + 1) % 3] != cell.vertices[k]:
                raise MeshInvariantError(f"cells {idx} and {other} disagree on their shared edge")
        c1, c2 = self._split_half(idx, k, p)
        mesh.retire(idx)
        if other is None:
            return [c1, c2]
        d1, d2 = self._split_half(other, j, p)
        mesh.retire(other)
        cells[c1].neighbors[0] = d2
        cells[d2].neighbors[0] = c1
        cells[c2].neighbors[0] = d1
        cells[d1].neighbors[0] = c2
        return [c1, c2, d1, d2]

    # ------------------------------------------------------------------
    # repair
    # ------------------------------------------------------------------
    def _violates(self, cell: Cell, other: Cell) -> bool:
        """True if the edge shared by ``cell`` and ``other`` is not locally Delaunay.

        The padding is relative to each circle, so a sliver's huge circle can
        hide a violation that the other side sees clearly; both circles are
        tested.
        """
        return self._encroaches(cell, other) or self._encroaches(other, cell)

    def _encroaches(self, cell: Cell, other: Cell) -> bool:
        """True if a vertex of ``other`` not shared with ``cell`` lies inside its circumcircle."""
        eps = self.config.incircle_tolerance
        r2 = cell.circumradius_sq()
        own = cell.vertices
        pts = self.mesh.points
        for h in other.vertices:
            if h in own:
                continue
            d = cell.distance_to_circumcenter(pts[h])
            if d + eps * abs(d) < r2:
                return True
        return False

    def _repair(self, seeds: Sequence[int]) -> int:
        """Flip edges until no cell reachable from ``seeds`` violates the Delaunay condition.

        Worklist form of the classic recursion: after a flip the neighbor is
        repaired first, then the cell is re-scanned from its first slot.
        Returns the number of flips performed.
        """
        cells = self.mesh.cells
        stack = list(reversed(seeds))
        flips = 0
        while stack:
            idx = stack.pop()
            cell = cells[idx]
            for nb in cell.neighbors:
                if nb is None or not self._violates(cell, cells[nb]):
                    continue
                if not self._flip_keeps_orientation(idx, nb):
                    self.logger.debug('repair: edge between cells %d and %d not flippable', idx, nb)
                    continue
                self._flip(idx, nb)
                flips += 1
                stack.append(idx)
                stack.append(nb)
                break
        return flips

    def _flip_frame(self, a: int, b: int) -> Tuple[int, int, int, int]:
        """Return ``(ia, ib, sa, sb)``: off-vertex indices and shared-edge slots of cells ``a`` and ``b``."""
        cells = self.mesh.cells
        ca, cb = cells[a], cells[b]
        ia = _off_index(ca.vertices, cb.vertices)
        ib = _off_index(cb.vertices, ca.vertices)
        if ia is None or ib is None:
            raise MeshInvariantError(f"cannot flip cells {a} and {b}: they do not share exactly one edge")
        sa = (ia + 1) % 3
        sb = (ib + 1) % 3
        if ca.neighbors[sa] != b or cb.neighbors[sb] != a or cb.vertices[sb] != ca.vertices[(ia + 2) % 3]:
            raise MeshInvariantError(f"cells {a} and {b} are not consistently linked across their shared edge")
        return ia, ib, sa, sb

    def _flip_keeps_orientation(self, a: int, b: int) -> bool:
        """True if flipping the edge of ``a`` and ``b`` leaves both cells clockwise."""
        cells = self.mesh.cells
        pts = self.mesh.points
        ia, ib, sa, sb = self._flip_frame(a, b)
        new_a = list(cells[a].vertices)
        new_b = list(cells[b].vertices)
        new_a[sa] = cells[b].vertices[ib]
        new_b[sb] = cells[a].vertices[ia]
        return all(orient(pts[t[0]], pts[t[1]], pts[t[2]]) < 0.0 for t in (new_a, new_b))

    def _flip(self, a: int, b: int) -> None:
        """Replace the edge shared by cells ``a`` and ``b`` with the opposite diagonal.

        Both cells are mutated in place: each exchanges one vertex and two
        neighbor slots, and the two outer neighbors that change owner get
        their back-references rewired.
        """
        cells = self.mesh.cells
        ca, cb = cells[a], cells[b]
        ia, ib, sa, sb = self._flip_frame(a, b)
        off_a = ca.vertices[ia]
        off_b = cb.vertices[ib]
        outer_a = ca.neighbors[ia]
        outer_b = cb.neighbors[ib]
        ca.set_vertex(sa, off_b)
        cb.set_vertex(sb, off_a)
        ca.neighbors[ia] = b
        ca.neighbors[sa] = outer_b
        cb.neighbors[ib] = a
        cb.neighbors[sb] = outer_a
        self.mesh.relink(outer_a, a, b)
        self.mesh.relink(outer_b, b, a)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def locate(self, x: float, y: float) -> Cell:
        """Return a cell containing (x, y); LocationFailure if there is none."""
        point = Point(float(x), float(y))
        idx = find_containing_cell(self.mesh, self.current, point, self._next_generation())
        if idx is None:
            raise LocationFailure(point)
        return self.mesh.cells[idx]

    def collect(self) -> List[Cell]:
        """All cells not touching a bounding vertex.

        Phase A walks depth first from :attr:`current` to the first such
        cell; phase B then expands breadth first over the whole mesh from it,
        accepting every cell not touching a bounding vertex. Both phases use
        explicit containers and a fresh generation each.
        """
        cells = self.mesh.cells
        bounding = self.bounding_handles

        gen = self._next_generation()
        root = None
        stack = [self.current]
        cells[self.current].stamp = gen
        while stack:
            idx = stack.pop()
            if not cells[idx].touches(bounding):
                root = idx
                break
            for nb in cells[idx].neighbors:
                if nb is not None and cells[nb].stamp != gen:
                    cells[nb].stamp = gen
                    stack.append(nb)
        if root is None:
            return []

        gen = self._next_generation()
        harvested = []
        queue = deque([root])
        cells[root].stamp = gen
        while queue:
            cell = cells[queue.popleft()]
            if not cell.touches(bounding):
                harvested.append(cell)
            for nb in cell.neighbors:
                if nb is not None and cells[nb].stamp != gen:
                    cells[nb].stamp = gen
                    queue.append(nb)
        return harvested

    def to_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        """Harvest as ``(points (N,3) float64, triangles (M,3) int32)``.

        Triangle rows index ``points``, which lists the inserted vertices in
        insertion order; rows keep the mesh's clockwise vertex order.
        """
        pts = np.asarray(self.vertices, dtype=np.float64).reshape(-1, 3)
        harvested = self.collect()
        if not harvested:
            return pts, np.empty((0, 3), dtype=np.int32)
        tris = np.asarray([c.vertices for c in harvested], dtype=np.int32) - len(self.bounding_handles)
        return pts, np.ascontiguousarray(tris)

    # ------------------------------------------------------------------
    # stats
    # ------------------------------------------------------------------
    def stats_summary(self) -> Dict[str, float]:
        return self.stats.to_dict()

    def reset_stats(self) -> None:
        self.stats = InsertStats()
