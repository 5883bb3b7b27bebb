"""Best-first point location over the cell adjacency graph."""
from __future__ import annotations
from typing import Optional

from .geometry import distance_sq_plane
from .logging_utils import get_logger
from .mesh import Cell, Mesh
from .priority_queue import PriorityQueue

logger = get_logger('dtmesh.locator')

__all__ = ['heuristic', 'find_containing_cell']


def heuristic(point, cell: Cell) -> float:
    """Squared planar distance from ``point`` to the nearest vertex of ``cell``."""
    p0, p1, p2 = cell.points
    return min(distance_sq_plane(point, p0),
               distance_sq_plane(point, p1),
               distance_sq_plane(point, p2))


def _by_key(a, b):
    return a[0] - b[0]


def find_containing_cell(mesh: Mesh, start: Optional[int], point, generation: int,
                         tolerance: float = 0.0) -> Optional[int]:
    """Return the index of a cell containing ``point`` or None.

    Cells are expanded closest-vertex first starting at ``start``. Each cell
    is stamped with ``generation`` when it is queued, so it is examined at
    most once per pass and the search ends after at most one visit of every
    reachable cell. The heuristic is not a bound on the distance to a cell's
    interior, so this is a greedy expansion rather than an A* search; it
    still finds a containing cell whenever one is reachable.

    Parameters
    ----------
    mesh : Mesh
    start : int or None
        Cell to start from; None or a cell already stamped with
        ``generation`` fails immediately.
    point : (x, y[, z]) sequence
    generation : int
        Pass id, distinct from every id used before on this mesh.
    tolerance : float
        Barycentric slack passed to :meth:`Cell.contains_point`.
    """
    cells = mesh.cells
    if start is None or cells[start].stamp == generation:
        return None

    queue = PriorityQueue(_by_key)
    cells[start].stamp = generation
    queue.insert((heuristic(point, cells[start]), start))
    expanded = 0
    while not queue.is_empty():
        _, idx = queue.pop_min()
        cell = cells[idx]
        expanded += 1
        if cell.contains_point(point, tolerance):
            logger.debug('locate: found cell %d after %d expansions', idx, expanded)
            return idx
        for nb in cell.neighbors:
            if nb is not None and cells[nb].stamp != generation:
                cells[nb].stamp = generation
                queue.insert((heuristic(point, cells[nb]), nb))
    logger.debug('locate: queue exhausted after %d expansions', expanded)
    return None
