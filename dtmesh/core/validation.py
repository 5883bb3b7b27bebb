"""Structural and geometric invariant checks for a settled triangulation.

All checks read the mesh without touching cell stamps, so they can be run
between insertions without disturbing search generations. Each returns a
list of human readable problems (empty when the invariant holds).
"""
from __future__ import annotations
from collections import deque
from typing import List, Optional, Tuple

import numpy as np

from .geometry import circumcircles, triangles_signed_areas

__all__ = [
    'check_neighbor_symmetry', 'check_orientation', 'check_connectivity',
    'check_delaunay', 'check_triangulation',
]

_MAX_MSGS = 50


def check_neighbor_symmetry(tri) -> List[str]:
    """Every neighbor link is mirrored exactly once across the same edge."""
    cells = tri.mesh.cells
    msgs = []
    for cell in tri.mesh.live_cells():
        for slot, nb in enumerate(cell.neighbors):
            if nb is None:
                continue
            other = cells[nb]
            if not other.alive:
                msgs.append(f"Cell {cell.index} slot {slot} links dead cell {nb}.")
                continue
            back = other.neighbors.count(cell.index)
            if back != 1:
                msgs.append(f"Cell {nb} lists cell {cell.index} {back} times (expected 1).")
                continue
            j = other.neighbors.index(cell.index)
            edge = (cell.vertices[slot], cell.vertices[(slot + 1) % 3])
            back_edge = (other.vertices[(j + 1) % 3], other.vertices[j])
            if edge != back_edge:
                msgs.append(f"Cells {cell.index}/{nb} disagree on shared edge {edge} vs {back_edge}.")
            if len(msgs) >= _MAX_MSGS:
                return msgs
    return msgs


def check_orientation(tri) -> List[str]:
    """All live cells are clockwise with non-zero area."""
    live = tri.mesh.live_cells()
    if not live:
        return ["No live cells."]
    rows = np.asarray([c.vertices for c in live], dtype=np.int32)
    pts = np.asarray(tri.mesh.points, dtype=np.float64)
    areas = triangles_signed_areas(pts, rows)
    bad = np.nonzero(areas >= 0.0)[0]
    return [f"Cell {live[int(i)].index} is not clockwise (signed area {areas[i]:.3e})."
            for i in bad[:_MAX_MSGS]]


def check_connectivity(tri) -> List[str]:
    """Every live cell is reachable from ``tri.current`` over neighbor links."""
    cells = tri.mesh.cells
    if not cells[tri.current].alive:
        return [f"Current cell {tri.current} is dead."]
    seen = {tri.current}
    queue = deque([tri.current])
    while queue:
        for nb in cells[queue.popleft()].neighbors:
            if nb is not None and nb not in seen:
                seen.add(nb)
                queue.append(nb)
    n_live = len(tri.mesh)
    if len(seen) != n_live:
        return [f"{len(seen)} cells reachable from current, {n_live} live."]
    return []


def check_delaunay(tri, eps: Optional[float] = None, chunk: int = 256) -> List[str]:
    """No mesh vertex lies strictly inside the circumcircle of a live cell it is not part of.

    ``eps`` is the relative padding of the in-circle comparison; it defaults
    to the engine's own ``config.incircle_tolerance``.
    """
    if eps is None:
        eps = tri.config.incircle_tolerance
    live = tri.mesh.live_cells()
    if not live:
        return ["No live cells."]
    pts = np.asarray(tri.mesh.points, dtype=np.float64)[:, :2]
    rows = np.asarray([c.vertices for c in live], dtype=np.int32)
    centers, radius_sq = circumcircles(pts, rows)
    msgs = []
    degenerate = np.nonzero(~np.isfinite(radius_sq))[0]
    for i in degenerate[:_MAX_MSGS]:
        msgs.append(f"Cell {live[int(i)].index} is degenerate (no circumcircle).")
    for start in range(0, len(live), chunk):
        stop = min(start + chunk, len(live))
        diff = pts[None, :, :] - centers[start:stop, None, :]
        d = np.einsum('ijk,ijk->ij', diff, diff)
        inside = d + eps * np.abs(d) < radius_sq[start:stop, None]
        # a cell's own vertices never count
        local = np.arange(stop - start)
        for k in range(3):
            inside[local, rows[start:stop, k]] = False
        for ci, pi in zip(*np.nonzero(inside)):
            cell = live[start + int(ci)]
            msgs.append(f"Vertex {int(pi)} lies inside the circumcircle of cell {cell.index}.")
            if len(msgs) >= _MAX_MSGS:
                return msgs
    return msgs


def check_triangulation(tri, verbose: bool = False) -> Tuple[bool, List[str]]:
    """Run every check; returns (ok, messages)."""
    msgs = []
    msgs += check_neighbor_symmetry(tri)
    msgs += check_orientation(tri)
    msgs += check_connectivity(tri)
    msgs += check_delaunay(tri)
    if verbose:
        for m in msgs:
            tri.logger.info('check_triangulation: %s', m)
    return not msgs, msgs
