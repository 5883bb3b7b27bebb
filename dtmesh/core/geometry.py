"""Geometry primitives for the planar triangulation.

Scalar predicates work on :class:`Point` triples and are what the engine uses
per cell; the vectorised helpers at the bottom operate on numpy arrays in the
canonical ``points (N, 2|3) float64`` / ``triangles (M, 3) int32`` layout and
back the validation module.
"""
from __future__ import annotations
import math
from typing import NamedTuple, Tuple

import numpy as np

from .constants import BOUNDING_SLACK
from .errors import DegenerateGeometryError, PreconditionError
from .logging_utils import get_logger

logger = get_logger('dtmesh.geometry')

__all__ = [
    'Point', 'distance_sq_plane', 'centroid', 'circumcenter', 'barycentric',
    'orient', 'bounding_triangle',
    'triangles_signed_areas', 'circumcircles',
]


class Point(NamedTuple):
    """A coordinate triple; ``z`` is carried along but never used by predicates."""
    x: float
    y: float
    z: float = 0.0

    def __str__(self):
        return f"({self.x:.4g}|{self.y:.4g}|{self.z:.4g})"


def distance_sq_plane(p1, p2) -> float:
    """Squared distance between two points projected onto the x-y plane."""
    dx = p2[0] - p1[0]
    dy = p2[1] - p1[1]
    return dx * dx + dy * dy


def orient(a, b, c) -> float:
    """2D orientation (signed area * 2) for points a,b,c.

    Returns a positive value when (a,b,c) are counter-clockwise, negative when clockwise,
    and zero when colinear.
    """
    return (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])


def centroid(p0: Point, p1: Point, p2: Point) -> Point:
    return Point((p0.x + p1.x + p2.x) / 3.0,
                 (p0.y + p1.y + p2.y) / 3.0,
                 (p0.z + p1.z + p2.z) / 3.0)


def circumcenter(p0: Point, p1: Point, p2: Point) -> Point:
    """Center of the circle through the planar projections of three points.

    The planar coordinates (u, v) solve the perpendicular-bisector system. The
    elevation is not a true 3D circumsphere center: if the three elevations
    are equal it is that value, otherwise weights r, s with
    ``u = x0 + r*x1 + s*x2`` and ``v = y0 + r*y1 + s*y2`` are applied to the
    elevations, ``w = z0 + r*z1 + s*z2``. This only approximates a plane fit
    for near-coplanar input.

    Raises
    ------
    DegenerateGeometryError
        If the three points are collinear in the plane (or coincide).
    """
    bx = p1.x - p0.x
    by = p1.y - p0.y
    cx = p2.x - p0.x
    cy = p2.y - p0.y
    d = 2.0 * (bx * cy - by * cx)
    if d == 0.0:
        raise DegenerateGeometryError(f"collinear vertices {p0} {p1} {p2}: circumcenter undefined")
    b2 = bx * bx + by * by
    c2 = cx * cx + cy * cy
    u = p0.x + (cy * b2 - by * c2) / d
    v = p0.y + (bx * c2 - cx * b2) / d
    if not (math.isfinite(u) and math.isfinite(v)):
        raise DegenerateGeometryError(f"circumcenter of {p0} {p1} {p2} is not finite")

    if p0.z == p1.z and p1.z == p2.z:
        w = p0.z
    else:
        det = p1.x * p2.y - p2.x * p1.y
        if det == 0.0:
            # weight system singular even though the circle is well defined
            w = (p0.z + p1.z + p2.z) / 3.0
            logger.debug('circumcenter: singular elevation weights for %s %s %s, using mean z', p0, p1, p2)
        else:
            du = u - p0.x
            dv = v - p0.y
            r = (du * p2.y - p2.x * dv) / det
            s = (p1.x * dv - p1.y * du) / det
            w = p0.z + r * p1.z + s * p2.z
    return Point(u, v, w)


def barycentric(p, p0: Point, p1: Point, p2: Point) -> Tuple[float, float]:
    """Return (u, v) such that ``p = p0 + u*(p1 - p0) + v*(p2 - p0)`` in the plane.

    The weight of ``p0`` is ``1 - u - v``. Raises DegenerateGeometryError for
    a collinear reference triangle.
    """
    ax = p1.x - p0.x
    ay = p1.y - p0.y
    bx = p2.x - p0.x
    by = p2.y - p0.y
    det = ax * by - bx * ay
    if det == 0.0:
        raise DegenerateGeometryError(f"collinear vertices {p0} {p1} {p2}: barycentric coordinates undefined")
    px = p[0] - p0.x
    py = p[1] - p0.y
    u = (px * by - bx * py) / det
    v = (ax * py - px * ay) / det
    return u, v


def bounding_triangle(min_x: float, max_x: float, min_y: float, max_y: float,
                      slack: float = BOUNDING_SLACK) -> Tuple[Point, Point, Point]:
    """Clockwise triangle strictly containing the rectangle [min_x,max_x] x [min_y,max_y].

    The rectangle's half-diagonal ``radius`` scaled by ``slack`` is used as the
    incircle radius of an equilateral triangle; the vertices are then placed
    around the rectangle center as (cx - side/2, cy - radius),
    (cx, cy + height), (cx + side/2, cy - radius), all at z = 0.
    """
    bounds = (min_x, max_x, min_y, max_y)
    if not all(math.isfinite(b) for b in bounds):
        raise PreconditionError(f"bounding box must be finite, got {bounds}")
    if min_x > max_x or min_y > max_y:
        raise PreconditionError(f"empty bounding box {bounds}")
    center_x = (min_x + max_x) / 2.0
    center_y = (min_y + max_y) / 2.0
    radius = math.hypot(max_x - min_x, max_y - min_y) / 2.0
    side = 6.0 * radius * slack / math.sqrt(3.0)
    height = side * math.sqrt(3.0) / 2.0
    return (Point(center_x - side / 2.0, center_y - radius, 0.0),
            Point(center_x, center_y + height, 0.0),
            Point(center_x + side / 2.0, center_y - radius, 0.0))


def triangles_signed_areas(points, tris):
    """Vectorized signed area for a batch of triangles.

    points: (N,2|3) float array (only x, y are used)
    tris:   (M,3) int array
    Returns: (M,) float64 array of signed areas (0.5 * cross); negative for clockwise rows.
    """
    pts = np.asarray(points, dtype=np.float64)[:, :2]
    T = np.asarray(tris, dtype=np.int32)
    if T.size == 0:
        return np.empty((0,), dtype=float)
    p0 = pts[T[:, 0]]; p1 = pts[T[:, 1]]; p2 = pts[T[:, 2]]
    d1 = p1 - p0
    d2 = p2 - p0
    return 0.5 * (d1[:, 0] * d2[:, 1] - d1[:, 1] * d2[:, 0])


def circumcircles(points, tris):
    """Vectorized planar circumcircles.

    Returns
    -------
    centers : (M, 2) float64
    radius_sq : (M,) float64
        NaN rows mark collinear triangles.
    """
    pts = np.asarray(points, dtype=np.float64)[:, :2]
    T = np.asarray(tris, dtype=np.int32)
    if T.size == 0:
        return np.empty((0, 2), dtype=float), np.empty((0,), dtype=float)
    a = pts[T[:, 0]]
    b = pts[T[:, 1]] - a
    c = pts[T[:, 2]] - a
    d = 2.0 * (b[:, 0] * c[:, 1] - b[:, 1] * c[:, 0])
    b2 = np.einsum('ij,ij->i', b, b)
    c2 = np.einsum('ij,ij->i', c, c)
    with np.errstate(divide='ignore', invalid='ignore'):
        ux = (c[:, 1] * b2 - b[:, 1] * c2) / d
        uy = (b[:, 0] * c2 - c[:, 0] * b2) / d
    ux[d == 0.0] = np.nan
    uy[d == 0.0] = np.nan
    centers = np.column_stack((ux, uy)) + a
    radius_sq = ux * ux + uy * uy
    return centers, radius_sq
