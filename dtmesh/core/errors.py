"""Exceptions raised by the triangulation core."""
from __future__ import annotations


class TriangulationError(RuntimeError):
    """Base class for all errors reported by the triangulation engine."""


class LocationFailure(TriangulationError):
    """Raised when no cell reachable from the search start contains a point.

    The bounding triangle should make this impossible for points inside the
    declared bounding box; it mostly signals a point far outside it.
    """

    def __init__(self, point):
        self.point = point
        super().__init__(f"no cell contains point {tuple(point)}")


class DegenerateGeometryError(TriangulationError, ValueError):
    """Raised when collinear or coincident vertices zero out a predicate denominator."""


class CoincidentPointError(DegenerateGeometryError):
    """Raised when a point repeats an existing vertex in all three coordinates."""

    def __init__(self, point, existing: int):
        self.point = point
        self.existing = existing
        super().__init__(f"point {tuple(point)} coincides with vertex {existing}")


class PreconditionError(TriangulationError, ValueError):
    """Raised for input the engine explicitly does not support."""


class DuplicatePointError(PreconditionError):
    """Raised when a point shares its planar projection with a vertex of different elevation."""

    def __init__(self, point, existing: int):
        self.point = point
        self.existing = existing
        super().__init__(
            f"point {tuple(point)} has the same (x, y) as vertex {existing}; "
            "planar duplicates are not supported")


class MeshInvariantError(TriangulationError):
    """Raised when the mesh topology is found in an impossible state."""


__all__ = [
    'TriangulationError', 'LocationFailure', 'DegenerateGeometryError',
    'CoincidentPointError', 'PreconditionError', 'DuplicatePointError', 'MeshInvariantError',
]
