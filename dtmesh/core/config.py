"""Configuration objects for the incremental Delaunay engine."""
from __future__ import annotations

from dataclasses import dataclass

from .constants import BOUNDING_SLACK, EPS_INCIRCLE, EPS_ON_EDGE


@dataclass
class TriangulationConfig:
    """Tunable parameters of :class:`~dtmesh.core.triangulation.DelaunayTriangulation`.

    Attributes
    ----------
    slack : float
        Multiplier applied to the bounding box half-diagonal to obtain the
        incircle radius of the synthetic bounding triangle.
    incircle_tolerance : float
        Relative padding of the in-circle test; a vertex violates a cell only
        if ``d + incircle_tolerance * |d| < r^2``.
    edge_tolerance : float
        Barycentric weight under which an inserted point is snapped onto the
        opposite edge (edge split instead of a 1->3 split).
    strict : bool
        If True, batch ``insert`` re-raises the first per-point error instead
        of recording it and continuing.
    log_anomalies : bool
        Emit a WARNING for every skipped point.
    """
    slack: float = BOUNDING_SLACK
    incircle_tolerance: float = EPS_INCIRCLE
    edge_tolerance: float = EPS_ON_EDGE
    strict: bool = False
    log_anomalies: bool = True

    def __post_init__(self):
        if not self.slack > 1.0:
            raise ValueError(f"slack must be > 1.0 (got {self.slack})")
        if self.incircle_tolerance < 0.0:
            raise ValueError(f"incircle_tolerance must be >= 0 (got {self.incircle_tolerance})")
        if not 0.0 <= self.edge_tolerance < 1.0 / 3.0:
            raise ValueError(f"edge_tolerance must lie in [0, 1/3) (got {self.edge_tolerance})")


__all__ = ['TriangulationConfig']
