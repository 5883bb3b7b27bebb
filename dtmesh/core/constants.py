"""Central numerical tolerances and construction constants.

This module centralizes tiny numeric thresholds used across the codebase so
they can be tuned consistently and referenced without scattering literals.
"""
from __future__ import annotations

# Bounding triangle: incircle radius = half-diagonal of the box * slack
BOUNDING_SLACK: float = 1.5

# Relative padding of the in-circle comparison (d + eps*|d| < r^2)
EPS_INCIRCLE: float = 1e-5

# Barycentric weight below which a point is treated as lying on an edge
EPS_ON_EDGE: float = 1e-12

__all__ = [
    'BOUNDING_SLACK',
    'EPS_INCIRCLE',
    'EPS_ON_EDGE',
]
