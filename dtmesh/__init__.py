"""Public package API for the dtmesh incremental Delaunay triangulator.

This facade provides a flat import surface on top of the internal
implementation package ``dtmesh.core``.

Example
-------
    from dtmesh import DelaunayTriangulation

    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    tri.insert([(5, 5, 0), (1, 1, 0), (9, 1, 0), (5, 9, 0)])
    cells = tri.collect()

The deeper modules (``dtmesh.core.*``) are considered internal and may
change; rely on this layer for public symbols.
"""
from importlib import import_module as _imp
import logging as _logging

try:  # Python 3.8+ runtime version export
    from importlib.metadata import version as _pkg_version
    __version__ = _pkg_version("dtmesh")  # populated when installed
except Exception:  # pragma: no cover - editable / unknown state
    __version__ = "0.0.0+dev"

_logging.getLogger(__name__).addHandler(_logging.NullHandler())

_geom = _imp('dtmesh.core.geometry')
_const = _imp('dtmesh.core.constants')
_conf = _imp('dtmesh.core.config')
_err = _imp('dtmesh.core.errors')
_mesh = _imp('dtmesh.core.mesh')
_pq = _imp('dtmesh.core.priority_queue')
_tri = _imp('dtmesh.core.triangulation')
_val = _imp('dtmesh.core.validation')
_stats = _imp('dtmesh.core.stats')
_log = _imp('dtmesh.core.logging_utils')

# Engine
DelaunayTriangulation = _tri.DelaunayTriangulation
InsertionAnomaly = _tri.InsertionAnomaly
TriangulationConfig = _conf.TriangulationConfig
Cell = _mesh.Cell
Point = _geom.Point
PriorityQueue = _pq.PriorityQueue

# Errors
TriangulationError = _err.TriangulationError
LocationFailure = _err.LocationFailure
DegenerateGeometryError = _err.DegenerateGeometryError
PreconditionError = _err.PreconditionError
DuplicatePointError = _err.DuplicatePointError
CoincidentPointError = _err.CoincidentPointError
MeshInvariantError = _err.MeshInvariantError

# Tolerances
BOUNDING_SLACK = _const.BOUNDING_SLACK
EPS_INCIRCLE = _const.EPS_INCIRCLE
EPS_ON_EDGE = _const.EPS_ON_EDGE

check_triangulation = _val.check_triangulation
format_stats_table = _stats.format_stats_table
configure_logging = _log.configure_logging
get_logger = _log.get_logger

# Namespace submodules for exploratory users
geometry = _geom
constants = _const
triangulation = _tri
validation = _val
stats = _stats

__all__ = [
    '__version__',
    # engine
    'DelaunayTriangulation', 'InsertionAnomaly', 'TriangulationConfig', 'Cell', 'Point', 'PriorityQueue',
    # errors
    'TriangulationError', 'LocationFailure', 'DegenerateGeometryError', 'PreconditionError',
    'DuplicatePointError', 'CoincidentPointError', 'MeshInvariantError',
    # tolerances
    'BOUNDING_SLACK', 'EPS_INCIRCLE', 'EPS_ON_EDGE',
    # utilities
    'check_triangulation', 'format_stats_table', 'configure_logging', 'get_logger',
    # submodules / namespaces
    'geometry', 'constants', 'triangulation', 'validation', 'stats',
]
