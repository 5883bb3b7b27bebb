"""Logging utilities for dtmesh.

Provides a consistent logger hierarchy and formatting without modifying the
process root logger. All dtmesh code should obtain loggers via get_logger().
"""
from __future__ import annotations

import logging
import sys
from typing import Optional, Union

_FORMAT = logging.Formatter('%(levelname)s %(name)s: %(message)s')
_ROOT = 'dtmesh'


def _ensure_package_root() -> logging.Logger:
    """Ensure the 'dtmesh' logger has a single stream handler and is isolated
    from the process root logger. Returns the 'dtmesh' logger.
    """
    pkg_root = logging.getLogger(_ROOT)
    has_non_null = any(not isinstance(h, logging.NullHandler) for h in pkg_root.handlers)
    if not has_non_null:
        # NullHandlers added by the package __init__ would swallow records
        for h in list(pkg_root.handlers):
            pkg_root.removeHandler(h)
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setFormatter(_FORMAT)
        pkg_root.addHandler(handler)
    pkg_root.propagate = False
    return pkg_root


def _to_level(level: Union[str, int, None], default: int = logging.INFO) -> int:
    if level is None:
        return default
    if isinstance(level, int):
        return level
    value = getattr(logging, str(level).upper(), None)
    return value if isinstance(value, int) else default


def configure_logging(level: Union[str, int] = 'INFO') -> None:
    """Configure the 'dtmesh' logger family level.

    This does NOT modify the process root logger.
    """
    pkg_root = _ensure_package_root()
    pkg_root.setLevel(_to_level(level))


def get_logger(name: str, level: Optional[Union[str, int]] = None) -> logging.Logger:
    """Return a logger under the 'dtmesh' namespace.

    If a level is provided, it sets the logger's level; otherwise the logger
    is set to NOTSET so it inherits from the 'dtmesh' parent configured via
    configure_logging().
    """
    if name != _ROOT and not name.startswith(_ROOT + '.'):
        name = f'{_ROOT}.{name}'
    log = logging.getLogger(name)
    log.setLevel(_to_level(level) if level is not None else logging.NOTSET)
    return log


__all__ = ['get_logger', 'configure_logging']
