"""Insertion statistics data structures and presentation utilities."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Any


@dataclass
class InsertStats:
    attempts: int = 0
    success: int = 0
    fail: int = 0
    # Failure breakdown (sums to fail)
    location_failures: int = 0
    degenerate_rejects: int = 0
    precondition_rejects: int = 0
    # Topology work
    splits: int = 0
    edge_splits: int = 0
    flips: int = 0
    # Timing (seconds)
    time_total: float = 0.0
    time_max: float = 0.0
    time_min: float = 0.0  # 0 means uninitialized

    def record_time(self, dt: float) -> None:
        self.time_total += dt
        if dt > self.time_max:
            self.time_max = dt
        if self.time_min == 0.0 or dt < self.time_min:
            self.time_min = dt

    def to_dict(self) -> Dict[str, Any]:
        return {
            'attempts': self.attempts,
            'success': self.success,
            'fail': self.fail,
            'location_failures': self.location_failures,
            'degenerate_rejects': self.degenerate_rejects,
            'precondition_rejects': self.precondition_rejects,
            'splits': self.splits,
            'edge_splits': self.edge_splits,
            'flips': self.flips,
            'success_rate': (self.success / self.attempts) if self.attempts else 0.0,
            'flips_per_insert': (self.flips / self.success) if self.success else 0.0,
            'time_total': self.time_total,
            'time_max': self.time_max,
            'time_min': self.time_min,
            'time_avg': (self.time_total / self.attempts) if self.attempts else 0.0,
        }


def format_stats_table(stats_dict) -> str:
    """Return a human readable multi-line table summarizing insert stats."""
    if not stats_dict:
        return "<no stats>"
    header = ["attempts", "succ", "fail", "locFail", "degen", "precond", "splits", "edgeSpl", "flips",
              "succ%", "avg_ms", "min_ms", "max_ms"]
    s = stats_dict
    row = [str(s['attempts']), str(s['success']), str(s['fail']), str(s['location_failures']),
           str(s['degenerate_rejects']), str(s['precondition_rejects']), str(s['splits']),
           str(s['edge_splits']), str(s['flips']),
           f"{s['success_rate'] * 100.0:6.2f}", f"{s['time_avg'] * 1000.0:8.3f}",
           f"{s['time_min'] * 1000.0:8.3f}", f"{s['time_max'] * 1000.0:8.3f}"]
    col_w = [max(len(h), len(v)) for h, v in zip(header, row)]
    def fmt(r):
        return " ".join(r[i].rjust(col_w[i]) for i in range(len(r)))
    return "\n".join([fmt(header), "-" * (sum(col_w) + len(col_w) - 1), fmt(row)])


__all__ = ["InsertStats", "format_stats_table"]
