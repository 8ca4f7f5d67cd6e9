"""Trajectory data: model, validation, alignment and loading.

Example:
    >>> from skytrail.data import TrajectoryStore, align_all
    >>>
    >>> trajectories = TrajectoryStore().load(["trace_ab1fbb.json", "trace_abca00.json"])
    >>> aligned = align_all(trajectories, offsets=(0.0, 4758.87))
"""

from skytrail.data.store import (
    TrajectoryStore,
    parse_document,
    parse_table,
)
from skytrail.data.trajectory import (
    AlignedTrajectory,
    Trajectory,
    align,
    align_all,
)

__all__ = [
    # Model
    "Trajectory",
    "AlignedTrajectory",
    "align",
    "align_all",
    # Loading
    "TrajectoryStore",
    "parse_document",
    "parse_table",
]
