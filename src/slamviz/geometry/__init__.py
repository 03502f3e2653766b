"""Rigid-body geometry shared by the estimation snapshots and the viewer."""

from .pose import SE3

__all__ = ["SE3"]
