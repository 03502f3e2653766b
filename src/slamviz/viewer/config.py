"""Viewer configuration: frame names, topic names and scheduler timing."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path

import yaml


@dataclass
class ViewerConfig:
    """Configuration for SLAMViewer."""

    # Frame names used in message headers and frame relations
    imu_frame_id: str = "imu"
    lidar_frame_id: str = "lidar"
    odom_frame_id: str = "odom"
    world_frame_id: str = "world"

    # Output channels
    points_topic: str = "/slamviz/points"
    map_topic: str = "/slamviz/map"
    odom_topic: str = "/slamviz/odom"
    pose_topic: str = "/slamviz/pose"
    tf_topic: str = "/tf"

    period: float = 0.01  # Scheduler period (s)
    join_timeout: float = 5.0  # Max wait for the scheduler thread on close (s)
    stamp_tolerance: float = 0.1  # Anchor/odometry stamp mismatch warning (s)

    @classmethod
    def from_dict(cls, values: dict) -> ViewerConfig:
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        for key in values:
            if key not in known:
                raise ValueError(f"Unknown viewer config key: {key}")
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: str | Path) -> ViewerConfig:
        """Load a config from a YAML file.

        The keys may sit at the top level or under a ``viewer:`` section.
        Missing keys keep their defaults.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Viewer config not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Viewer config must be a mapping: {path}")
        if isinstance(data.get("viewer"), dict):
            data = data["viewer"]

        return cls.from_dict(data)
