"""Asynchronous visualization of SLAM estimates.

Components:
- TrajectoryManager: odometry-to-world anchoring
- Scheduler / TaskQueue: deferred, rate-limited background work
- GlobalMapAggregator: global map rebuild from submap clouds
- SLAMViewer: wires the above to the pipeline callbacks and output channels
"""

from .channels import Publisher, Subscription, TransformBroadcaster, TransformBuffer
from .config import ViewerConfig
from .map_aggregator import GlobalMapAggregator
from .messages import (
    Header,
    Odometry,
    PointCloud,
    PoseStamped,
    TransformStamped,
    points_to_pointcloud,
    se3_to_odometry,
    se3_to_pose,
    se3_to_transform,
)
from .slam_viewer import MergeSubmapsTask, SLAMViewer, ViewerStats
from .task_queue import Scheduler, SchedulerShutdownError, Task, TaskQueue, throttle
from .trajectory import TrajectoryManager

__all__ = [
    # Viewer
    "SLAMViewer",
    "ViewerStats",
    "ViewerConfig",
    "MergeSubmapsTask",
    # Trajectory
    "TrajectoryManager",
    # Deferred execution
    "Scheduler",
    "SchedulerShutdownError",
    "Task",
    "TaskQueue",
    "throttle",
    # Global map
    "GlobalMapAggregator",
    # Channels
    "Publisher",
    "Subscription",
    "TransformBroadcaster",
    "TransformBuffer",
    # Messages
    "Header",
    "PointCloud",
    "TransformStamped",
    "PoseStamped",
    "Odometry",
    "points_to_pointcloud",
    "se3_to_transform",
    "se3_to_pose",
    "se3_to_odometry",
]
