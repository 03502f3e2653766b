"""slamviz - Asynchronous live viewer for LiDAR/IMU SLAM."""

__version__ = "0.1.0"

# Re-export main classes for convenient imports
from .geometry import SE3
from .estimation import (
    CallbackSlot,
    EstimationFrame,
    FrameID,
    GlobalMappingCallbacks,
    OdometryEstimationCallbacks,
    SubMap,
)
from .viewer import (
    GlobalMapAggregator,
    Publisher,
    Scheduler,
    SchedulerShutdownError,
    SLAMViewer,
    TaskQueue,
    TrajectoryManager,
    TransformBuffer,
    ViewerConfig,
    ViewerStats,
)
from .visualization import RerunVisualizer

__all__ = [
    "__version__",
    # Geometry
    "SE3",
    # Estimation interfaces
    "EstimationFrame",
    "FrameID",
    "SubMap",
    "CallbackSlot",
    "OdometryEstimationCallbacks",
    "GlobalMappingCallbacks",
    # Viewer
    "SLAMViewer",
    "ViewerConfig",
    "ViewerStats",
    "TrajectoryManager",
    "Scheduler",
    "SchedulerShutdownError",
    "TaskQueue",
    "GlobalMapAggregator",
    "Publisher",
    "TransformBuffer",
    # Visualization
    "RerunVisualizer",
]
