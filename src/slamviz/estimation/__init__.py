"""Interfaces shared with the SLAM estimation pipeline."""

from .callbacks import CallbackSlot, GlobalMappingCallbacks, OdometryEstimationCallbacks
from .types import EstimationFrame, FrameID, SubMap

__all__ = [
    # Snapshots
    "EstimationFrame",
    "FrameID",
    "SubMap",
    # Callback registration
    "CallbackSlot",
    "OdometryEstimationCallbacks",
    "GlobalMappingCallbacks",
]
