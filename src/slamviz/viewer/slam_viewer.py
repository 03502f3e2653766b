"""Live viewer for a LiDAR/IMU SLAM pipeline.

SLAMViewer observes the pipeline through its callbacks and turns estimation
snapshots into output messages:

- Front-end frame (sensor rate, front-end thread): raw point cloud, three
  frame relations (odom->imu, imu->lidar, world->odom), odometry and world
  pose. Published synchronously.
- Submap update (back-end rate, back-end thread): the trajectory anchor is
  corrected synchronously; the global map rebuild is deferred to the
  scheduler thread.

Every gated output is skipped entirely, conversion included, while its
channel has no subscriber.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from ..estimation import (
    EstimationFrame,
    FrameID,
    GlobalMappingCallbacks,
    OdometryEstimationCallbacks,
    SubMap,
)
from ..geometry import SE3
from .channels import Publisher, TransformBroadcaster
from .config import ViewerConfig
from .map_aggregator import GlobalMapAggregator
from .messages import (
    Odometry,
    PointCloud,
    PoseStamped,
    points_to_pointcloud,
    se3_to_odometry,
    se3_to_pose,
    se3_to_transform,
)
from .task_queue import Scheduler, Task
from .trajectory import TrajectoryManager

logger = logging.getLogger(__name__)


@dataclass
class ViewerStats:
    """Activity counters, also used to verify that gated work is skipped."""

    num_frames: int = 0
    num_submap_updates: int = 0
    num_points_converted: int = 0
    num_odom_published: int = 0
    num_poses_published: int = 0
    num_maps_published: int = 0


@dataclass
class MergeSubmapsTask:
    """Deferred global map rebuild.

    Owns a snapshot of the submap list and copies of the submap world poses
    taken when the update arrived.
    """

    viewer: SLAMViewer = field(repr=False)
    submaps: tuple[SubMap, ...]
    poses: list[SE3] = field(repr=False)

    def __call__(self) -> None:
        self.viewer._update_global_map(self.submaps, self.poses)


class SLAMViewer:
    """Converts SLAM estimates into pose, frame-relation and point-cloud outputs.

    Channels:
        points_pub      - PointCloud of the latest frame (gated)
        map_pub         - PointCloud of the merged global map (gated)
        odom_pub        - Odometry of the IMU in the odom frame (gated)
        pose_pub        - PoseStamped of the IMU in the world frame (gated)
        tf_broadcaster  - TransformStamped frame relations (always)
    """

    def __init__(
        self,
        config: ViewerConfig | None = None,
        register_callbacks: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the viewer and start its scheduler thread.

        Args:
            config: Frame names, topics and timing (defaults if None)
            register_callbacks: If True, attach to the global front-end and
                back-end callback slots
            clock: Wall clock used to stamp the global map
        """
        self._config = config or ViewerConfig()
        self._clock = clock
        cfg = self._config

        self.points_pub: Publisher[PointCloud] = Publisher(cfg.points_topic)
        self.map_pub: Publisher[PointCloud] = Publisher(cfg.map_topic)
        self.odom_pub: Publisher[Odometry] = Publisher(cfg.odom_topic)
        self.pose_pub: Publisher[PoseStamped] = Publisher(cfg.pose_topic)
        self.tf_broadcaster = TransformBroadcaster(cfg.tf_topic)

        self._frame_names = {
            FrameID.LIDAR: cfg.lidar_frame_id,
            FrameID.IMU: cfg.imu_frame_id,
            FrameID.WORLD: cfg.world_frame_id,
        }

        self._trajectory = TrajectoryManager(stamp_tolerance=cfg.stamp_tolerance)
        self._global_map = GlobalMapAggregator()
        self._stats = ViewerStats()

        self._scheduler = Scheduler(period=cfg.period, join_timeout=cfg.join_timeout)
        self._closed = False

        self._registered = False
        if register_callbacks:
            self.set_callbacks()

    def set_callbacks(self) -> None:
        """Register with the front-end and back-end callback slots."""
        if self._registered:
            return
        OdometryEstimationCallbacks.on_new_frame.add(self.on_new_frame)
        GlobalMappingCallbacks.on_update_submaps.add(self.on_update_submaps)
        self._registered = True
        logger.info("Viewer registered with estimation callbacks")

    def remove_callbacks(self) -> None:
        if not self._registered:
            return
        OdometryEstimationCallbacks.on_new_frame.remove(self.on_new_frame)
        GlobalMappingCallbacks.on_update_submaps.remove(self.on_update_submaps)
        self._registered = False

    def frame_name(self, frame_id: FrameID) -> str:
        """Configured frame name for a frame tag."""
        return self._frame_names[frame_id]

    def on_new_frame(self, frame: EstimationFrame) -> None:
        """Publish everything derived from one front-end estimate.

        Runs on the front-end thread; never waits on the scheduler.
        """
        cfg = self._config
        stamp = frame.stamp
        self._stats.num_frames += 1

        if self.points_pub.subscription_count:
            cloud = points_to_pointcloud(
                self.frame_name(frame.frame_id), stamp, frame.points
            )
            self._stats.num_points_converted += cloud.width
            self.points_pub.publish(cloud)

        T_odom_imu = frame.T_world_imu
        T_lidar_imu = frame.T_lidar_imu

        with self._trajectory.locked() as trajectory:
            trajectory.add_odom(stamp, T_odom_imu)
            T_world_odom = trajectory.get_T_world_odom()
            T_world_imu = trajectory.odom2world(T_odom_imu)

        # All three relations share the frame stamp so chained lookups agree
        self.tf_broadcaster.send_transform(
            se3_to_transform(cfg.odom_frame_id, cfg.imu_frame_id, stamp, T_odom_imu)
        )
        self.tf_broadcaster.send_transform(
            se3_to_transform(cfg.imu_frame_id, cfg.lidar_frame_id, stamp, T_lidar_imu)
        )
        self.tf_broadcaster.send_transform(
            se3_to_transform(
                cfg.world_frame_id, cfg.odom_frame_id, stamp, T_world_odom
            )
        )

        if self.odom_pub.subscription_count:
            self.odom_pub.publish(
                se3_to_odometry(cfg.odom_frame_id, cfg.imu_frame_id, stamp, T_odom_imu)
            )
            self._stats.num_odom_published += 1

        if self.pose_pub.subscription_count:
            self.pose_pub.publish(se3_to_pose(cfg.world_frame_id, stamp, T_world_imu))
            self._stats.num_poses_published += 1

        logger.debug("Published frame %d at t=%.6f", frame.id, stamp)

    def on_update_submaps(self, submaps: Sequence[SubMap]) -> None:
        """Correct the anchor and schedule a global map rebuild.

        Runs on the back-end thread. Only the anchor update is synchronous.

        Args:
            submaps: Full ordered submap list; the last element is new

        Raises:
            ValueError: If the list is empty
        """
        if not submaps:
            raise ValueError("on_update_submaps requires at least one submap")

        self._stats.num_submap_updates += 1
        latest = submaps[-1]
        self._trajectory.update_anchor(
            latest.stamp_endpoint_R, latest.T_world_endpoint_R
        )

        poses = [submap.T_world_origin.copy() for submap in submaps]
        self.invoke(MergeSubmapsTask(self, tuple(submaps), poses))

    def invoke(self, task: Task) -> None:
        """Run a task later on the scheduler thread."""
        self._scheduler.submit(task)

    def _update_global_map(
        self, submaps: Sequence[SubMap], poses: Sequence[SE3]
    ) -> None:
        self._global_map.extend_from(submaps)

        if not self.map_pub.subscription_count:
            return

        merged = self._global_map.merge(poses)
        cloud = points_to_pointcloud(self._config.world_frame_id, self._clock(), merged)
        self.map_pub.publish(cloud)
        self._stats.num_maps_published += 1
        logger.debug(
            "Published global map: %d submaps, %d points",
            self._global_map.num_submaps,
            cloud.width,
        )

    @property
    def config(self) -> ViewerConfig:
        return self._config

    @property
    def stats(self) -> ViewerStats:
        return self._stats

    @property
    def trajectory(self) -> TrajectoryManager:
        return self._trajectory

    @property
    def global_map(self) -> GlobalMapAggregator:
        """Retained submap clouds. Only safe to inspect after close()."""
        return self._global_map

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    def close(self) -> None:
        """Detach from the pipeline and join the scheduler thread.

        Tasks still queued are not guaranteed to run.
        """
        if self._closed:
            return
        self.remove_callbacks()
        self._scheduler.stop()
        self._closed = True

    def __enter__(self) -> SLAMViewer:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
