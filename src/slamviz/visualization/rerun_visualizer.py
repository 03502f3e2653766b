"""Rerun-based visualization of SLAMViewer outputs."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import rerun as rr
import rerun.blueprint as rrb

if TYPE_CHECKING:
    from ..viewer import (
        PointCloud,
        PoseStamped,
        SLAMViewer,
        Subscription,
        TransformStamped,
    )


class RerunVisualizer:
    """Streams SLAMViewer channels to a Rerun viewer.

    Subscribing to a channel is what enables its (gated) output, so attach
    only what you want to see.

    Entity hierarchy (default frame names):
        world/
            odom/               - T_world_odom (anchor)
                imu/            - T_odom_imu (odometry pose)
                    lidar/      - T_imu_lidar (extrinsic)
                    points      - latest cloud when expressed in imu
            map                 - merged global map
            trajectory          - world-frame IMU positions
    """

    def __init__(
        self,
        app_name: str = "slamviz",
        spawn: bool = True,
        max_trajectory_length: int = 100_000,
    ) -> None:
        """Initialize Rerun visualization.

        Args:
            app_name: Name for the Rerun application window
            spawn: If True, automatically spawn the Rerun viewer
            max_trajectory_length: Max number of trajectory positions kept
        """
        rr.init(app_name, spawn=spawn)
        self._entity_paths: dict[str, str] = {}
        self._subscriptions: list[Subscription] = []
        self._positions: list[np.ndarray] = []
        self._max_trajectory_length = max_trajectory_length
        self._setup_coordinate_system()
        self._setup_layout()

    def _setup_coordinate_system(self) -> None:
        """LiDAR/IMU convention: X-forward, Y-left, Z-up."""
        rr.log("world", rr.ViewCoordinates.RIGHT_HAND_Z_UP, static=True)

    def _setup_layout(self) -> None:
        blueprint = rrb.Blueprint(rrb.Spatial3DView(name="SLAM", origin="world"))
        rr.send_blueprint(blueprint)

    def attach(
        self,
        viewer: SLAMViewer,
        points: bool = True,
        global_map: bool = True,
        trajectory: bool = True,
    ) -> None:
        """Subscribe to the viewer channels.

        Args:
            viewer: Viewer whose outputs should be logged
            points: Log the per-frame point cloud
            global_map: Log the merged global map
            trajectory: Log the world-frame pose trajectory
        """
        cfg = viewer.config
        world = cfg.world_frame_id
        self._entity_paths = {
            world: "world",
            cfg.odom_frame_id: "world/odom",
            cfg.imu_frame_id: "world/odom/imu",
            cfg.lidar_frame_id: "world/odom/imu/lidar",
        }

        self._subscriptions.append(viewer.tf_broadcaster.subscribe(self.log_transform))
        if points:
            self._subscriptions.append(viewer.points_pub.subscribe(self.log_points))
        if global_map:
            self._subscriptions.append(viewer.map_pub.subscribe(self.log_global_map))
        if trajectory:
            self._subscriptions.append(viewer.pose_pub.subscribe(self.log_pose))

    def detach(self) -> None:
        """Unsubscribe from every channel; the gated outputs stop."""
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

    def entity_path(self, frame_id: str) -> str:
        return self._entity_paths.get(frame_id, f"world/{frame_id}")

    def log_transform(self, msg: TransformStamped) -> None:
        """Log a frame relation as the transform of the child entity."""
        rr.set_time("timestamp", duration=msg.header.stamp)
        rotation = np.asarray(msg.rotation, dtype=np.float64)
        rr.log(
            self.entity_path(msg.child_frame_id),
            rr.Transform3D(
                translation=msg.translation,
                quaternion=rr.Quaternion(xyzw=rotation),
            ),
        )

    def log_points(self, msg: PointCloud) -> None:
        """Log the latest frame cloud in its own frame."""
        rr.set_time("timestamp", duration=msg.header.stamp)
        points = msg.points
        if len(points) == 0:
            return

        rr.log(
            f"{self.entity_path(msg.header.frame_id)}/points",
            rr.Points3D(points, colors=_height_colors(points), radii=0.02),
        )

    def log_global_map(self, msg: PointCloud) -> None:
        """Log the merged global map (stamped with wall-clock time)."""
        rr.set_time("wall_time", timestamp=msg.header.stamp)
        points = msg.points
        if len(points) == 0:
            return

        # Filter invalid points
        valid_points = points[np.isfinite(points).all(axis=1)]
        if len(valid_points) == 0:
            return

        rr.log(
            "world/map",
            rr.Points3D(valid_points, colors=_height_colors(valid_points), radii=0.03),
        )

    def log_pose(self, msg: PoseStamped) -> None:
        """Append a world-frame pose to the trajectory and log it."""
        rr.set_time("timestamp", duration=msg.header.stamp)
        self._positions.append(np.asarray(msg.position, dtype=np.float64))
        if len(self._positions) > self._max_trajectory_length:
            del self._positions[0]

        self.log_trajectory(np.array(self._positions))

    def log_trajectory(
        self,
        positions: np.ndarray,
        entity_path: str = "world/trajectory",
    ) -> None:
        """Log a trajectory as a 3D line strip.

        Args:
            positions: Nx3 array of positions in world frame
            entity_path: Rerun entity path for the trajectory
        """
        if len(positions) < 2:
            return

        # Trajectory (yellow)
        rr.log(
            entity_path,
            rr.LineStrips3D([positions], colors=[[255, 255, 0]], radii=0.01),
        )

        # Current position (cyan)
        rr.log(
            f"{entity_path}/current",
            rr.Points3D([positions[-1]], colors=[[0, 255, 255]], radii=0.05),
        )

    @property
    def num_subscriptions(self) -> int:
        return len(self._subscriptions)


def _height_colors(points: np.ndarray) -> np.ndarray:
    """Color points by height (z): purple (low) to white (high)."""
    heights = points[:, 2]
    h_min, h_max = np.percentile(heights, [5, 95])
    h_range = max(h_max - h_min, 0.1)
    normalized = np.clip((heights - h_min) / h_range, 0, 1)

    colors = np.zeros((len(points), 3), dtype=np.uint8)
    colors[:, 0] = (128 + normalized * 127).astype(np.uint8)  # R: 128-255
    colors[:, 1] = (normalized * 255).astype(np.uint8)  # G: 0-255
    colors[:, 2] = (255 - normalized * 127).astype(np.uint8)  # B: 255-128
    return colors
