#!/usr/bin/env python3
"""Demo script streaming a synthetic LiDAR/IMU SLAM run to Rerun.

Simulates the two SLAM callbacks the viewer listens to:
- Front-end: odometry frames at 50 Hz along a circle, with slow drift
- Back-end: a submap every 20 frames, whose pose is the drift-free truth

The world-frame trajectory in Rerun stays on the circle while the raw
odometry (odom -> imu) drifts away from it.

Usage:
    uv run python examples/viewer_demo.py
"""

import time

import numpy as np

from slamviz import (
    SE3,
    EstimationFrame,
    FrameID,
    GlobalMappingCallbacks,
    OdometryEstimationCallbacks,
    RerunVisualizer,
    SLAMViewer,
    SubMap,
)


def make_scan(rng: np.random.Generator, num_points: int = 2000) -> np.ndarray:
    """Random points on a ground plane and a ring of walls around the sensor."""
    angles = rng.uniform(0, 2 * np.pi, num_points)
    on_wall = rng.random(num_points) < 0.5
    ranges = np.where(on_wall, 15.0, rng.uniform(1.0, 15.0, num_points))
    heights = np.where(on_wall, rng.uniform(-1.0, 2.0, num_points), -1.5)
    return np.stack([ranges * np.cos(angles), ranges * np.sin(angles), heights], axis=1)


def circle_pose(t: float, radius: float = 10.0, speed: float = 0.2) -> SE3:
    """Ground-truth pose moving counterclockwise along a circle."""
    theta = speed * t
    return SE3.from_rvec_tvec(
        np.array([0.0, 0.0, theta + np.pi / 2]),
        np.array([radius * np.cos(theta), radius * np.sin(theta), 0.0]),
    )


def main() -> None:
    """Run the viewer demo."""
    # Configuration
    num_frames = 1500
    rate_hz = 50.0
    frames_per_submap = 20
    drift_per_frame = SE3.from_rvec_tvec(
        np.array([0.0, 0.0, 2e-4]), np.array([1e-3, 0.0, 0.0])
    )
    T_lidar_imu = SE3.from_translation(0.0, 0.0, 0.3)

    print("Initializing viewer...")
    rng = np.random.default_rng(0)
    visualizer = RerunVisualizer("slamviz-demo")

    with SLAMViewer() as viewer:
        visualizer.attach(viewer)

        submaps: list[SubMap] = []
        drift = SE3.identity()

        for i in range(num_frames):
            stamp = i / rate_hz
            T_world_imu_true = circle_pose(stamp)
            drift = drift @ drift_per_frame
            T_odom_imu = T_world_imu_true @ drift

            frame = EstimationFrame(
                stamp=stamp,
                frame_id=FrameID.LIDAR,
                T_world_imu=T_odom_imu,
                T_lidar_imu=T_lidar_imu,
                points=make_scan(rng),
                id=i,
            )
            OdometryEstimationCallbacks.on_new_frame(frame)

            if i % frames_per_submap == frames_per_submap - 1:
                submaps.append(
                    SubMap(
                        id=len(submaps),
                        T_world_origin=T_world_imu_true,
                        T_origin_endpoint_R=SE3.identity(),
                        stamp_endpoint_R=stamp,
                        points=make_scan(rng, num_points=5000),
                    )
                )
                GlobalMappingCallbacks.on_update_submaps(list(submaps))

            if i % 100 == 0:
                pos = viewer.trajectory.odom2world(T_odom_imu).position
                print(
                    f"{i:6d} | submaps {len(submaps):4d} | "
                    f"world [{pos[0]:7.2f}, {pos[1]:7.2f}, {pos[2]:7.2f}]"
                )

            time.sleep(1.0 / rate_hz)

        stats = viewer.stats
        visualizer.detach()

    print()
    print("=" * 60)
    print("VIEWER SUMMARY")
    print("=" * 60)
    print(f"Frames:              {stats.num_frames}")
    print(f"Submap updates:      {stats.num_submap_updates}")
    print(f"Points converted:    {stats.num_points_converted}")
    print(f"Global maps:         {stats.num_maps_published}")
    print()
    print("Done! Check Rerun viewer.")


if __name__ == "__main__":
    main()
