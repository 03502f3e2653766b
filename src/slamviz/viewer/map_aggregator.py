"""Global map reconstruction from submap point clouds.

Each submap cloud is kept in its own origin frame. The global map is rebuilt
by transforming every retained cloud with the latest world pose of its
submap and concatenating the results, so back-end corrections (e.g. after a
loop closure) move already published geometry.

Rebuilding is O(total points) per update. The retained list is append-only
and order-stable, which keeps an incremental merge possible.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from ..estimation import SubMap
from ..geometry import SE3

logger = logging.getLogger(__name__)


class GlobalMapAggregator:
    """Retains submap clouds and merges them into one world-frame cloud.

    Not thread-safe: the viewer only touches it from the scheduler thread.
    """

    def __init__(self) -> None:
        self._clouds: list[np.ndarray] = []
        self._total_points = 0
        self.num_merges = 0

    def append(self, points: np.ndarray) -> None:
        """Retain one submap cloud (expressed in its submap origin)."""
        self._clouds.append(points)
        self._total_points += len(points)

    def extend_from(self, submaps: Sequence[SubMap]) -> int:
        """Retain the clouds of submaps not seen yet.

        Normally only the last submap is new. Submaps delivered before this
        aggregator existed are back-filled in order so indices stay aligned
        with the back-end's submap list.

        Returns:
            Number of clouds appended
        """
        if len(submaps) < len(self._clouds):
            logger.warning(
                "Submap list shrank from %d to %d; keeping retained clouds",
                len(self._clouds),
                len(submaps),
            )
            return 0

        new_submaps = submaps[len(self._clouds) :]
        for submap in new_submaps:
            self.append(submap.points)
        return len(new_submaps)

    @property
    def num_submaps(self) -> int:
        return len(self._clouds)

    @property
    def total_points(self) -> int:
        return self._total_points

    def merge(self, poses: Sequence[SE3]) -> np.ndarray:
        """Transform every retained cloud into the world frame and concatenate.

        Args:
            poses: T_world_origin for each retained submap, index aligned

        Returns:
            (total_points, 3) float64 array, submaps in retained order
        """
        num_clouds = len(self._clouds)
        if len(poses) < num_clouds:
            raise ValueError(
                f"Got {len(poses)} poses for {num_clouds} retained submaps"
            )

        merged = np.empty((self._total_points, 3), dtype=np.float64)
        begin = 0
        for cloud, T_world_origin in zip(self._clouds[:num_clouds], poses):
            end = begin + len(cloud)
            merged[begin:end] = T_world_origin.transform_points(cloud)
            begin = end

        self.num_merges += 1
        return merged
