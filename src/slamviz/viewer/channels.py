"""In-process publish/subscribe channels for the viewer outputs.

Publishing runs the subscriber callbacks on the publishing thread. The
subscriber count is what the viewer uses to skip work nobody consumes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from ..geometry import SE3
from .messages import TransformStamped

logger = logging.getLogger(__name__)

MsgT = TypeVar("MsgT")


class Subscription:
    """Handle returned by Publisher.subscribe."""

    def __init__(self, publisher: Publisher, callback: Callable) -> None:
        self._publisher = publisher
        self.callback = callback

    def unsubscribe(self) -> None:
        self._publisher._remove(self)

    @property
    def topic(self) -> str:
        return self._publisher.topic


class Publisher(Generic[MsgT]):
    """A named output channel."""

    def __init__(self, topic: str) -> None:
        self.topic = topic
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()
        self.num_published = 0

    def subscribe(self, callback: Callable[[MsgT], None]) -> Subscription:
        subscription = Subscription(self, callback)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug("New subscriber on %s", self.topic)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, msg: MsgT) -> None:
        """Deliver a message to every current subscriber.

        A failing subscriber is logged and does not prevent delivery to the
        others.
        """
        with self._lock:
            subscriptions = list(self._subscriptions)
            self.num_published += 1

        for subscription in subscriptions:
            try:
                subscription.callback(msg)
            except Exception:
                logger.exception("Subscriber on %s failed", self.topic)

    def __repr__(self) -> str:
        return f"Publisher({self.topic!r}, subscribers={self.subscription_count})"


class TransformBroadcaster(Publisher[TransformStamped]):
    """Channel for frame relations; always published regardless of subscribers."""

    def __init__(self, topic: str = "/tf") -> None:
        super().__init__(topic)

    def send_transform(self, transform: TransformStamped) -> None:
        self.publish(transform)


@dataclass
class _FrameLink:
    parent: str
    stamp: float
    T_parent_child: SE3


class TransformBuffer:
    """Latest-value store of frame relations with chained lookups.

    Keeps one link per child frame (a frame has at most one parent) and
    resolves ``lookup(target, source)`` by walking both frames up to a
    common ancestor.

    Example usage:
        buffer = TransformBuffer()
        buffer.attach(viewer.tf_broadcaster)
        T_world_lidar = buffer.lookup("world", "lidar")
    """

    def __init__(self) -> None:
        self._links: dict[str, _FrameLink] = {}
        self._lock = threading.Lock()
        self._subscription: Subscription | None = None

    def attach(self, broadcaster: TransformBroadcaster) -> None:
        self.detach()
        self._subscription = broadcaster.subscribe(self.set_transform)

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def set_transform(self, transform: TransformStamped) -> None:
        link = _FrameLink(
            parent=transform.header.frame_id,
            stamp=transform.header.stamp,
            T_parent_child=transform.to_se3(),
        )
        with self._lock:
            self._links[transform.child_frame_id] = link

    def stamp_of(self, child_frame_id: str) -> float:
        """Stamp of the latest relation whose child is ``child_frame_id``."""
        with self._lock:
            if child_frame_id not in self._links:
                raise LookupError(f"Frame '{child_frame_id}' has no parent")
            return self._links[child_frame_id].stamp

    def lookup(self, target_frame: str, source_frame: str) -> SE3:
        """Return T_target_source.

        Raises:
            LookupError: If either frame is unknown or they are not connected
        """
        with self._lock:
            target_chain = self._chain_to_root(target_frame)
            source_chain = self._chain_to_root(source_frame)

        target_frames = [frame for frame, _ in target_chain]
        common = next(
            (frame for frame, _ in source_chain if frame in target_frames), None
        )
        if common is None:
            raise LookupError(
                f"Frames '{target_frame}' and '{source_frame}' are not connected"
            )

        T_common_source = _accumulate(source_chain, common)
        T_common_target = _accumulate(target_chain, common)
        return T_common_target.inverse() @ T_common_source

    def _chain_to_root(self, frame: str) -> list[tuple[str, SE3]]:
        """Frames from ``frame`` up to its root with T_frame_start for each."""
        known = frame in self._links or any(
            link.parent == frame for link in self._links.values()
        )
        if not known:
            raise LookupError(f"Unknown frame '{frame}'")

        chain = [(frame, SE3.identity())]
        T_current_start = SE3.identity()
        current = frame
        while current in self._links:
            link = self._links[current]
            T_current_start = link.T_parent_child @ T_current_start
            current = link.parent
            if any(name == current for name, _ in chain):
                raise LookupError(f"Cycle in frame tree at '{current}'")
            chain.append((current, T_current_start))
        return chain

    def frames(self) -> set[str]:
        with self._lock:
            names = set(self._links)
            names.update(link.parent for link in self._links.values())
        return names


def _accumulate(chain: list[tuple[str, SE3]], frame: str) -> SE3:
    for name, T_frame_start in chain:
        if name == frame:
            return T_frame_start
    raise LookupError(f"Frame '{frame}' not in chain")
