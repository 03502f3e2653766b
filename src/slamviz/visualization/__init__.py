"""Rerun bridge for the viewer output channels."""

from .rerun_visualizer import RerunVisualizer

__all__ = ["RerunVisualizer"]
