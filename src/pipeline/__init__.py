"""Batch pipeline orchestration for Furniture Vectors.

Components:
    - BatchController: ordered, failure-isolated batch runs with cancellation
    - ProgressTracker: Observer-pattern snapshot broadcasting to WebSocket clients
"""

from src.pipeline.batch_controller import BatchController
from src.pipeline.progress_tracker import ProgressTracker

__all__ = [
    "BatchController",
    "ProgressTracker",
]
