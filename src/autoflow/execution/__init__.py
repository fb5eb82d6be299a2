"""
Node execution scheduling.

``queue`` holds the ``NodeQueue`` protocol and its in-memory and Celery
implementations.  ``tasks`` (imported only by Celery workers) defines the
Celery app and the ``autoflow.execute_node`` task.
"""

from autoflow.execution.queue import (
    EXECUTE_NODE_TASK,
    CeleryNodeQueue,
    InMemoryNodeQueue,
    NodeQueue,
    QueuedNode,
    queue_from_settings,
)

__all__ = [
    "EXECUTE_NODE_TASK",
    "CeleryNodeQueue",
    "InMemoryNodeQueue",
    "NodeQueue",
    "QueuedNode",
    "queue_from_settings",
]
