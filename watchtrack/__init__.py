"""watchtrack - unique viewing coverage tracker.

Core concept: a viewer's progress through a video is the merged union of the
spans they actually played. Replays, pauses and seeks never inflate it, and
the coverage survives restarts through a small key-value store.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
