"""Custom exceptions for the depth tracker.

Numeric degeneracies (no mean-shift weight, no segmented objects) are handled
as tracking policy. These exceptions cover caller contract violations only.
"""

from __future__ import annotations


class TrackerError(Exception):
    """Base exception for tracker errors."""

    pass


class ModelNotBuiltError(TrackerError):
    """Raised when tracking is requested before the appearance model is built."""

    def __init__(self, operation: str = "track"):
        self.operation = operation
        super().__init__(f"Cannot {operation}: appearance model has not been built")


class InvalidFrameError(TrackerError, ValueError):
    """Raised when the view supplies an empty or inconsistent frame.

    Attributes:
        name: Name of the offending frame ('color' or 'depth').
    """

    def __init__(self, name: str, message: str = ""):
        self.name = name
        msg = f"Invalid {name} frame"
        if message:
            msg += f". {message}"
        super().__init__(msg)


class InvalidWindowError(TrackerError, ValueError):
    """Raised when a tracking window has a non-positive size."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        super().__init__(f"Tracking window must have a positive size, got {width}x{height}")


class InvalidMaskError(TrackerError, ValueError):
    """Raised when the initial target mask is empty or does not match the frame."""

    def __init__(self, message: str):
        super().__init__(f"Invalid target mask. {message}")
