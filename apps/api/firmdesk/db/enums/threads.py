"""Thread-related enums."""

from enum import Enum


class ThreadStatus(str, Enum):
    """Thread state. New activity on a resolved thread reopens it."""

    OPEN = "open"
    RESOLVED = "resolved"
