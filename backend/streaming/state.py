"""
Connection lifecycle status.

RUNNING -> DRAINING -> CLOSED, never backwards.

This is pure data owned by the lifecycle controller; the dispatcher
only requests transitions.
"""
from enum import Enum


class ConnectionState(str, Enum):
    """
    Lifecycle status of one duplex connection.
    """
    RUNNING = "RUNNING"      # Dispatcher reading, writes accepted
    DRAINING = "DRAINING"    # Dispatcher exited its loop, channels about to close
    CLOSED = "CLOSED"        # Finalized: every channel closed exactly once
