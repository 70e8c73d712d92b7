"""Helper modules for ReconnectingClient."""

from .reconnect_scheduler import ReconnectScheduler

__all__ = ["ReconnectScheduler"]
