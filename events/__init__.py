"""
In-process event channel and job dispatch table.

Modules:
    bus: Publish/subscribe channel with a fixed set of known channels
    dispatcher: Explicit mapping of job names to async handlers
"""

from events.bus import EventBus
from events.dispatcher import JobDispatcher

__all__ = ["EventBus", "JobDispatcher"]
