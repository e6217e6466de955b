"""Timer sources driving the simulation."""

from weldcell.scheduling.asyncio_scheduler import AsyncioScheduler
from weldcell.scheduling.base import Scheduler, TimerCallback, TimerHandle
from weldcell.scheduling.virtual import VirtualScheduler, VirtualTimer

__all__ = [
    "AsyncioScheduler",
    "Scheduler",
    "TimerCallback",
    "TimerHandle",
    "VirtualScheduler",
    "VirtualTimer",
]
