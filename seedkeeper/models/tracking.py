"""
In-memory tracking state owned by the governor and the projector.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol


class TrackingPhase(Enum):
    """Where a tracked job sits in the seed-time lifecycle."""

    DOWNLOADING = "downloading"
    COMPLETED_SEEDING = "completed_seeding"
    STOPPED = "stopped"
    ERRORED = "errored"
    VANISHED = "vanished"


TERMINAL_PHASES = frozenset(
    {TrackingPhase.STOPPED, TrackingPhase.ERRORED, TrackingPhase.VANISHED}
)


@dataclass
class TrackingRecord:
    """Timing information used to derive when seeding must stop."""

    id: str
    name: str
    download_start_time: int
    download_completion_time: Optional[int] = None
    download_duration: Optional[int] = None
    seeding_stop_time: Optional[int] = None
    stopped: bool = False
    errored: bool = False
    vanished: bool = False
    # Clock value of the last phase change, used for retention
    updated_at: float = 0.0

    @property
    def is_completed(self) -> bool:
        return self.seeding_stop_time is not None

    @property
    def phase(self) -> TrackingPhase:
        if self.stopped:
            return TrackingPhase.STOPPED
        if self.vanished:
            return TrackingPhase.VANISHED
        if self.errored:
            return TrackingPhase.ERRORED
        if self.is_completed:
            return TrackingPhase.COMPLETED_SEEDING
        return TrackingPhase.DOWNLOADING

    def set_completion(self, completed_at: int, multiplier: int) -> None:
        """Sets all three completion fields in one step."""
        duration = completed_at - self.download_start_time
        self.download_completion_time, self.download_duration, self.seeding_stop_time = (
            completed_at,
            duration,
            completed_at + multiplier * duration,
        )


class MessageHandle(Protocol):
    """An editable message on the external notification surface."""

    async def edit(self, content: str) -> None: ...


@dataclass
class NotificationHandle:
    """Live-progress subscription for one job."""

    id: str
    external_handle: Any = field(repr=False)
    added_at: int
    display_name: str
    last_progress: float = 0.0
    is_completed: bool = False
