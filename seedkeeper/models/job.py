"""
Models for jobs reported by the download client.

Raw qBittorrent records are parsed into JobSnapshot at the API boundary so the
rest of the application only ever sees the closed JobState enumeration.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class JobState(Enum):
    """Lifecycle state of a job as reported by the remote client."""

    DOWNLOADING = "downloading"
    SEEDING = "seeding"
    STALLED = "stalled"
    ERRORED = "errored"
    CHECKING = "checking"
    MOVING = "moving"
    UNKNOWN = "unknown"


# Raw qBittorrent state -> JobState
STATE_MAP: dict[str, JobState] = {
    "downloading": JobState.DOWNLOADING,
    "forceddl": JobState.DOWNLOADING,
    "metadl": JobState.DOWNLOADING,
    "forcedmetadl": JobState.DOWNLOADING,
    "queueddl": JobState.DOWNLOADING,
    "allocating": JobState.DOWNLOADING,
    "pauseddl": JobState.DOWNLOADING,
    "stoppeddl": JobState.DOWNLOADING,
    "uploading": JobState.SEEDING,
    "forcedup": JobState.SEEDING,
    "queuedup": JobState.SEEDING,
    "pausedup": JobState.SEEDING,
    "stoppedup": JobState.SEEDING,
    "stalleddl": JobState.STALLED,
    "stalledup": JobState.STALLED,
    "error": JobState.ERRORED,
    "missingfiles": JobState.ERRORED,
    "checkingdl": JobState.CHECKING,
    "checkingup": JobState.CHECKING,
    "checkingresumedata": JobState.CHECKING,
    "moving": JobState.MOVING,
}

PAUSED_STATES = {"pauseddl", "pausedup", "stoppeddl", "stoppedup"}


def parse_state(raw_state: Any) -> JobState:
    """Maps a raw remote state string onto JobState."""
    if isinstance(raw_state, JobState):
        return raw_state
    return STATE_MAP.get(str(raw_state or "").strip().lower(), JobState.UNKNOWN)


class JobSnapshot(BaseModel):
    """A read-only view of one job, re-fetched from the remote on every use."""

    id: str = Field(alias="hash")
    name: str = ""
    state: JobState = JobState.UNKNOWN
    paused: bool = False
    progress: float = 0.0
    download_rate: int = Field(0, alias="dlspeed")
    seeds: int = Field(0, alias="num_seeds")
    leechers: int = Field(0, alias="num_leechs")
    save_path: str = ""
    size: int = 0
    added_at: int = Field(0, alias="added_on")
    completed_at: Optional[int] = Field(None, alias="completion_on")

    class Config:
        """Pydantic model configuration."""

        frozen = True
        populate_by_name = True
        extra = "ignore"

    @model_validator(mode="before")
    @classmethod
    def derive_paused(cls, data: Any) -> Any:
        """Reads the paused flag from the raw state before it is collapsed."""
        if isinstance(data, dict) and "paused" not in data:
            raw_state = str(data.get("state", "")).strip().lower()
            data = {**data, "paused": raw_state in PAUSED_STATES}
        return data

    @field_validator("state", mode="before")
    @classmethod
    def validate_state(cls, v: Any) -> JobState:
        return parse_state(v)

    @field_validator("progress")
    @classmethod
    def clamp_progress(cls, v: float) -> float:
        return min(max(v, 0.0), 1.0)

    @field_validator("completed_at")
    @classmethod
    def validate_completed_at(cls, v: Optional[int]) -> Optional[int]:
        """qBittorrent reports -1 or 0 for jobs that have not completed."""
        if v is None or v <= 0:
            return None
        return v

    @property
    def is_complete(self) -> bool:
        return self.progress >= 1

    @property
    def is_seeding(self) -> bool:
        """True for finished, unpaused jobs that are still sharing."""
        return (
            self.is_complete
            and not self.paused
            and self.state in (JobState.SEEDING, JobState.STALLED, JobState.CHECKING)
        )

    @property
    def peer_counts(self) -> tuple[int, int]:
        return self.seeds, self.leechers

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "JobSnapshot":
        return cls.model_validate(record)


@dataclass
class AddJobResult:
    success: bool
    job: Optional[JobSnapshot] = None
    error: Optional[str] = None


@dataclass
class ListJobsResult:
    jobs: Optional[list[JobSnapshot]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.jobs is not None


@dataclass
class JobLookupResult:
    """Result of fetching one job: absent is job=None with no error."""

    job: Optional[JobSnapshot] = None
    error: Optional[str] = None
