"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that define the core
data structures used throughout the application: configuration, job snapshots
from the download client, and the in-memory tracking records.
"""

from .config import AppConfig, Credentials
from .job import AddJobResult, JobLookupResult, JobSnapshot, JobState, ListJobsResult
from .tracking import NotificationHandle, TrackingPhase, TrackingRecord

__all__ = [
    "AddJobResult",
    "AppConfig",
    "Credentials",
    "JobLookupResult",
    "JobSnapshot",
    "JobState",
    "ListJobsResult",
    "NotificationHandle",
    "TrackingPhase",
    "TrackingRecord",
]
