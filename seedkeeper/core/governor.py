"""
Seed-time cutoff policy.

Each tracked job seeds for `multiplier` times as long as it took to download,
after which it is paused. The governor learns about completions from periodic
reconciliation against the download client (and from the projector, which
usually notices first) and pauses overdue jobs in batched sweeps.
"""

import logging
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from seedkeeper.api.client import TorrentClient
from seedkeeper.models.config import DEFAULT_SEEDING_MULTIPLIER, coerce_multiplier
from seedkeeper.models.job import JobSnapshot, JobState
from seedkeeper.models.tracking import TrackingPhase, TrackingRecord
from seedkeeper.utils.formatting import format_duration

log = logging.getLogger(__name__)

EVICTABLE_PHASES = (TrackingPhase.STOPPED, TrackingPhase.VANISHED)


class LifecycleGovernor:
    """Owns the per-job timing records and enforces the seed-time cutoff."""

    def __init__(
        self,
        client: TorrentClient,
        multiplier: object = DEFAULT_SEEDING_MULTIPLIER,
        retention_seconds: float = 0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            client: Client used to list and pause jobs.
            multiplier: Seed time as a multiple of download time. Invalid values
                fall back to the default with a warning.
            retention_seconds: How long stopped or vanished records are kept.
                0 keeps them for the lifetime of the process.
            clock: Source of the current epoch time in seconds.
        """
        self.client = client
        self.multiplier = coerce_multiplier(multiplier)
        self.retention_seconds = retention_seconds
        self._clock = clock
        self._records: Dict[str, TrackingRecord] = {}

    def _now(self) -> int:
        return int(self._clock())

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def get_record(self, job_id: str) -> Optional[TrackingRecord]:
        return self._records.get(job_id)

    def track(self, snapshot: JobSnapshot) -> TrackingRecord:
        """Starts tracking a job. Tracking a known job again changes nothing."""
        if record := self._records.get(snapshot.id):
            return record

        record = TrackingRecord(
            id=snapshot.id,
            name=snapshot.name,
            download_start_time=snapshot.added_at,
            updated_at=self._clock(),
        )
        self._records[snapshot.id] = record
        log.info(f"Tracking seeding time limit for: {snapshot.name} ({snapshot.id})")
        return record

    def observe_completion(self, snapshot: JobSnapshot) -> bool:
        """
        Records the completion of a tracked job and derives its seeding stop time.

        Returns:
            True if the completion fields were set by this call.
        """
        record = self._records.get(snapshot.id)
        if record is None or record.is_completed or snapshot.progress < 1:
            return False

        now = self._now()
        record.set_completion(now, self.multiplier)
        record.updated_at = self._clock()

        stop_at = datetime.fromtimestamp(record.seeding_stop_time)
        log.info(
            f"Completed: {record.name}. Download took "
            f"{format_duration(record.download_duration)}. Seeding stops at "
            f"{stop_at:%Y-%m-%d %H:%M:%S} "
            f"(in {format_duration(record.seeding_stop_time - now)})."
        )
        return True

    def due_for_stop(self) -> List[str]:
        """
        Ids of completed, unstopped jobs whose stop time has been reached.

        Errored jobs are included, since qBittorrent keeps seeding once the
        error clears. Vanished jobs are not, as there is nothing left to pause.
        """
        now = self._now()
        return [
            job_id
            for job_id, record in self._records.items()
            if record.is_completed
            and not record.stopped
            and not record.vanished
            and now >= record.seeding_stop_time
        ]

    async def sweep(self) -> List[str]:
        """
        Pauses every job that has seeded long enough, in one batched call.

        The batch is marked stopped only if the pause succeeded; otherwise the
        same jobs are picked up again by the next sweep.

        Returns:
            The ids marked stopped by this sweep.
        """
        due = self.due_for_stop()
        if not due:
            return []

        log.info(f"Stopping seeding for {len(due)} job(s) past their time limit.")
        if not await self.client.pause(due):
            log.warning("[yellow]Failed to pause overdue jobs; will retry.[/yellow]")
            return []

        stopped = []
        for job_id in due:
            # The record may have been removed while the pause was in flight
            if record := self._records.get(job_id):
                record.stopped = True
                record.updated_at = self._clock()
                stopped.append(job_id)
                log.info(
                    f"Stopped seeding: {record.name} after "
                    f"{self.multiplier}x download time."
                )
        return stopped

    async def reconcile(self) -> None:
        """Brings the records in line with the jobs the remote currently reports."""
        result = await self.client.list_jobs()
        if not result.ok:
            log.warning(
                f"[yellow]Could not refresh jobs for seeding management: "
                f"{result.error}[/yellow]"
            )
            return

        seen = set()
        for job in result.jobs:
            seen.add(job.id)
            record = self._records.get(job.id)
            if record is None:
                if job.progress < 1:
                    self.track(job)
                continue

            if record.vanished:
                record.vanished = False
                record.updated_at = self._clock()
                log.info(f"Reported by the download client again: {record.name}")
            if not record.is_completed and job.progress >= 1:
                self.observe_completion(job)

            errored = job.state is JobState.ERRORED
            if errored != record.errored:
                record.errored = errored
                record.updated_at = self._clock()
                if errored:
                    log.warning(
                        f"[yellow]Remote reports an error for: {record.name}[/yellow]"
                    )
                else:
                    log.info(f"Recovered from error: {record.name}")

        for job_id, record in self._records.items():
            if job_id not in seen and not record.stopped and not record.vanished:
                record.vanished = True
                record.updated_at = self._clock()
                log.info(f"No longer reported by the download client: {record.name}")

        self._evict_expired()

    def _evict_expired(self) -> None:
        if self.retention_seconds <= 0:
            return
        cutoff = self._clock() - self.retention_seconds
        expired = [
            job_id
            for job_id, record in self._records.items()
            if record.phase in EVICTABLE_PHASES and record.updated_at <= cutoff
        ]
        for job_id in expired:
            del self._records[job_id]
        if expired:
            log.debug(f"Evicted {len(expired)} expired tracking record(s).")

    async def run_cycle(self) -> None:
        """One scheduled governor pass: reconcile, then sweep."""
        await self.reconcile()
        await self.sweep()

    async def manual_stop(self, job_ids: Sequence[str]) -> bool:
        """Pauses the given jobs now, regardless of their stop time."""
        if not job_ids:
            return False

        log.info(f"Manually stopping seeding for {len(job_ids)} job(s).")
        if not await self.client.pause(job_ids):
            log.warning("[yellow]Failed to manually stop some or all jobs.[/yellow]")
            return False

        for job_id in job_ids:
            if record := self._records.get(job_id):
                record.stopped = True
                record.updated_at = self._clock()
                log.info(f"Manually stopped seeding: {record.name}")
        return True

    # Command-layer surface
    def track_for_seeding(self, snapshot: JobSnapshot) -> TrackingRecord:
        return self.track(snapshot)

    def mark_completed(self, snapshot: JobSnapshot) -> bool:
        """Observes a completion, tracking the job first if it is unknown."""
        self.track(snapshot)
        return self.observe_completion(snapshot)

    def get_status(self) -> List[TrackingRecord]:
        return list(self._records.values())

    async def stop_seeding(self, job_ids: Sequence[str]) -> bool:
        return await self.manual_stop(job_ids)

    def remove_tracking(self, job_id: str) -> None:
        if record := self._records.pop(job_id, None):
            log.info(f"Removed tracking for: {record.name}")
