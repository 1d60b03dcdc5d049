"""
The main orchestrator tying the client, governor and projector together.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, Sequence

from seedkeeper.api.client import TorrentClient
from seedkeeper.exceptions import SeedkeeperError
from seedkeeper.models.config import AppConfig
from seedkeeper.models.job import AddJobResult, JobSnapshot, ListJobsResult
from seedkeeper.models.tracking import MessageHandle, TrackingRecord
from seedkeeper.utils.magnet import display_name_from_magnet

from .governor import LifecycleGovernor
from .projector import ProgressProjector
from .scheduler import PeriodicTask

log = logging.getLogger(__name__)

# Posts the initial message for a job and returns a handle to edit it later
NotifyFactory = Callable[[str], Awaitable[MessageHandle]]


class SeedManager:
    """Runs the seed-time policy and live progress tracking for one client."""

    DISCOVERY_DELAY = 2.0
    DISCOVERY_WINDOW = 30

    def __init__(
        self,
        config: AppConfig,
        client: Optional[TorrentClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.client = client or TorrentClient(
            config.credentials, timeout=config.request_timeout
        )
        self._clock = clock
        self.governor = LifecycleGovernor(
            self.client,
            multiplier=config.seeding_multiplier,
            retention_seconds=config.tracking_retention_hours * 3600,
            clock=clock,
        )
        self.projector = ProgressProjector(self.client, self.governor, clock=clock)
        self.poll_task = PeriodicTask(
            "progress-poll", config.poll_interval, self.projector.poll
        )
        self.sweep_task = PeriodicTask(
            "seeding-sweep",
            config.sweep_interval,
            self.governor.run_cycle,
            run_immediately=True,
        )

    async def start(self) -> None:
        """Logs in and starts both timers."""
        try:
            if await self.client.authenticate():
                log.info("[green]✓ Logged in to the download client.[/green]")
            else:
                log.warning(
                    "[yellow]Initial login failed. Check the configuration and "
                    "the WebUI status.[/yellow]"
                )
        except SeedkeeperError as e:
            log.warning(f"[yellow]Initial login failed: {e}[/yellow]")

        self.sweep_task.start()
        self.poll_task.start()
        log.info(
            f"Seeding manager started with {self.governor.multiplier}x download time "
            f"limit. Checking every {self.config.sweep_interval:g}s, polling "
            f"progress every {self.config.poll_interval:g}s."
        )

    async def stop(self) -> None:
        await self.poll_task.stop()
        await self.sweep_task.stop()
        await self.client.close()

    async def __aenter__(self) -> "SeedManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    async def add_job(
        self,
        source: str,
        category: Optional[str] = None,
        notify: Optional[NotifyFactory] = None,
    ) -> AddJobResult:
        """
        Submits a magnet link and registers the new job for seeding management.

        Args:
            source: Magnet link to add.
            category: Download category used to pick the save path.
            notify: Optional factory for a live-progress message.
        """
        save_path = self.config.save_path_for(category)
        result = await self.client.add_job(source, save_path)
        if not result.success:
            return result

        job = result.job
        display_name = display_name_from_magnet(source)
        if job is None:
            job = await self._discover_recent_job()
            if job is None:
                log.warning(
                    "[yellow]Job was added but could not be located for "
                    "tracking.[/yellow]"
                )
                return result
            display_name = display_name or job.name
            result = AddJobResult(success=True, job=job)

        self.governor.track(job)
        if notify is not None:
            name = display_name or job.name or "Unknown Torrent"
            await self._begin_progress(job, name, notify)
        return result

    async def _discover_recent_job(self) -> Optional[JobSnapshot]:
        """Falls back to the newest job added within the last few seconds."""
        await asyncio.sleep(self.DISCOVERY_DELAY)
        listing = await self.client.list_jobs()
        if not listing.ok or not listing.jobs:
            return None
        latest = max(listing.jobs, key=lambda job: job.added_at)
        if self._clock() - latest.added_at < self.DISCOVERY_WINDOW:
            return latest
        return None

    async def _begin_progress(
        self, job: JobSnapshot, display_name: str, notify: NotifyFactory
    ) -> None:
        try:
            handle = await notify(f"🌱 **{display_name}**\nInitializing torrent...")
        except Exception as e:
            log.error(f"[red]Failed to set up progress tracking for {display_name}: {e}[/red]")
            return
        self.projector.begin_tracking(job.id, handle, job.added_at, display_name)

    async def delete_jobs(self, job_ids: Sequence[str], purge_files: bool) -> bool:
        """Deletes jobs remotely and drops all local tracking for them."""
        if not await self.client.delete(job_ids, purge_files):
            return False
        for job_id in job_ids:
            self.governor.remove_tracking(job_id)
            self.projector.forget(job_id)
        log.info(
            f"Deleted {len(job_ids)} job(s)"
            f"{' and their files' if purge_files else ''}."
        )
        return True

    async def stop_seeding(self, job_ids: Sequence[str]) -> bool:
        return await self.governor.stop_seeding(job_ids)

    async def seeding_jobs(self) -> ListJobsResult:
        return await self.client.list_seeding_jobs()

    def status(self) -> List[TrackingRecord]:
        return self.governor.get_status()
