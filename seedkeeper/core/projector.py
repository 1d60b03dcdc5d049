"""
Mirrors live job progress onto an external notification surface.
"""

import logging
import time
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from seedkeeper.api.client import TorrentClient
from seedkeeper.models.job import JobSnapshot, JobState
from seedkeeper.models.tracking import MessageHandle, NotificationHandle
from seedkeeper.utils.formatting import format_duration, render_job

if TYPE_CHECKING:
    from .governor import LifecycleGovernor

log = logging.getLogger(__name__)

TERMINAL_STATES = (JobState.ERRORED, JobState.STALLED)


class ProgressProjector:
    """
    Polls tracked jobs and pushes an update whenever their progress changes.

    A handle is dropped as soon as its job reaches a terminal observation:
    completed, errored or stalled, no longer present, or an update that could
    not be delivered.
    """

    def __init__(
        self,
        client: TorrentClient,
        governor: Optional["LifecycleGovernor"] = None,
        render: Callable[[JobSnapshot], str] = render_job,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.governor = governor
        self.render = render
        self._clock = clock
        self._handles: Dict[str, NotificationHandle] = {}

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    @property
    def tracked_ids(self) -> List[str]:
        return list(self._handles)

    def begin_tracking(
        self,
        job_id: str,
        external_handle: MessageHandle,
        added_at: int,
        display_name: str,
    ) -> NotificationHandle:
        """Registers a job for live updates, replacing any earlier handle for it."""
        if job_id in self._handles:
            log.debug(f"Replacing progress handle for {display_name} ({job_id}).")
        handle = NotificationHandle(
            id=job_id,
            external_handle=external_handle,
            added_at=added_at,
            display_name=display_name,
        )
        self._handles[job_id] = handle
        log.info(f"Started tracking progress for: {display_name} ({job_id})")
        return handle

    def forget(self, job_id: str) -> None:
        self._handles.pop(job_id, None)

    def _release(self, handle: NotificationHandle) -> None:
        # Only drop the handle if it was not replaced while we were awaiting
        if self._handles.get(handle.id) is handle:
            del self._handles[handle.id]

    async def _push(self, handle: NotificationHandle, content: str) -> bool:
        try:
            await handle.external_handle.edit(content)
            return True
        except Exception as e:
            log.warning(
                f"[yellow]Failed to update message for {handle.display_name}: "
                f"{e}[/yellow]"
            )
            self._release(handle)
            return False

    async def poll(self) -> None:
        """Runs one update pass over every open handle."""
        for handle in list(self._handles.values()):
            await self._poll_one(handle)

    async def _poll_one(self, handle: NotificationHandle) -> None:
        lookup = await self.client.lookup_job(handle.id)
        if self._handles.get(handle.id) is not handle:
            return

        if lookup.error:
            log.debug(f"Could not refresh {handle.display_name}, retrying next poll.")
            return

        job = lookup.job
        if job is None:
            log.info(
                f"{handle.display_name} ({handle.id}) no longer found, stopping updates."
            )
            self._release(handle)
            await self._push(
                handle,
                f"**{handle.display_name}** - No longer found in the download "
                "client. Updates stopped.",
            )
            return

        content = f"**{handle.display_name}** (State: {job.state.value})\n"
        content += f"  {self.render(job)}\n"

        if job.progress >= 1:
            took = format_duration(self._clock() - handle.added_at)
            content += f"Status: Completed! Total time: {took}\n"
            log.info(f"{handle.display_name} completed. Total time: {took}")
            handle.is_completed = True
            self._release(handle)
            if self.governor is not None:
                self.governor.observe_completion(job)
            await self._push(handle, content)
            return

        if job.state in TERMINAL_STATES:
            content += (
                "Status: Stalled or Errored. Last known progress: "
                f"{job.progress * 100:.1f}%\n"
            )
            log.warning(
                f"[yellow]{handle.display_name} stalled or errored "
                f"(state: {job.state.value}).[/yellow]"
            )
            self._release(handle)
            await self._push(handle, content)
            return

        if job.progress != handle.last_progress and await self._push(handle, content):
            handle.last_progress = job.progress
