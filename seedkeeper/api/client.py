"""
Async client for the qBittorrent WebUI API (v2) with transparent session recovery.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
from pydantic import ValidationError

from seedkeeper.exceptions import (
    AuthenticationError,
    ConfigurationError,
    RemoteRequestError,
    RemoteUnavailableError,
    SeedkeeperError,
    SessionExpiredError,
)
from seedkeeper.models.config import Credentials
from seedkeeper.models.job import (
    AddJobResult,
    JobLookupResult,
    JobSnapshot,
    ListJobsResult,
)
from seedkeeper.utils.magnet import extract_info_hash

from .auth import SESSION_COOKIE, SessionAuthenticator

log = logging.getLogger(__name__)


class TorrentClient:
    """
    Session-aware async client for a remote qBittorrent instance.

    Features:
    - Lazy login, with the session cookie owned by this instance
    - One re-login and one retry when the remote rejects the session
    - Discriminated results for every expected remote failure
    """

    API_PREFIX = "/api/v2/"
    NEW_JOB_POLL_ATTEMPTS = 5
    NEW_JOB_POLL_INTERVAL = 0.5

    def __init__(self, credentials: Credentials, timeout: float = 30.0):
        """
        Initializes the API client.

        Args:
            credentials: URL, username and password of the WebUI.
            timeout: Total timeout in seconds for a single HTTP request.
        """
        self._credentials = credentials
        self.timeout = timeout

        self._session: Optional[aiohttp.ClientSession] = None
        self._authenticator = SessionAuthenticator(self)

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def authenticator(self) -> SessionAuthenticator:
        """Provides access to the authentication helper."""
        return self._authenticator

    def endpoint_url(self, endpoint: str) -> str:
        return f"{self._credentials.url}{self.API_PREFIX}{endpoint}"

    async def http_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                # The session cookie is managed explicitly by the authenticator
                cookie_jar=aiohttp.DummyCookieJar(),
                timeout=aiohttp.ClientTimeout(total=self.timeout, connect=10),
            )
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "TorrentClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def authenticate(self) -> bool:
        return await self._authenticator.authenticate()

    async def _send(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, str]] = None,
        multipart: bool = False,
        expect_json: bool = False,
    ) -> Any:
        """Performs a single HTTP call with the current session cookie."""
        session = await self.http_session()
        headers = {"Referer": self._credentials.url}
        if sid := self._authenticator.sid:
            headers["Cookie"] = f"{SESSION_COOKIE}={sid}"

        body: Any = data
        if multipart and data is not None:
            # FormData is consumed on send, so it is rebuilt for every attempt
            body = aiohttp.FormData()
            for key, value in data.items():
                body.add_field(key, value)

        try:
            async with session.request(
                method,
                self.endpoint_url(endpoint),
                params=params,
                data=body,
                headers=headers,
            ) as r:
                if r.status in (401, 403):
                    raise SessionExpiredError(
                        f"Session rejected by download client (HTTP {r.status})."
                    )
                if r.status >= 400:
                    text = (await r.text()).strip()
                    raise RemoteRequestError(
                        r.status, f"HTTP {r.status} from '{endpoint}': {text}"
                    )
                if expect_json:
                    try:
                        return await r.json(content_type=None)
                    except ValueError as e:
                        raise RemoteRequestError(
                            r.status, f"Invalid JSON from '{endpoint}': {e}"
                        ) from e
                return await r.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteUnavailableError(
                f"Request to '{endpoint}' failed: {str(e) or type(e).__name__}"
            ) from e

    async def request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """
        Makes an authenticated call, recovering once from an expired session.

        Raises:
            ConfigurationError: URL or credentials missing; nothing is sent.
            AuthenticationError: Login failed, or the retried call was rejected too.
            RemoteUnavailableError: Network failure or timeout.
            RemoteRequestError: Any other non-2xx response.
        """
        if not self._credentials.is_complete:
            raise ConfigurationError(
                "Download client URL, username or password is not configured."
            )

        await self._authenticator.ensure_session()
        try:
            return await self._send(method, endpoint, **kwargs)
        except SessionExpiredError:
            log.debug(f"Session expired during '{endpoint}', re-authenticating.")

        await self._authenticator.reauthenticate()
        try:
            return await self._send(method, endpoint, **kwargs)
        except SessionExpiredError as e:
            raise AuthenticationError(
                f"Download client rejected '{endpoint}' again after re-authentication."
            ) from e

    @staticmethod
    def _parse_jobs(payload: Any) -> List[JobSnapshot]:
        """
        Parses a torrents/info payload, skipping malformed records.

        Raises:
            RemoteRequestError: If the payload is not a JSON array.
        """
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise RemoteRequestError(
                200, f"Expected a list of jobs, got {type(payload).__name__}."
            )

        jobs = []
        for record in payload:
            if not isinstance(record, dict):
                log.warning(f"[yellow]Skipping malformed job record: {record!r}[/yellow]")
                continue
            try:
                jobs.append(JobSnapshot.from_api(record))
            except ValidationError as e:
                log.warning(f"[yellow]Skipping malformed job record: {e}[/yellow]")
        return jobs

    # Public API Methods
    async def list_jobs(self) -> ListJobsResult:
        try:
            payload = await self.request("GET", "torrents/info", expect_json=True)
            jobs = self._parse_jobs(payload)
        except SeedkeeperError as e:
            log.warning(f"[yellow]Error fetching jobs: {e}[/yellow]")
            return ListJobsResult(error=str(e))
        return ListJobsResult(jobs=jobs)

    async def list_seeding_jobs(self) -> ListJobsResult:
        result = await self.list_jobs()
        if not result.ok:
            return result
        return ListJobsResult(jobs=[job for job in result.jobs if job.is_seeding])

    async def lookup_job(self, job_id: str) -> JobLookupResult:
        """Fetches one job; an absent job is reported without an error."""
        try:
            payload = await self.request(
                "GET", "torrents/info", params={"hashes": job_id}, expect_json=True
            )
            jobs = self._parse_jobs(payload)
        except SeedkeeperError as e:
            log.debug(f"Lookup of job {job_id} failed: {e}")
            return JobLookupResult(error=str(e))

        for job in jobs:
            if job.id.lower() == job_id.lower():
                return JobLookupResult(job=job)
        return JobLookupResult()

    async def get_job(self, job_id: str) -> Optional[JobSnapshot]:
        return (await self.lookup_job(job_id)).job

    async def add_job(self, source: str, save_path: Optional[str] = None) -> AddJobResult:
        """
        Adds a job from a magnet link.

        When the remote accepts the link, the new job is looked up by its
        info-hash a few times, since qBittorrent registers it asynchronously.
        """
        if not source or not source.strip():
            return AddJobResult(success=False, error="No source provided.")

        form = {"urls": source.strip()}
        if save_path:
            form["savepath"] = save_path

        try:
            body = await self.request("POST", "torrents/add", data=form, multipart=True)
        except SeedkeeperError as e:
            log.warning(f"[yellow]Error adding job: {e}[/yellow]")
            return AddJobResult(success=False, error=str(e))

        if body.strip() != "Ok.":
            return AddJobResult(
                success=False,
                error=f"Unexpected response from download client: {body.strip()}",
            )

        info_hash = extract_info_hash(source)
        if not info_hash:
            return AddJobResult(success=True)

        job = None
        for _ in range(self.NEW_JOB_POLL_ATTEMPTS):
            await asyncio.sleep(self.NEW_JOB_POLL_INTERVAL)
            if job := await self.get_job(info_hash):
                break
        return AddJobResult(success=True, job=job)

    async def pause(self, job_ids: Sequence[str]) -> bool:
        """
        Pauses the given jobs in a single call.

        qBittorrent 5 renamed the endpoint to 'torrents/stop', so a 404 from
        'torrents/pause' falls through to it.
        """
        if not job_ids:
            return False

        data = {"hashes": "|".join(job_ids)}
        for endpoint in ("torrents/pause", "torrents/stop"):
            try:
                await self.request("POST", endpoint, data=data)
                return True
            except RemoteRequestError as e:
                if e.status == 404:
                    log.debug(f"Endpoint '{endpoint}' not available, trying next.")
                    continue
                log.warning(f"[yellow]Error pausing jobs: {e}[/yellow]")
                return False
            except SeedkeeperError as e:
                log.warning(f"[yellow]Error pausing jobs: {e}[/yellow]")
                return False
        return False

    async def delete(self, job_ids: Sequence[str], purge_files: bool) -> bool:
        if not job_ids:
            return False

        data = {
            "hashes": "|".join(job_ids),
            "deleteFiles": "true" if purge_files else "false",
        }
        try:
            await self.request("POST", "torrents/delete", data=data)
            return True
        except SeedkeeperError as e:
            log.warning(f"[yellow]Error deleting jobs: {e}[/yellow]")
            return False
