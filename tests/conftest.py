"""Shared pytest fixtures: an in-process fake qBittorrent WebUI and test doubles."""

import time
from typing import Optional

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from seedkeeper.api.client import TorrentClient
from seedkeeper.models.config import Credentials
from seedkeeper.models.job import JobLookupResult, JobSnapshot, ListJobsResult
from seedkeeper.utils.magnet import extract_info_hash

USERNAME = "admin"
PASSWORD = "adminadmin"

HASH_A = "a" * 40
HASH_B = "b" * 40


def job_record(job_id: str = HASH_A, **fields) -> dict:
    """A raw torrents/info record as qBittorrent would return it."""
    record = {
        "hash": job_id,
        "name": f"Job {job_id[:4]}",
        "state": "downloading",
        "progress": 0.0,
        "dlspeed": 0,
        "num_seeds": 0,
        "num_leechs": 0,
        "save_path": "/downloads",
        "size": 1024,
        "added_on": 1_000_000,
        "completion_on": -1,
    }
    record.update(fields)
    return record


class FakeQbittorrent:
    """Minimal WebUI API v2 implementation backed by in-memory state."""

    def __init__(self):
        self.jobs: list[dict] = []
        self.calls: list[str] = []
        self.login_calls = 0
        self.valid_sids: set[str] = set()
        self.reject_all = False
        self.pause_available = True
        self.add_response = "Ok."
        self.info_body: Optional[str] = None
        self.register_added = True
        self.added: list[dict] = []
        self.paused: list[tuple[str, list[str]]] = []
        self.deleted: list[tuple[list[str], str]] = []
        self.url = ""

        self.app = web.Application()
        self.app.router.add_post("/api/v2/auth/login", self.login)
        self.app.router.add_get("/api/v2/torrents/info", self.info)
        self.app.router.add_post("/api/v2/torrents/add", self.add)
        self.app.router.add_post("/api/v2/torrents/pause", self.pause)
        self.app.router.add_post("/api/v2/torrents/stop", self.stop)
        self.app.router.add_post("/api/v2/torrents/delete", self.delete)

    def expire_sessions(self) -> None:
        self.valid_sids.clear()

    def count(self, endpoint: str) -> int:
        return self.calls.count(endpoint)

    def _check_session(self, request: web.Request, endpoint: str) -> None:
        self.calls.append(endpoint)
        if self.reject_all or request.cookies.get("SID") not in self.valid_sids:
            raise web.HTTPForbidden(text="Forbidden")

    async def login(self, request: web.Request) -> web.Response:
        self.login_calls += 1
        form = await request.post()
        if form.get("username") != USERNAME or form.get("password") != PASSWORD:
            return web.Response(text="Fails.")
        sid = f"sid-{self.login_calls}"
        self.valid_sids.add(sid)
        response = web.Response(text="Ok.")
        response.set_cookie("SID", sid)
        return response

    async def info(self, request: web.Request) -> web.Response:
        self._check_session(request, "info")
        if self.info_body is not None:
            return web.Response(text=self.info_body, content_type="text/html")
        jobs = self.jobs
        if hashes := request.query.get("hashes"):
            wanted = {h.lower() for h in hashes.split("|")}
            jobs = [job for job in jobs if job["hash"].lower() in wanted]
        return web.json_response(jobs)

    async def add(self, request: web.Request) -> web.Response:
        self._check_session(request, "add")
        form = dict(await request.post())
        self.added.append(form)
        if self.add_response == "Ok." and self.register_added:
            job_id = extract_info_hash(form["urls"]) or f"{len(self.jobs) + 1:040x}"
            self.jobs.append(job_record(job_id, added_on=int(time.time())))
        return web.Response(text=self.add_response)

    async def pause(self, request: web.Request) -> web.Response:
        self._check_session(request, "pause")
        if not self.pause_available:
            raise web.HTTPNotFound()
        form = await request.post()
        self.paused.append(("pause", form["hashes"].split("|")))
        return web.Response(text="")

    async def stop(self, request: web.Request) -> web.Response:
        self._check_session(request, "stop")
        form = await request.post()
        self.paused.append(("stop", form["hashes"].split("|")))
        return web.Response(text="")

    async def delete(self, request: web.Request) -> web.Response:
        self._check_session(request, "delete")
        form = await request.post()
        self.deleted.append((form["hashes"].split("|"), form["deleteFiles"]))
        return web.Response(text="")


@pytest_asyncio.fixture
async def fake_remote():
    """A running fake WebUI; its base URL is available as `.url`."""
    fake = FakeQbittorrent()
    server = TestServer(fake.app)
    await server.start_server()
    fake.url = str(server.make_url("/"))
    yield fake
    await server.close()


@pytest.fixture
def credentials(fake_remote) -> Credentials:
    return Credentials(url=fake_remote.url, username=USERNAME, password=PASSWORD)


@pytest_asyncio.fixture
async def client(credentials):
    """A TorrentClient pointed at the fake WebUI, with fast new-job polling."""
    torrent_client = TorrentClient(credentials, timeout=5)
    torrent_client.NEW_JOB_POLL_INTERVAL = 0
    yield torrent_client
    await torrent_client.close()


def snapshot(job_id: str = HASH_A, **fields) -> JobSnapshot:
    return JobSnapshot.from_api(job_record(job_id, **fields))


class FakeClock:
    """Injectable clock; call it to read the current epoch seconds."""

    def __init__(self, now: float = 1_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeClient:
    """Stands in for TorrentClient in governor and projector tests."""

    def __init__(self):
        self.jobs: dict[str, JobSnapshot] = {}
        self.list_error: Optional[str] = None
        self.lookup_error: Optional[str] = None
        self.pause_result = True
        self.pause_calls: list[list[str]] = []
        self.lookup_calls = 0

    def put(self, job_id: str = HASH_A, **fields) -> JobSnapshot:
        job = snapshot(job_id, **fields)
        self.jobs[job_id] = job
        return job

    def remove(self, job_id: str) -> None:
        self.jobs.pop(job_id, None)

    async def list_jobs(self) -> ListJobsResult:
        if self.list_error:
            return ListJobsResult(error=self.list_error)
        return ListJobsResult(jobs=list(self.jobs.values()))

    async def lookup_job(self, job_id: str) -> JobLookupResult:
        self.lookup_calls += 1
        if self.lookup_error:
            return JobLookupResult(error=self.lookup_error)
        return JobLookupResult(job=self.jobs.get(job_id))

    async def pause(self, job_ids) -> bool:
        self.pause_calls.append(list(job_ids))
        return self.pause_result


class FakeMessage:
    """Records edits pushed to an external message."""

    def __init__(self, fail: bool = False):
        self.edits: list[str] = []
        self.fail = fail

    async def edit(self, content: str) -> None:
        if self.fail:
            raise RuntimeError("message was deleted")
        self.edits.append(content)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()
