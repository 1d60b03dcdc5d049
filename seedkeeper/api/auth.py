"""
Handles authentication with the qBittorrent WebUI, including credential login
and the session token used by every other call.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

import aiohttp

from seedkeeper.exceptions import (
    AuthenticationError,
    ConfigurationError,
    RemoteUnavailableError,
)

if TYPE_CHECKING:
    from .client import TorrentClient

log = logging.getLogger(__name__)

SESSION_COOKIE = "SID"


class SessionAuthenticator:
    """
    Owns the session token for one TorrentClient.

    The token is acquired lazily, replaced on every successful login and
    cleared when the remote stops accepting it.
    """

    LOGIN_ENDPOINT = "auth/login"

    def __init__(self, api_client: "TorrentClient"):
        """
        Initializes the authenticator.

        Args:
            api_client: A reference to the TorrentClient that owns this session.
        """
        self._api_client = api_client
        self._sid: str = ""

    @property
    def sid(self) -> str:
        return self._sid

    @property
    def is_authenticated(self) -> bool:
        return bool(self._sid)

    def invalidate(self) -> None:
        """Forgets the cached session so the next call logs in again."""
        self._sid = ""

    async def authenticate(self) -> bool:
        """
        Logs in with the configured credentials.

        Returns:
            True if the remote accepted the credentials and issued a session.

        Raises:
            ConfigurationError: If the URL or credentials are missing. No request
            is made in that case.
            RemoteUnavailableError: If the download client cannot be reached.
        """
        credentials = self._api_client.credentials
        if not credentials.is_complete:
            raise ConfigurationError(
                "Download client URL, username or password is not configured."
            )

        session = await self._api_client.http_session()
        url = self._api_client.endpoint_url(self.LOGIN_ENDPOINT)
        payload = {"username": credentials.username, "password": credentials.password}

        try:
            async with session.post(
                url, data=payload, headers={"Referer": credentials.url}
            ) as r:
                body = (await r.text()).strip()
                if r.status != 200 or body != "Ok.":
                    log.warning(
                        f"[yellow]Login to {credentials.url} rejected "
                        f"(HTTP {r.status}: {body or 'no body'}).[/yellow]"
                    )
                    return False

                morsel = r.cookies.get(SESSION_COOKIE)
                if morsel is None or not morsel.value:
                    log.warning(
                        "[yellow]Login succeeded but no session cookie was "
                        "issued.[/yellow]"
                    )
                    return False

                self._sid = morsel.value
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteUnavailableError(
                f"Could not reach download client at {credentials.url}: {e}"
            ) from e

        log.debug(f"Authenticated as {credentials.username} at {credentials.url}.")
        return True

    async def ensure_session(self) -> None:
        """Logs in if no session is cached yet."""
        if self._sid:
            return
        if not await self.authenticate():
            raise AuthenticationError(
                "Failed to log in to the download client. "
                "Check the credentials and WebUI settings."
            )

    async def reauthenticate(self) -> None:
        """Replaces an expired session with a fresh one, exactly once."""
        self.invalidate()
        log.debug("Session expired; logging in again.")
        if not await self.authenticate():
            raise AuthenticationError(
                "Failed to log in to the download client after session expiry."
            )
