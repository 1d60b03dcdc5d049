"""
Download Client API Layer.

This package handles all communication with the qBittorrent WebUI API.
"""

from .auth import SessionAuthenticator
from .client import TorrentClient

__all__ = ["SessionAuthenticator", "TorrentClient"]
