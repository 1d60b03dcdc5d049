"""
Helpers for reading information out of magnet-style source URIs.
"""

import base64
import binascii
import string
from typing import Optional
from urllib.parse import parse_qs, urlparse


def normalize_info_hash(value: Optional[str]) -> Optional[str]:
    """
    Normalizes an info-hash to the lowercase hex form used by qBittorrent.

    Accepts 40-character hex hashes and 32-character base32 hashes.
    """
    if not value:
        return None
    trimmed = value.strip()
    if len(trimmed) == 40 and all(ch in string.hexdigits for ch in trimmed):
        return trimmed.lower()
    if len(trimmed) == 32:
        try:
            return base64.b32decode(trimmed.upper()).hex()
        except (binascii.Error, ValueError):
            return None
    return None


def extract_info_hash(source: str) -> Optional[str]:
    """Extracts the BitTorrent info-hash from a magnet link's xt=urn:btih: field."""
    parsed = urlparse(source.strip())
    if parsed.scheme != "magnet":
        return None
    for qualifier in parse_qs(parsed.query).get("xt", []):
        if qualifier.lower().startswith("urn:btih:"):
            if info_hash := normalize_info_hash(qualifier.split(":")[-1]):
                return info_hash
    return None


def display_name_from_magnet(source: str) -> Optional[str]:
    """Returns the magnet's dn (display name) parameter, if present."""
    query = source[source.find("?") + 1 :] if "?" in source else ""
    names = parse_qs(query).get("dn")
    return names[0] if names else None
