"""
Helper functions for formatting data into human-readable strings.
"""

import math

from seedkeeper.models.job import JobSnapshot

BAR_LENGTH = 20


def format_size(bytes_size: float) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_speed(bytes_per_second: float) -> str:
    """Formats a transfer rate (e.g., '1.5 MB/s')."""
    if bytes_per_second <= 0:
        return "0 B/s"
    units = ["B/s", "KB/s", "MB/s", "GB/s", "TB/s"]
    i = min(int(math.log(bytes_per_second, 1024)), len(units) - 1)
    value = round(bytes_per_second / 1024**i, 2)
    return f"{value:g} {units[i]}"


def format_duration(seconds: float) -> str:
    """
    Formats a duration in seconds (e.g., '1h 23m 45s', '45m 30s', '12s').

    Minutes are always shown once hours are.
    """
    s = max(int(seconds), 0)
    hours, remainder = divmod(s, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or hours > 0:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


def create_progress_bar(
    progress: float,
    download_rate: float | None = None,
    seeds: int | None = None,
    leechers: int | None = None,
) -> str:
    """Builds a text progress bar followed by optional transfer statistics."""
    progress = min(max(progress, 0.0), 1.0)
    filled = round(BAR_LENGTH * progress)
    bar = "❚" * filled + " " * (BAR_LENGTH - filled)

    stats = ""
    if download_rate is not None:
        stats += f" | ↓ {format_speed(download_rate)}"
    if seeds is not None:
        stats += f" | S: {seeds}"
    if leechers is not None:
        stats += f" | L: {leechers}"
    return f"[{bar}] {progress * 100:.2f}%{stats}"


def render_job(job: JobSnapshot) -> str:
    """Default live-progress rendering for one job."""
    return create_progress_bar(job.progress, job.download_rate, job.seeds, job.leechers)
