"""
seedkeeper: session-aware qBittorrent automation with a seed-time cutoff policy.
"""

__version__ = "0.1.0"
