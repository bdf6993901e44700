"""Supervisor for a single long-running game server process."""

__version__ = "0.1.0"
