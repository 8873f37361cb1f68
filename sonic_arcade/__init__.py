"""Sonic Arcade play-to-earn automation."""

__version__ = "1.0.0"
