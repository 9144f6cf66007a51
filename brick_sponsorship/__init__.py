"""Brick sponsorship donation service."""

__version__ = "1.0.0"
