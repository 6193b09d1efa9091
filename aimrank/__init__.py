"""Aimrank: ranked progress and skill anchoring for aim-training runs."""

__version__ = "1.0.0"
