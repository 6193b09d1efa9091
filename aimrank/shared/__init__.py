"""Shared utilities used across aimrank modules."""
