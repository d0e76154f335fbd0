"""Utility modules for coursetrack."""

from coursetrack.utils.timestamps import ensure_utc_aware


__all__ = ["ensure_utc_aware"]
