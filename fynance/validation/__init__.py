"""Snapshot validation package."""

from fynance.validation.validator import SnapshotValidator

__all__ = ["SnapshotValidator"]
