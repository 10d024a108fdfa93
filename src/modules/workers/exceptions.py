"""Worker domain exceptions."""

from __future__ import annotations


class WorkerNotFound(Exception):
    """A referenced worker does not exist, is inactive or was soft-deleted."""
