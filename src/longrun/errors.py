# src/longrun/errors.py

"""Exceptions raised by the run registry and its storage/scheduler backends."""

from __future__ import annotations


class LongRunError(Exception):
    """Base class for all longrun failures."""


class SetupFailed(LongRunError):
    """Setup could not create a trigger and persist its state; nothing was kept."""


class PersistenceFailure(LongRunError):
    """The property store was unavailable or rejected a read/write."""


class SchedulerFailure(LongRunError):
    """The scheduler could not create, list or delete a trigger."""
