"""Exception types raised by the phasebot core."""

from __future__ import annotations


class PhasebotError(Exception):
    """Base class for every error raised by this package."""


class TaskLifecycleError(PhasebotError):
    """A Task method was called out of its initialize/update/finish order."""


class CaptureError(PhasebotError):
    """The camera failed to deliver a frame. Transient; the worker retries."""


class CalibrationError(PhasebotError):
    """A calibration file exists but its contents cannot be used."""


class UnknownPhaseError(PhasebotError, ValueError):
    """The scheduler was asked for a phase it has no factory for."""


class PhaseLifecycleError(PhasebotError):
    """A Phase entry point was invoked out of init/update/finish order."""
