"""Exceptions that abort a consensus run."""

from __future__ import annotations


class ConsensusError(RuntimeError):
    """Base class for fatal consensus errors."""


class ConfigurationError(ConsensusError):
    """Raised when the requested output mode does not fit the input data."""


class InvariantViolation(ConsensusError):
    """Raised when the input is corrupt or an upstream tool produced bad coordinates.

    Continuing would silently corrupt the pileup counts, so the run stops.
    """
