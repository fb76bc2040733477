"""
errors.py
---------

Typed failures raised by psystair.

Two families:
- Fatal misuse (configuration or usage errors) -> exceptions.
- Recoverable numeric degradation -> NumericAnomalyWarning, emitted via
  ``warnings.warn`` and recorded in the controller's diagnostics.

All exception classes subclass the built-in type a caller would already
catch (ValueError for bad values, RuntimeError for out-of-order calls).
"""

from __future__ import annotations


class StaircaseError(Exception):
    """Base class for all psystair errors."""


class ConfigurationError(StaircaseError, ValueError):
    """Invalid configuration detected at construction time."""


class InvalidResponseError(StaircaseError, ValueError):
    """A trial response carried an invalid value (e.g. negative reaction time)."""


class StaircaseCompletedError(StaircaseError, RuntimeError):
    """record_trial() was called after the staircase reached a terminal state."""


class StaircaseNotCompleteError(StaircaseError, RuntimeError):
    """A terminal result was requested before the staircase terminated."""


class InsufficientDataError(StaircaseError, ValueError):
    """Fewer samples than required for the requested statistic."""


class NonFiniteInputError(StaircaseError, ValueError):
    """NaN or infinite values were passed to a statistics function."""


class NumericAnomalyWarning(RuntimeWarning):
    """A non-finite intermediate value was replaced by a last known-good value."""
