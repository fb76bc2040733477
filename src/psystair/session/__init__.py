"""
session
=======

Staircase run orchestration.

This subpackage provides:
- StaircaseSession : feeds responses to a controller, re-runs the convergence
  analyzer after every trial and returns a SessionOutcome
  (Converged / NotConverged / Failed).
"""

from .staircase_session import (
    Converged,
    Failed,
    FailureKind,
    NotConverged,
    SessionOutcome,
    SessionResult,
    StaircaseSession,
)

__all__ = [
    "Converged",
    "Failed",
    "FailureKind",
    "NotConverged",
    "SessionOutcome",
    "SessionResult",
    "StaircaseSession",
]
