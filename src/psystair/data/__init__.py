"""
psystair.data
=============

submodule for staircase trial data.

Includes:
- trial: Direction, Trial, ReversalPoint, StaircaseState
"""

from .trial import Direction, ReversalPoint, StaircaseState, Trial

__all__ = ["Direction", "ReversalPoint", "StaircaseState", "Trial"]
