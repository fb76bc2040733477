"""
Central pytest configuration for this project.

This file is automatically discovered by pytest and is intended for:

- **Fixtures**: reusable objects or setup logic shared across multiple test files.
- **Helpers**: small builders for Trial sequences used by the analysis tests.

Notes
-----
- Contributors should
  install the package in editable mode (`pip install -e .[test]`) so that imports are resolved
  consistently in local dev and CI environments.
- Keep this file focused on test setup. Do not add application logic here.
"""

from datetime import datetime, timedelta, timezone

import pytest

from psystair.data import Direction, Trial
from psystair.staircase import Rule, StaircaseConfig

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TickingClock:
    """Deterministic clock: every call advances one second."""

    def __init__(self, start=START, step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self):
        current = self.now
        self.now = current + self.step
        return current


def make_trials(levels, responses, reversals=None, directions=None, steps=None):
    """Build a Trial sequence from parallel lists (timestamps one second apart)."""
    n = len(levels)
    reversals = reversals or [False] * n
    directions = directions or [Direction.UP if not r else Direction.DOWN for r in responses]
    steps = steps or [1.0] * n
    return [
        Trial(
            index=i,
            level=float(levels[i]),
            response=responses[i],
            is_reversal=reversals[i],
            step_size_used=float(steps[i]),
            direction=directions[i],
            reaction_time_ms=None,
            timestamp=START + timedelta(seconds=i + 1),
        )
        for i in range(n)
    ]


# Recorded 12-trial run: (level, response, is_reversal, step, direction).
REFERENCE_RUN = [
    (50, False, False, 8, "up"),
    (58, False, False, 8, "up"),
    (66, True, False, 4, "down"),
    (62, True, False, 4, "down"),
    (58, False, True, 4, "up"),
    (62, True, True, 2, "down"),
    (60, False, True, 2, "up"),
    (62, True, True, 2, "down"),
    (60, False, True, 2, "up"),
    (62, True, True, 2, "down"),
    (60, True, False, 2, "down"),
    (58, True, False, 2, "down"),
]

# F, T, T repeated: one reversal per up/down transition under 2-down-1-up.
ALTERNATING_RESPONSES = [False, True, True] * 4


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def reference_trials():
    """The recorded 12-trial run as Trial objects (reversal levels 58, 62, 60, 62, 60, 62)."""
    levels, responses, reversals, steps, directions = zip(*REFERENCE_RUN)
    return make_trials(
        list(levels),
        list(responses),
        reversals=list(reversals),
        directions=[Direction(d) for d in directions],
        steps=list(steps),
    )


@pytest.fixture
def scenario_config():
    """initial=50 in [0, 100], steps (8, 4, 2), 6 target reversals, 2-down-1-up, additive."""
    return StaircaseConfig(
        initial_level=50,
        min_level=0,
        max_level=100,
        step_sizes=(8, 4, 2),
        target_reversals=6,
        rule=Rule.TWO_DOWN_ONE_UP,
    )
