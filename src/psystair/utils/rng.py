"""
rng.py
------

PRNG key policy for bootstrap resampling.

Bootstrap functions accept either an explicit JAX key or an integer seed.
With neither, they fall back to ``DEFAULT_BOOTSTRAP_SEED`` so that two
calls on the same reversal levels report the same interval.

Examples
--------
>>> from psystair.utils.rng import resolve_key, session_keys
>>> key = resolve_key(seed=7)
>>> first, second = session_keys(key, 2)
"""

from __future__ import annotations

import operator
from typing import Any

import jax
import jax.random as jr

from psystair.errors import ConfigurationError

DEFAULT_BOOTSTRAP_SEED = 0


def resolve_key(key: Any = None, seed: int | None = None) -> jax.Array:
    """
    Return the PRNG key a bootstrap call should use.

    Parameters
    ----------
    key : jax PRNG key, optional
        Used as-is when given.
    seed : int, optional
        Integer seed for a fresh key. Must be non-negative.

    Raises
    ------
    ConfigurationError
        If both ``key`` and ``seed`` are given, or ``seed`` is not a
        non-negative integer.
    """
    if key is not None and seed is not None:
        raise ConfigurationError("pass either key or seed, not both")
    if key is not None:
        return key
    if seed is None:
        return jr.PRNGKey(DEFAULT_BOOTSTRAP_SEED)
    try:
        value = operator.index(seed)
    except TypeError as exc:
        raise ConfigurationError(f"seed must be an integer, got {seed!r}") from exc
    if value < 0:
        raise ConfigurationError(f"seed must be non-negative, got {value}")
    return jr.PRNGKey(value)


def session_keys(key: jax.Array, n_sessions: int) -> tuple[jax.Array, ...]:
    """One independent subkey per session being resampled."""
    if n_sessions < 1:
        raise ConfigurationError(f"n_sessions must be positive, got {n_sessions}")
    return tuple(jr.split(key, num=n_sessions))
