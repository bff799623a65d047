"""
Input coercion shared by all kernels.

Callers may pass lists, tuples or arrays of any numeric dtype. The kernels work
on private float64 copies so the caller's buffers are never aliased.

License: MIT
"""

from __future__ import annotations

import numpy as np

from .errors import ConfigurationError


def as_spectrum(values, *, name: str = "source") -> np.ndarray:
    """Return a float64 copy of a non-empty 1D array of finite values."""
    arr = np.array(values, dtype=float)
    if arr.ndim != 1:
        raise ConfigurationError(f"{name} must be one-dimensional, got shape {arr.shape}")
    if arr.size == 0:
        raise ConfigurationError(f"{name} must contain at least one channel")
    if not np.all(np.isfinite(arr)):
        raise ConfigurationError(f"{name} contains NaN or infinite values")
    return arr


def as_matrix(values, *, name: str = "source") -> np.ndarray:
    """Return a float64 copy of a non-empty 2D array of finite values."""
    arr = np.array(values, dtype=float)
    if arr.ndim != 2:
        raise ConfigurationError(f"{name} must be two-dimensional, got shape {arr.shape}")
    if arr.size == 0:
        raise ConfigurationError(f"{name} must not be empty")
    if not np.all(np.isfinite(arr)):
        raise ConfigurationError(f"{name} contains NaN or infinite values")
    return arr


def require_non_negative(arr: np.ndarray, *, name: str) -> None:
    """Raise if any channel of ``arr`` is negative."""
    if np.any(arr < 0):
        raise ConfigurationError(f"{name} must not contain negative values")
