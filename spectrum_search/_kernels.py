"""
Iteration engine shared by the 1D and 2D deconvolution routines.

Conventions
-----------
The position of the response maximum (``posit``) is zero displacement along
every axis. A true signal x is observed as
``y[k] = sum_l h[l] * x[k + posit - l]``, so a centred response keeps peaks
in place and estimates live in the same channel frame as the source. The
observation is truncated to the array; the operators below are the exact
truncated A and A^T.

License: MIT
"""

from __future__ import annotations

import logging
import warnings
from typing import Callable, Optional, Tuple

import numpy as np
from scipy import signal

from .errors import ConfigurationError, NumericalDegeneracyWarning
from .validation import require_non_negative

logger = logging.getLogger(__name__)

# A channel above this level without a usable denominator counts as degenerate
GOLD_EPSILON = 1e-6

# Warn when more than this fraction of channel updates had to be skipped
DEGENERACY_WARN_FRACTION = 0.01


def _convolve(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return signal.convolve(a, b, mode="full", method="direct")


def _flip(h: np.ndarray) -> np.ndarray:
    return h[(slice(None, None, -1),) * h.ndim]


def _crop(full: np.ndarray, offsets, shape) -> np.ndarray:
    return full[tuple(slice(o, o + s) for o, s in zip(offsets, shape))]


def prepare_response(response: np.ndarray, source_shape) -> Optional[Tuple[np.ndarray, tuple]]:
    """
    Validate and normalise a response kernel.

    Returns (kernel, posit) with trailing zeros trimmed and unit sum, or None
    when the response sums to zero.
    """
    if response.ndim != len(source_shape):
        raise ConfigurationError(
            f"Response has {response.ndim} dimensions, source has {len(source_shape)}."
        )
    if any(r > s for r, s in zip(response.shape, source_shape)):
        raise ConfigurationError(
            f"Response shape {response.shape} exceeds source shape {tuple(source_shape)}."
        )
    require_non_negative(response, name="response")

    total = float(response.sum())
    if total <= 0:
        return None

    # Trim trailing all-zero slices along each axis
    trimmed = response
    for axis in range(response.ndim):
        other = tuple(a for a in range(response.ndim) if a != axis)
        nonzero = np.flatnonzero(np.any(trimmed != 0, axis=other) if other else trimmed != 0)
        trimmed = np.take(trimmed, np.arange(nonzero[-1] + 1), axis=axis)

    posit = np.unravel_index(int(np.argmax(trimmed)), trimmed.shape)
    return trimmed / total, tuple(int(p) for p in posit)


def forward(x: np.ndarray, h: np.ndarray, posit) -> np.ndarray:
    """Observed signal A x: x smeared by h, with h[posit] as zero displacement."""
    return _crop(_convolve(x, h), posit, x.shape)


def adjoint(r: np.ndarray, h: np.ndarray, posit) -> np.ndarray:
    """A^T r: correlation of r with h."""
    return _crop(_convolve(r, _flip(h)), [s - 1 - p for s, p in zip(h.shape, posit)], r.shape)


def normal_operator(h: np.ndarray, posit) -> Callable[[np.ndarray], np.ndarray]:
    """Return x -> A^T A x, truncated to the array like the observation."""
    return lambda x: adjoint(forward(x, h, posit), h, posit)


def boost_estimate(x: np.ndarray, boost: float) -> np.ndarray:
    """Power-law sharpening, rescaled to keep the estimate total."""
    boosted = x ** boost
    before, after = float(x.sum()), float(boosted.sum())
    if after > 0 and np.isfinite(after):
        boosted *= before / after
    return boosted


def gold_iterations(
    x: np.ndarray,
    b: np.ndarray,
    apply_normal: Callable[[np.ndarray], np.ndarray],
    *,
    iterations: int,
    repetitions: int,
    boost: float,
) -> Tuple[np.ndarray, int]:
    """
    Gold ratio iterations x <- x * b / (C x) for a positive-definite C.

    Returns the estimate and the number of skipped (degenerate) updates.
    """
    skipped = 0
    for repetition in range(repetitions):
        if repetition:
            x = boost_estimate(x, boost)
        for _ in range(iterations):
            denom = apply_normal(x)
            valid = np.isfinite(denom) & (denom > 0)
            skipped += int(np.count_nonzero((x > GOLD_EPSILON) & ~valid))
            x = np.where(valid, x * b / np.where(valid, denom, 1.0), x)
    return x, skipped


def richardson_lucy_iterations(
    x: np.ndarray,
    y: np.ndarray,
    h: np.ndarray,
    posit,
    *,
    iterations: int,
    repetitions: int,
    boost: float,
) -> Tuple[np.ndarray, int]:
    """
    Richardson-Lucy iterations x <- x * A^T (y / A x) / A^T 1.

    A^T 1 is below one only near the array edges, where part of the response
    falls outside the observed range.

    Returns the estimate and the number of degenerate observed channels.
    """
    sensitivity = adjoint(np.ones_like(y), h, posit)
    skipped = 0
    for repetition in range(repetitions):
        if repetition:
            x = boost_estimate(x, boost)
        for _ in range(iterations):
            model = forward(x, h, posit)
            valid = np.isfinite(model) & (model > 0)
            skipped += int(np.count_nonzero(~valid & (y > 0)))
            ratio = np.where(valid, y / np.where(valid, model, 1.0), 1.0)
            x = x * adjoint(ratio, h, posit) / sensitivity
    return x, skipped


def report_degeneracies(name: str, skipped: int, updates: int) -> None:
    """Log skipped updates and warn when they are frequent."""
    if not skipped:
        return
    logger.debug("%s: %d of %d updates skipped", name, skipped, updates)
    if skipped > DEGENERACY_WARN_FRACTION * updates:
        warnings.warn(
            f"{name}: {skipped} of {updates} updates skipped "
            "(zero or non-finite denominators).",
            NumericalDegeneracyWarning,
            stacklevel=3,
        )
