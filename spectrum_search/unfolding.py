"""
Unfolding against response matrices.

Implements:
- Two-dimensional Gold / Richardson-Lucy deconvolution of a matrix against a
  shift-invariant 2D response
- Gold unfolding of a 1D spectrum against a general response matrix whose
  rows are the responses of individual true channels

License: MIT
"""

from __future__ import annotations

import logging
import warnings
from typing import Optional

import numpy as np

from . import _kernels
from .config import DeconvolutionConfig
from .errors import ConfigurationError, NumericalDegeneracyWarning
from .validation import as_matrix, as_spectrum, require_non_negative

logger = logging.getLogger(__name__)

_METHODS = ("gold", "rl")


def unfold_2d(
    source,
    response,
    *,
    iterations: int = 1000,
    repetitions: int = 1,
    boost: float = 1.0,
    method: str = "gold",
) -> np.ndarray:
    """
    Deconvolve a two-dimensional spectrum.

    Parameters
    ----------
    source:
        Non-negative matrix of shape (ssizex, ssizey).
    response:
        Non-negative 2D response, no larger than ``source`` along either axis.
        The position of its maximum marks zero displacement, so a centred
        response keeps peaks in place.
    iterations, repetitions, boost:
        Iteration schedule, as for the 1D deconvolvers.
    method:
        "gold" or "rl" (Richardson-Lucy).

    Returns
    -------
    np.ndarray
        Unfolded matrix with the shape of ``source``.
    """
    DeconvolutionConfig(iterations, repetitions, boost).validate()
    if method not in _METHODS:
        raise ConfigurationError(f"Unknown unfolding method {method!r} (use 'gold' or 'rl').")

    y = as_matrix(source)
    require_non_negative(y, name="source")
    h = as_matrix(response, name="response")
    prepared = _kernels.prepare_response(h, y.shape)
    if prepared is None:
        warnings.warn(
            "2D unfolding: response sums to zero, source returned unchanged.",
            NumericalDegeneracyWarning,
            stacklevel=2,
        )
        return y
    kernel, posit = prepared

    if method == "gold":
        x, skipped = _kernels.gold_iterations(
            y.copy(),
            _kernels.adjoint(y, kernel, posit),
            _kernels.normal_operator(kernel, posit),
            iterations=iterations,
            repetitions=repetitions,
            boost=boost,
        )
    else:
        x, skipped = _kernels.richardson_lucy_iterations(
            y.copy(),
            y,
            kernel,
            posit,
            iterations=iterations,
            repetitions=repetitions,
            boost=boost,
        )

    _kernels.report_degeneracies("2D unfolding", skipped, y.size * iterations * repetitions)
    logger.debug(
        "2D unfolding (%s): %s source, %s response, %d x %d iterations",
        method, y.shape, kernel.shape, repetitions, iterations,
    )
    return x


def unfold_response_matrix(
    source,
    response_matrix,
    *,
    iterations: int = 1000,
    repetitions: int = 1,
    boost: float = 1.0,
) -> np.ndarray:
    """
    Unfold a spectrum measured through a general response matrix.

    ``response_matrix[i, j]`` is the contribution of true channel ``i`` to
    observed channel ``j``; its shape is (n_true, n_observed) with
    ``n_true <= n_observed == len(source)``. Returns the true spectrum of
    length n_true.
    """
    DeconvolutionConfig(iterations, repetitions, boost).validate()
    y = as_spectrum(source)
    require_non_negative(y, name="source")
    r = as_matrix(response_matrix, name="response matrix")
    require_non_negative(r, name="response matrix")

    n_true, n_observed = r.shape
    if n_observed != y.size:
        raise ConfigurationError(
            f"Response matrix has {n_observed} observed channels, source has {y.size}."
        )
    if n_true > n_observed:
        raise ConfigurationError("Number of true channels must not exceed observed channels.")
    if not np.any(r):
        raise ConfigurationError("Response matrix is all zero.")

    dead = np.flatnonzero(~np.any(r, axis=1))
    if dead.size:
        warnings.warn(
            f"Response matrix has no response for true channels {dead.tolist()}; "
            "they are left unfolded.",
            NumericalDegeneracyWarning,
            stacklevel=2,
        )

    normal = r @ r.T
    x, skipped = _kernels.gold_iterations(
        np.ones(n_true),
        r @ y,
        normal.dot,
        iterations=iterations,
        repetitions=repetitions,
        boost=boost,
    )
    _kernels.report_degeneracies("Response matrix unfolding", skipped, n_true * iterations * repetitions)
    logger.debug(
        "Response matrix unfolding: %d true / %d observed channels, %d x %d iterations",
        n_true, n_observed, repetitions, iterations,
    )
    return x


class Unfolder2D:
    """Two-dimensional unfolding with a fixed iteration schedule and method."""

    def __init__(self, config: Optional[DeconvolutionConfig] = None, method: str = "gold"):
        self.config = config or DeconvolutionConfig()
        self.config.validate()
        if method not in _METHODS:
            raise ConfigurationError(f"Unknown unfolding method {method!r} (use 'gold' or 'rl').")
        self.method = method

    def unfold(self, source, response) -> np.ndarray:
        cfg = self.config
        return unfold_2d(
            source,
            response,
            iterations=cfg.iterations,
            repetitions=cfg.repetitions,
            boost=cfg.boost,
            method=self.method,
        )
