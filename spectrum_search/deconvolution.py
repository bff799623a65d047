"""
One-dimensional deconvolution.

Implements:
- Gold ratio deconvolution on the normal equations (A^T A x = A^T y)
- Richardson-Lucy deconvolution (maximum likelihood under Poisson noise)
- Boosting between repetition blocks
- Gaussian response kernels for the peak search

Both methods keep the estimate non-negative and start from the source itself.

License: MIT
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Optional

import numpy as np

from . import _kernels
from .config import DeconvolutionConfig
from .errors import ConfigurationError, NumericalDegeneracyWarning
from .validation import as_spectrum, require_non_negative

logger = logging.getLogger(__name__)


def gaussian_response(sigma: float) -> np.ndarray:
    """
    Gaussian response kernel of standard deviation ``sigma`` (channels).

    The kernel spans ``2 * ceil(3 sigma) + 1`` channels with its maximum in the
    middle, so deconvolving with it leaves peak positions in place.
    """
    if not sigma > 0:
        raise ConfigurationError("Response width sigma must be positive.")
    center = max(int(math.ceil(3 * sigma)), 1)
    i = np.arange(2 * center + 1, dtype=float)
    return np.exp(-0.5 * ((i - center) / sigma) ** 2)


def _prepare(source, response, config: DeconvolutionConfig, name: str):
    """Validate inputs; return (y, kernel, posit) or (y, None, None) for a zero response."""
    config.validate()
    y = as_spectrum(source)
    require_non_negative(y, name="source")
    h = as_spectrum(response, name="response")
    prepared = _kernels.prepare_response(h, y.shape)
    if prepared is None:
        warnings.warn(
            f"{name}: response sums to zero, source returned unchanged.",
            NumericalDegeneracyWarning,
            stacklevel=3,
        )
        return y, None, None
    kernel, posit = prepared
    return y, kernel, posit


def deconvolve_gold(
    source,
    response,
    *,
    iterations: int = 1000,
    repetitions: int = 1,
    boost: float = 1.0,
) -> np.ndarray:
    """
    Sharpen a spectrum with the Gold deconvolution algorithm.

    Parameters
    ----------
    source:
        1D non-negative spectrum.
    response:
        Non-negative response kernel, at most as long as ``source``. The position of
        its maximum marks zero displacement, so a centred response keeps peaks
        in place.
    iterations:
        Gold iterations per repetition block.
    repetitions:
        Number of blocks; the estimate is boosted between blocks.
    boost:
        Exponent of the boosting transform.

    Returns
    -------
    np.ndarray
        Deconvolved spectrum of the same length as ``source``.
    """
    config = DeconvolutionConfig(iterations, repetitions, boost)
    y, kernel, posit = _prepare(source, response, config, "Gold deconvolution")
    if kernel is None:
        return y

    b = _kernels.adjoint(y, kernel, posit)
    x, skipped = _kernels.gold_iterations(
        y.copy(),
        b,
        _kernels.normal_operator(kernel, posit),
        iterations=iterations,
        repetitions=repetitions,
        boost=boost,
    )
    _kernels.report_degeneracies(
        "Gold deconvolution", skipped, y.size * iterations * repetitions
    )
    logger.debug(
        "Gold deconvolution: %d channels, kernel %d, %d x %d iterations, boost %g",
        y.size, kernel.size, repetitions, iterations, boost,
    )
    return x


def deconvolve_rl(
    source,
    response,
    *,
    iterations: int = 1000,
    repetitions: int = 1,
    boost: float = 1.0,
) -> np.ndarray:
    """
    Sharpen a spectrum with Richardson-Lucy deconvolution.

    Same parameters and conventions as ``deconvolve_gold``.
    """
    config = DeconvolutionConfig(iterations, repetitions, boost)
    y, kernel, posit = _prepare(source, response, config, "Richardson-Lucy deconvolution")
    if kernel is None:
        return y

    x, skipped = _kernels.richardson_lucy_iterations(
        y.copy(),
        y,
        kernel,
        posit,
        iterations=iterations,
        repetitions=repetitions,
        boost=boost,
    )
    _kernels.report_degeneracies(
        "Richardson-Lucy deconvolution", skipped, y.size * iterations * repetitions
    )
    logger.debug(
        "Richardson-Lucy deconvolution: %d channels, kernel %d, %d x %d iterations, boost %g",
        y.size, kernel.size, repetitions, iterations, boost,
    )
    return x


class Deconvolver:
    """Gold deconvolution with a fixed iteration schedule."""

    def __init__(self, config: Optional[DeconvolutionConfig] = None):
        self.config = config or DeconvolutionConfig()
        self.config.validate()

    def deconvolve(self, source, response) -> np.ndarray:
        cfg = self.config
        return deconvolve_gold(
            source,
            response,
            iterations=cfg.iterations,
            repetitions=cfg.repetitions,
            boost=cfg.boost,
        )


class DeconvolverRL(Deconvolver):
    """Richardson-Lucy deconvolution with a fixed iteration schedule."""

    def deconvolve(self, source, response) -> np.ndarray:
        cfg = self.config
        return deconvolve_rl(
            source,
            response,
            iterations=cfg.iterations,
            repetitions=cfg.repetitions,
            boost=cfg.boost,
        )
