"""
Synthetic spectra.

Building blocks for test and demonstration data:
- Gaussian peaks on a flat background
- Folding a true spectrum with a response (the forward model of the deconvolvers)
- Poisson counting noise, reproducible through a seed

License: MIT
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

import numpy as np

from . import _kernels
from .errors import ConfigurationError


def gaussian_spectrum(
    n_channels: int,
    peaks: Iterable[Tuple[float, float]],
    *,
    sigma: float,
    background: float = 0.0,
) -> np.ndarray:
    """
    Flat background plus Gaussian peaks.

    peaks:
        (position, amplitude) pairs; positions in channels.
    """
    if n_channels <= 0:
        raise ConfigurationError("n_channels must be positive")
    if not sigma > 0:
        raise ConfigurationError("sigma must be positive")

    x = np.arange(n_channels, dtype=float)
    y = np.full(n_channels, float(background))
    for position, amplitude in peaks:
        y += amplitude * np.exp(-0.5 * ((x - position) / sigma) ** 2)
    return y


def fold(spectrum, response) -> np.ndarray:
    """
    Smear a true spectrum (1D or 2D) with a response.

    Uses the same convention as the deconvolvers: the response maximum marks
    zero displacement, so a symmetric response keeps peak positions. The
    response is normalised to unit sum, so counts are conserved away from
    the edges.
    """
    x = np.asarray(spectrum, dtype=float)
    h = np.asarray(response, dtype=float)
    prepared = _kernels.prepare_response(h, x.shape)
    if prepared is None:
        raise ConfigurationError("Response sums to zero.")
    kernel, posit = prepared
    return _kernels.forward(x, kernel, posit)


def poisson_sample(spectrum, *, seed: Optional[int] = None) -> np.ndarray:
    """
    Draw Poisson counts with the given expectation per channel.

    Returns a float array; the same seed always gives the same counts.
    """
    lam = np.asarray(spectrum, dtype=float)
    if np.any(lam < 0):
        raise ConfigurationError("Expected counts must not be negative.")
    rng = np.random.default_rng(seed)
    return rng.poisson(lam).astype(float)
