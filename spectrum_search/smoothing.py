"""
Markov chain smoothing.

The smoothed spectrum is the stationary distribution of a nearest-neighbour
Markov chain whose transition weights come from the data itself. Each weight
compares the square roots of two channels, the Poisson scale of their
contents, and approximates the ratio of the two contents while staying
bounded when one of them is empty. Looking ``r`` channels ahead and back
makes the chain follow window sums rather than single channels, which evens
out statistical fluctuations and leaves flat regions untouched.

The result is scaled back to the source total, so smoothing redistributes
counts without adding or removing any.

License: MIT
"""

from __future__ import annotations

import logging

import numpy as np

from .errors import ConfigurationError
from .validation import as_spectrum, require_non_negative

logger = logging.getLogger(__name__)


def _transition_weights(reference: np.ndarray, neighbours: np.ndarray) -> np.ndarray:
    """
    exp(4 (sqrt(b) - sqrt(a)) / (sqrt(b) + sqrt(a))) for reference a, neighbour b.

    Close to b / a for similar contents; lies in [exp(-4), exp(4)] and is 1
    when both channels are empty.
    """
    root_ref = np.sqrt(reference)
    root_nb = np.sqrt(neighbours)
    total = root_ref + root_nb
    gap = np.divide(root_nb - root_ref, total, out=np.zeros_like(total), where=total > 0)
    return np.exp(4.0 * gap)


def smooth_markov(source, window: int = 3) -> np.ndarray:
    """
    Smooth a spectrum with the Markov chain method.

    Parameters
    ----------
    source:
        1D array of non-negative channel contents.
    window:
        Averaging window radius r: each transition looks r channels ahead
        and r channels back.

    Returns
    -------
    np.ndarray
        Smoothed spectrum with the same length and total as ``source``.
    """
    src = as_spectrum(source)
    require_non_negative(src, name="source")
    if window <= 0:
        raise ConfigurationError("Averaging window must be positive.")

    n = src.size
    total = float(src.sum())
    if src.max() <= 0 or n == 1:
        # Nothing to redistribute
        return src.copy()

    i = np.arange(n - 1)
    forward = np.zeros(n - 1)
    backward = np.zeros(n - 1)
    for lag in range(1, window + 1):
        ahead = src[np.minimum(i + lag, n - 1)]
        forward += _transition_weights(src[i], ahead)
        behind = src[np.maximum(i - lag + 1, 0)]
        backward += _transition_weights(src[i + 1], behind)

    # p[i+1] / p[i] = (forward[i] / backward[i]) ** (1 / (r + 1)), kept in log space
    steps = (np.log(forward) - np.log(backward)) / (window + 1)
    log_chain = np.concatenate(([0.0], np.cumsum(steps)))
    chain = np.exp(log_chain - log_chain.max())

    logger.debug("Markov smoothing: %d channels, window %d", n, window)
    return chain / chain.sum() * total


class MarkovSmoother:
    """Markov chain smoother with a fixed averaging window."""

    def __init__(self, window: int = 3):
        if window <= 0:
            raise ConfigurationError("Averaging window must be positive.")
        self.window = window

    def smooth(self, source) -> np.ndarray:
        return smooth_markov(source, self.window)
