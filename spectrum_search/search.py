"""
High-resolution peak search.

Pipeline (each stage works on the output of the previous one):
1. SNIP background removal
2. Markov smoothing
3. Gold deconvolution with a Gaussian response of the expected peak width
4. Local-maxima scan with threshold, minimum separation and peak-count limit

The spectrum is extended on both sides before processing so that peaks close
to the edges see a sensible neighbourhood; only maxima inside the original
range are reported.

License: MIT
"""

from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import signal

from .background import estimate_background
from .config import FilterOrder, SearchConfig, WindowDirection
from .deconvolution import deconvolve_gold, gaussian_response
from .errors import CapacityExceededWarning, ConfigurationError
from .smoothing import smooth_markov
from .validation import as_spectrum

logger = logging.getLogger(__name__)

# Decimals of height / tallest height compared when ranking peaks
TIE_DIGITS = 9


@dataclass(frozen=True)
class Peak:
    """One found peak: sub-channel position and source content at that channel."""
    position: float
    height: Optional[float] = None


@dataclass(frozen=True)
class SearchResult:
    """Peaks of one search, tallest first, plus the sharpened spectrum."""
    peaks: Tuple[Peak, ...] = ()
    sharpened: np.ndarray = field(default_factory=lambda: np.zeros(0))
    overflow: bool = False

    @property
    def n_peaks(self) -> int:
        return len(self.peaks)

    @property
    def positions(self) -> np.ndarray:
        return np.array([p.position for p in self.peaks], dtype=float)

    @property
    def heights(self) -> np.ndarray:
        return np.array([np.nan if p.height is None else p.height for p in self.peaks], dtype=float)

    def to_dataframe(self) -> pd.DataFrame:
        """Peaks as a DataFrame with columns Position, Height."""
        return pd.DataFrame({"Position": self.positions, "Height": self.heights})


def _extend(source: np.ndarray, shift: int, sigma: float) -> np.ndarray:
    """
    Pad ``shift`` channels on each side.

    The low edge continues the linear trend of the first ~2 sigma channels
    (falling trends only). The high edge mirrors the spectrum, so a peak
    ending there keeps both flanks and a falling background turns into a
    valley rather than a peak.
    """
    k = int(2 * sigma + 0.5)
    slope = 0.0
    if k >= 2:
        x = np.arange(min(k, source.size), dtype=float)
        y = source[:x.size]
        if x.size >= 2:
            slope = min(float(np.polyfit(x, y, 1)[0]), 0.0)

    low = source[0] + slope * (np.arange(shift) - shift)
    high = np.pad(source, (0, shift), mode="reflect")[source.size:]
    return np.clip(np.concatenate((low, source, high)), 0.0, None)


def _remove_background(values: np.ndarray, window: int) -> np.ndarray:
    background = estimate_background(
        values,
        window,
        direction=WindowDirection.INCREASING,
        order=FilterOrder.ORDER_2,
    )
    return np.clip(values - background, 0.0, None)


def _local_maxima(values: np.ndarray, start: int, stop: int) -> List[int]:
    """
    Indices in [start, stop) of local maxima.

    A flat top (run of equal values higher than both neighbours) counts once,
    at its lowest index.
    """
    _, props = signal.find_peaks(values, plateau_size=1)
    edges = props["left_edges"]
    return [int(i) for i in edges[(edges >= start) & (edges < stop)]]


def _centroid(values: np.ndarray, i: int) -> float:
    """Centroid of values over channels i-1..i+1."""
    lo, hi = max(i - 1, 0), min(i + 2, values.size)
    weights = values[lo:hi]
    return float(np.dot(np.arange(lo, hi), weights) / weights.sum())


def select_peaks(
    heights: Sequence[float],
    channels: Sequence[int],
    min_separation: float,
) -> List[int]:
    """
    Rank candidates tallest first (lower channel on ties) and drop every
    candidate closer than ``min_separation`` to one already kept.

    Heights that agree to ``TIE_DIGITS`` decimals relative to the tallest
    count as ties, so rounding noise between mirror-image maxima does not
    decide the order.

    Returns indices into the candidate sequences, in ranking order.
    """
    scale = max((abs(h) for h in heights), default=0.0) or 1.0
    ranked = [round(h / scale, TIE_DIGITS) for h in heights]
    order = sorted(range(len(channels)), key=lambda k: (-ranked[k], channels[k]))
    kept: List[int] = []
    for k in order:
        if all(abs(channels[k] - channels[m]) >= min_separation for m in kept):
            kept.append(k)
    return kept


class PeakSearcher:
    """
    Peak finder for 1D spectra.

    Holds per-instance settings (maximum number of peaks, resolution, Markov
    averaging window, deconvolution iterations) and the result of the last
    search. One instance must not run concurrent searches.

    Example:
        >>> searcher = PeakSearcher(SearchConfig(max_peaks=10))
        >>> result = searcher.search(counts, sigma=3, threshold=5)
        >>> result.positions
    """

    def __init__(self, config: Optional[SearchConfig] = None):
        self.config = config or SearchConfig()
        self.config.validate()
        self.result = SearchResult()

    @property
    def n_peaks(self) -> int:
        return self.result.n_peaks

    @property
    def positions(self) -> np.ndarray:
        return self.result.positions

    @property
    def heights(self) -> np.ndarray:
        return self.result.heights

    def search(
        self,
        source,
        sigma: float = 2.0,
        threshold: float = 5.0,
        *,
        remove_background: bool = True,
        markov: bool = True,
        deconvolution: bool = True,
    ) -> SearchResult:
        """
        Search for peaks.

        Parameters
        ----------
        source:
            1D spectrum (channel contents).
        sigma:
            Expected peak width (standard deviation, channels), > 0.
        threshold:
            Peaks lower than ``threshold`` percent of the highest sharpened
            peak are discarded; must lie in [0, 100].
        remove_background, markov, deconvolution:
            Enable the SNIP, Markov smoothing and Gold sharpening stages.

        Returns
        -------
        SearchResult
            Also stored on the instance as ``self.result``.
        """
        self.result = SearchResult()
        if not sigma > 0:
            raise ConfigurationError(f"Invalid sigma {sigma}, must be positive.")
        if not 0 <= threshold <= 100:
            raise ConfigurationError(f"Invalid threshold {threshold}, must lie in [0, 100].")
        src = as_spectrum(source)
        cfg = self.config
        cfg.validate()

        n = src.size
        shift = max(int(7 * sigma + 0.5), 1)
        extended = _extend(src, shift, sigma)

        processed = _remove_background(extended, shift) if remove_background else extended
        if markov:
            processed = smooth_markov(processed, cfg.average_window)
            if remove_background:
                processed = _remove_background(processed, shift)

        if deconvolution:
            sharpened = deconvolve_gold(
                processed,
                gaussian_response(sigma),
                iterations=cfg.decon_iterations,
            )
        else:
            sharpened = processed

        inside = sharpened[shift:shift + n]
        maximum = float(inside.max())
        level = threshold / 100.0 * maximum

        candidates = [
            i for i in _local_maxima(sharpened, shift, shift + n)
            if sharpened[i] > level and sharpened[i] > 0
        ]
        kept = select_peaks(
            [float(sharpened[i]) for i in candidates],
            candidates,
            sigma / cfg.resolution,
        )

        overflow = len(kept) > cfg.max_peaks
        if overflow:
            warnings.warn(
                f"Peak buffer full: {len(kept)} peaks found, keeping the {cfg.max_peaks} tallest.",
                CapacityExceededWarning,
                stacklevel=2,
            )
            kept = kept[:cfg.max_peaks]

        peaks = []
        for k in kept:
            i = candidates[k]
            position = min(max(_centroid(sharpened, i) - shift, 0.0), n - 1.0)
            channel = min(int(math.floor(position + 0.5)), n - 1)
            peaks.append(Peak(position=position, height=float(src[channel])))

        logger.debug(
            "Peak search: %d channels, sigma %g, threshold %g%%, %d candidates, %d peaks",
            n, sigma, threshold, len(candidates), len(peaks),
        )
        self.result = SearchResult(peaks=tuple(peaks), sharpened=inside.copy(), overflow=overflow)
        return self.result
