"""
Spectrum Search - Core Package

Numeric kernels for histogrammed count spectra:
- SNIP background estimation
- Markov chain smoothing
- Gold and Richardson-Lucy deconvolution (1D), 2D and response-matrix unfolding
- High-resolution peak search chaining the above

All kernels take and return plain NumPy arrays; they never draw or touch files.

License: MIT
"""

from .background import BackgroundEstimator, estimate_background
from .config import (
    BackgroundConfig,
    DeconvolutionConfig,
    FilterOrder,
    SearchConfig,
    WindowDirection,
)
from .deconvolution import (
    Deconvolver,
    DeconvolverRL,
    deconvolve_gold,
    deconvolve_rl,
    gaussian_response,
)
from .errors import CapacityExceededWarning, ConfigurationError, NumericalDegeneracyWarning
from .search import Peak, PeakSearcher, SearchResult
from .smoothing import MarkovSmoother, smooth_markov
from .unfolding import Unfolder2D, unfold_2d, unfold_response_matrix

__all__ = [
    "BackgroundConfig",
    "DeconvolutionConfig",
    "SearchConfig",
    "FilterOrder",
    "WindowDirection",
    "BackgroundEstimator",
    "estimate_background",
    "MarkovSmoother",
    "smooth_markov",
    "Deconvolver",
    "DeconvolverRL",
    "deconvolve_gold",
    "deconvolve_rl",
    "gaussian_response",
    "Unfolder2D",
    "unfold_2d",
    "unfold_response_matrix",
    "Peak",
    "PeakSearcher",
    "SearchResult",
    "ConfigurationError",
    "NumericalDegeneracyWarning",
    "CapacityExceededWarning",
]
