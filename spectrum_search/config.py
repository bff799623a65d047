"""
Configuration for the spectrum kernels.

Every kernel takes its parameters explicitly. The dataclasses below group them
so an instance (for example a ``PeakSearcher``) can own its settings instead of
sharing class-level defaults with unrelated searches.

Defaults:
- average window 3 and 3 deconvolution iterations for the peak search,
- at most 100 peaks per search,
- 1000 Gold iterations, 1 repetition, boost 1.0 for standalone deconvolution.

License: MIT
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import ConfigurationError


class WindowDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"


class FilterOrder(int, Enum):
    ORDER_2 = 2
    ORDER_4 = 4
    ORDER_6 = 6
    ORDER_8 = 8


# Allowed widths of the moving-average pass applied to a SNIP background
SMOOTH_WINDOWS = (3, 5, 7, 9, 11, 13, 15)


def parse_direction(value) -> WindowDirection:
    """Accept a WindowDirection or its string value."""
    try:
        return WindowDirection(value)
    except ValueError:
        raise ConfigurationError(
            f"Unknown window direction {value!r} (use 'increasing' or 'decreasing')."
        ) from None


def parse_order(value) -> FilterOrder:
    """Accept a FilterOrder or one of the integers 2, 4, 6, 8."""
    try:
        return FilterOrder(int(value))
    except (TypeError, ValueError):
        raise ConfigurationError(f"Filter order must be one of 2, 4, 6, 8, got {value!r}.") from None


@dataclass(frozen=True)
class BackgroundConfig:
    """Parameters of the SNIP background estimate."""
    iterations: int = 2
    direction: WindowDirection = WindowDirection.INCREASING
    order: FilterOrder = FilterOrder.ORDER_2
    smoothing: bool = False
    smooth_window: int = 3
    compton: bool = False

    def validate(self) -> None:
        if self.iterations <= 0:
            raise ConfigurationError("Number of clipping iterations must be positive.")
        parse_direction(self.direction)
        parse_order(self.order)
        if self.smooth_window not in SMOOTH_WINDOWS:
            raise ConfigurationError(
                f"Smoothing window must be odd and within 3..15, got {self.smooth_window}."
            )


@dataclass(frozen=True)
class DeconvolutionConfig:
    """Iteration schedule shared by Gold, Richardson-Lucy and 2D unfolding."""
    iterations: int = 1000
    repetitions: int = 1
    boost: float = 1.0

    def validate(self) -> None:
        if self.iterations <= 0:
            raise ConfigurationError("Number of iterations must be positive.")
        if self.repetitions <= 0:
            raise ConfigurationError("Number of repetitions must be positive.")
        if not self.boost > 0:
            raise ConfigurationError("Boosting exponent must be positive.")


@dataclass(frozen=True)
class SearchConfig:
    """Per-instance settings of a PeakSearcher."""
    max_peaks: int = 100
    resolution: float = 1.0
    average_window: int = 3
    decon_iterations: int = 3

    def validate(self) -> None:
        if self.max_peaks <= 0:
            raise ConfigurationError("Maximum number of peaks must be positive.")
        if not self.resolution > 0:
            raise ConfigurationError("Resolution must be positive.")
        if self.average_window <= 0:
            raise ConfigurationError("Averaging window must be positive.")
        if self.decon_iterations <= 0:
            raise ConfigurationError("Number of deconvolution iterations must be positive.")
