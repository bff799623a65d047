"""
Error and warning types raised by the spectrum kernels.

Invalid parameters are reported with ``ConfigurationError`` before any work
is done. Conditions that still leave a usable result (skipped deconvolution
updates, a full peak buffer) are reported through ``warnings``.

License: MIT
"""


class ConfigurationError(ValueError):
    """Invalid window, order, threshold, size or input array."""


class NumericalDegeneracyWarning(RuntimeWarning):
    """Deconvolution updates were skipped (zero or non-finite denominators)."""


class CapacityExceededWarning(UserWarning):
    """More peaks qualified than the configured maximum; the tallest were kept."""
