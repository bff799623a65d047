import numpy as np
import pytest

from spectrum_search.config import DeconvolutionConfig
from spectrum_search.deconvolution import (
    Deconvolver,
    DeconvolverRL,
    deconvolve_gold,
    deconvolve_rl,
    gaussian_response,
)
from spectrum_search.errors import ConfigurationError, NumericalDegeneracyWarning
from spectrum_search.synthetic import fold, gaussian_spectrum


def _rms_width(y: np.ndarray) -> float:
    x = np.arange(y.size)
    mean = np.dot(x, y) / y.sum()
    return float(np.sqrt(np.dot((x - mean) ** 2, y) / y.sum()))


def _smeared_peak():
    truth = gaussian_spectrum(101, [(50, 100.0)], sigma=1.0)
    response = gaussian_response(3.0)
    return truth, response, fold(truth, response)


@pytest.mark.parametrize("deconvolve", [deconvolve_gold, deconvolve_rl])
def test_round_trip_recovers_narrow_peak(deconvolve):
    truth, response, observed = _smeared_peak()

    result = deconvolve(observed, response, iterations=200)

    assert result.shape == observed.shape
    assert np.all(result >= 0)
    assert abs(int(result.argmax()) - 50) <= 1
    assert _rms_width(result) < _rms_width(observed)
    assert result.max() > observed.max()


@pytest.mark.parametrize("iterations", [1, 3])
@pytest.mark.parametrize("deconvolve", [deconvolve_gold, deconvolve_rl])
def test_early_iterations_keep_the_peak_in_place(deconvolve, iterations):
    _, response, observed = _smeared_peak()

    result = deconvolve(observed, response, iterations=iterations)

    assert int(result.argmax()) == 50
    assert np.allclose(result[40:50], result[60:50:-1])


@pytest.mark.parametrize("deconvolve", [deconvolve_gold, deconvolve_rl])
def test_peak_next_to_the_low_edge_stays_put(deconvolve):
    truth = gaussian_spectrum(101, [(3, 100.0)], sigma=1.0)
    response = gaussian_response(3.0)
    observed = fold(truth, response)

    result = deconvolve(observed, response, iterations=200)

    assert abs(int(result.argmax()) - 3) <= 1
    assert np.isclose(result.sum(), observed.sum(), rtol=0.25)


@pytest.mark.parametrize("deconvolve", [deconvolve_gold, deconvolve_rl])
def test_total_is_approximately_preserved(deconvolve):
    _, response, observed = _smeared_peak()

    result = deconvolve(observed, response, iterations=500)

    assert np.isclose(result.sum(), observed.sum(), rtol=0.25)


def test_two_close_peaks_are_resolved():
    truth = gaussian_spectrum(128, [(58, 100.0), (70, 100.0)], sigma=1.0)
    response = gaussian_response(4.0)
    observed = fold(truth, response)

    result = deconvolve_gold(observed, response, iterations=2000)

    # the valley between the peaks is much deeper after deconvolution
    assert result[64] < 0.5 * min(result[58], result[70])


def test_boosting_sharpens_further():
    _, response, observed = _smeared_peak()

    plain = deconvolve_gold(observed, response, iterations=50, repetitions=3, boost=1.0)
    boosted = deconvolve_gold(observed, response, iterations=50, repetitions=3, boost=1.5)

    assert _rms_width(boosted) <= _rms_width(plain)
    assert abs(int(boosted.argmax()) - 50) <= 1


def test_response_at_index_zero_does_not_shift():
    # a delta response at index 0 is the identity
    source = gaussian_spectrum(64, [(20, 30.0)], sigma=2.0)
    response = np.zeros(5)
    response[0] = 1.0

    assert np.allclose(deconvolve_gold(source, response, iterations=10), source)
    assert np.allclose(deconvolve_rl(source, response, iterations=10), source)


def test_repeated_calls_are_identical():
    _, response, observed = _smeared_peak()

    a = Deconvolver(DeconvolutionConfig(iterations=100)).deconvolve(observed, response)
    b = Deconvolver(DeconvolutionConfig(iterations=100)).deconvolve(observed, response)
    c = DeconvolverRL(DeconvolutionConfig(iterations=100)).deconvolve(observed, response)
    d = DeconvolverRL(DeconvolutionConfig(iterations=100)).deconvolve(observed, response)

    assert np.array_equal(a, b)
    assert np.array_equal(c, d)


def test_source_is_not_modified():
    _, response, observed = _smeared_peak()
    before = observed.copy()

    deconvolve_gold(observed, response, iterations=10)
    deconvolve_rl(observed, response, iterations=10)

    assert np.array_equal(observed, before)


def test_zero_response_warns_and_returns_source():
    _, _, observed = _smeared_peak()

    with pytest.warns(NumericalDegeneracyWarning):
        result = deconvolve_gold(observed, np.zeros(7), iterations=10)

    assert np.array_equal(result, observed)


def test_response_longer_than_source_raises():
    with pytest.raises(ConfigurationError):
        deconvolve_gold(np.ones(10), np.ones(11), iterations=5)


def test_negative_inputs_raise():
    with pytest.raises(ConfigurationError):
        deconvolve_gold([1.0, -1.0, 2.0], [1.0], iterations=5)
    with pytest.raises(ConfigurationError):
        deconvolve_rl([1.0, 1.0, 2.0], [1.0, -0.5], iterations=5)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"iterations": 0},
        {"iterations": 5, "repetitions": 0},
        {"iterations": 5, "boost": 0.0},
    ],
)
def test_invalid_schedule_raises(kwargs):
    with pytest.raises(ConfigurationError):
        deconvolve_gold(np.ones(10), np.ones(3), **kwargs)
    with pytest.raises(ConfigurationError):
        deconvolve_rl(np.ones(10), np.ones(3), **kwargs)


def test_gaussian_response_is_centered():
    h = gaussian_response(2.5)

    assert h.size % 2 == 1
    assert int(h.argmax()) == h.size // 2
    assert np.allclose(h, h[::-1])
    with pytest.raises(ConfigurationError):
        gaussian_response(0.0)
