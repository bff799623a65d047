import numpy as np
import pytest

from spectrum_search.errors import ConfigurationError
from spectrum_search.smoothing import MarkovSmoother, smooth_markov
from spectrum_search.synthetic import gaussian_spectrum, poisson_sample


@pytest.mark.parametrize("window", [1, 3, 7])
def test_total_is_preserved(window):
    clean = gaussian_spectrum(256, [(60, 500.0), (140, 80.0)], sigma=4.0, background=30.0)
    source = poisson_sample(clean, seed=11)

    smoothed = smooth_markov(source, window)

    assert smoothed.shape == source.shape
    assert np.isclose(smoothed.sum(), source.sum(), rtol=1e-9)
    assert np.all(smoothed > 0)


def test_noise_is_reduced():
    clean = gaussian_spectrum(256, [(128, 400.0)], sigma=6.0, background=50.0)
    noisy = poisson_sample(clean, seed=5)

    smoothed = smooth_markov(noisy, 3)

    assert np.std(np.diff(smoothed)) < np.std(np.diff(noisy))


def _rms_error(y, reference):
    return float(np.sqrt(np.mean((y - reference) ** 2)))


def test_smoothed_noise_tracks_the_clean_shape():
    clean = gaussian_spectrum(256, [(128, 400.0)], sigma=6.0, background=50.0)
    noisy = poisson_sample(clean, seed=5)

    smoothed = smooth_markov(noisy, 3)

    assert _rms_error(smoothed, clean) < _rms_error(noisy, clean)
    assert abs(smoothed.max() - clean.max()) < 0.1 * clean.max()
    assert abs(smoothed[:60].mean() - 50.0) < 3.0


def test_clean_spectrum_keeps_height_and_baseline():
    clean = gaussian_spectrum(256, [(128, 400.0)], sigma=6.0, background=50.0)

    smoothed = smooth_markov(clean, 3)

    assert int(smoothed.argmax()) == 128
    assert np.isclose(smoothed.max(), clean.max(), rtol=0.05)
    assert np.allclose(smoothed[:60], 50.0, rtol=0.02)
    assert np.allclose(smoothed[-60:], 50.0, rtol=0.02)


def test_symmetric_peak_stays_in_place():
    source = gaussian_spectrum(101, [(50, 100.0)], sigma=3.0)

    smoothed = smooth_markov(source, 3)

    assert abs(int(smoothed.argmax()) - 50) <= 1


def test_all_zero_source_is_returned_unchanged():
    source = np.zeros(40)

    smoothed = smooth_markov(source)

    assert np.array_equal(smoothed, source)
    assert smoothed is not source


def test_flat_source_stays_flat():
    smoothed = smooth_markov(np.full(30, 7.0), 4)

    assert np.allclose(smoothed, 7.0)


def test_repeated_calls_are_identical():
    source = poisson_sample(gaussian_spectrum(128, [(64, 90.0)], sigma=3.0, background=4.0), seed=1)

    a = MarkovSmoother(5).smooth(source)
    b = MarkovSmoother(5).smooth(source)

    assert np.array_equal(a, b)


@pytest.mark.parametrize("window", [0, -2])
def test_invalid_window_raises(window):
    with pytest.raises(ConfigurationError):
        smooth_markov(np.ones(10), window)
    with pytest.raises(ConfigurationError):
        MarkovSmoother(window)


def test_empty_source_raises():
    with pytest.raises(ConfigurationError):
        smooth_markov([])


def test_negative_source_raises():
    with pytest.raises(ConfigurationError):
        smooth_markov([1.0, -2.0, 3.0])
