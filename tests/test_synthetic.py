import numpy as np
import pytest

from spectrum_search.deconvolution import gaussian_response
from spectrum_search.errors import ConfigurationError
from spectrum_search.synthetic import fold, gaussian_spectrum, poisson_sample


def test_gaussian_spectrum_shape_and_levels():
    y = gaussian_spectrum(100, [(30, 50.0), (70, 20.0)], sigma=2.0, background=5.0)

    assert y.shape == (100,)
    assert np.isclose(y[30], 55.0)
    assert np.isclose(y[70], 25.0)
    assert np.isclose(y[0], 5.0)


def test_fold_conserves_counts_and_keeps_position():
    truth = np.zeros(101)
    truth[50] = 1000.0

    observed = fold(truth, gaussian_response(3.0))

    assert np.isclose(observed.sum(), 1000.0)
    assert int(observed.argmax()) == 50
    assert observed.max() < 1000.0


def test_fold_keeps_an_edge_peak_in_place():
    truth = np.zeros(101)
    truth[0] = 1000.0

    observed = fold(truth, gaussian_response(3.0))

    assert int(observed.argmax()) == 0
    # the centre and the upper half of the response stay inside the array
    assert 0.5 * 1000.0 < observed.sum() < 0.6 * 1000.0


def test_poisson_sampling_reproducible_with_seed():
    lam = gaussian_spectrum(64, [(32, 40.0)], sigma=3.0, background=2.0)

    a = poisson_sample(lam, seed=123)
    b = poisson_sample(lam, seed=123)

    assert np.array_equal(a, b)
    assert np.all(a >= 0)
    assert np.all(a == np.round(a))


def test_poisson_rejects_negative_expectation():
    with pytest.raises(ConfigurationError):
        poisson_sample([1.0, -1.0])
