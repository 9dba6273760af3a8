"""
Unit tests for the Gaussian utilities.

Tests the oneka/gaussian.py module for:
1. Standard normal CDF accuracy and symmetry
2. Box-Muller deviates (χ² goodness of fit, caching, reseeding)
3. Multivariate-normal draws (sample mean and covariance)
"""

import pytest
import numpy as np
from scipy import special
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from oneka.errors import ShapeError, SingularSystemError
from oneka.matrix import Matrix
from oneka.gaussian import (
    GaussianSampler,
    clock_seed,
    default_sampler,
    gaussian_cdf,
    gaussian_rng,
    initialize_rng,
)
from oneka.diagnostics import (
    NORMAL_BIN_PROBABILITIES,
    chi_square_normality,
    normal_bin_probabilities,
    sample_moment_check,
)

TOLERANCE = 1e-9


class TestGaussianCDF:
    """Test Φ(x) against tabulated values."""

    @pytest.mark.parametrize("x,expected", [
        (-4.0, 3.167124183312e-05),
        (-3.0, 0.0013498980316301),
        (-2.0, 0.0227501319481792),
        (-1.0, 0.158655253931457),
        (0.0, 0.5),
        (1.0, 0.841344746068543),
        (2.0, 0.977249868051821),
        (3.0, 0.99865010196837),
        (4.0, 0.999968328758167),
    ])
    def test_tabulated(self, x, expected):
        assert gaussian_cdf(x) == pytest.approx(expected, abs=TOLERANCE)

    def test_symmetry(self):
        for x in np.linspace(-7.5, 7.5, 31):
            assert gaussian_cdf(-x) + gaussian_cdf(x) == pytest.approx(1.0, abs=1e-13)

    def test_matches_scipy(self):
        for x in np.linspace(-6.0, 6.0, 49):
            assert gaussian_cdf(x) == pytest.approx(special.ndtr(x), abs=1e-14)

    def test_monotonic(self):
        values = [gaussian_cdf(x) for x in np.linspace(-8.0, 8.0, 65)]
        assert all(b >= a for a, b in zip(values, values[1:]))

    def test_saturates_beyond_limit(self):
        assert gaussian_cdf(-8.5) == 0.0
        assert gaussian_cdf(8.5) == 1.0
        assert gaussian_cdf(-50.0) == 0.0
        assert gaussian_cdf(50.0) == 1.0

    def test_nan_argument(self):
        assert np.isnan(gaussian_cdf(float("nan")))
        assert gaussian_cdf(-np.inf) == 0.0
        assert gaussian_cdf(np.inf) == 1.0

    def test_returns_python_float(self):
        assert isinstance(gaussian_cdf(0.3), float)

    def test_bin_probabilities(self):
        np.testing.assert_allclose(
            normal_bin_probabilities(), NORMAL_BIN_PROBABILITIES, atol=1e-9
        )
        assert normal_bin_probabilities().sum() == pytest.approx(1.0)


class TestBoxMuller:
    """Test scalar standard-normal deviates."""

    def test_chi_square_goodness_of_fit(self):
        sampler = GaussianSampler(12345)
        draws = [sampler.standard_normal() for _ in range(100000)]

        result = chi_square_normality(draws)

        assert result['dof'] == 13
        assert result['critical'] == pytest.approx(34.528, abs=1e-3)
        assert result['observed'].sum() == 100000
        assert result['passed'], f"χ² = {result['statistic']:.2f}"

    def test_same_seed_same_stream(self):
        a = GaussianSampler(2024)
        b = GaussianSampler(2024)
        assert [a.standard_normal() for _ in range(9)] == [b.standard_normal() for _ in range(9)]

    def test_different_seeds_differ(self):
        a = GaussianSampler(1)
        b = GaussianSampler(2)
        assert [a.standard_normal() for _ in range(4)] != [b.standard_normal() for _ in range(4)]

    def test_reseed_clears_cached_deviate(self):
        sampler = GaussianSampler(99)
        first = [sampler.standard_normal() for _ in range(3)]

        # three draws leave the second deviate of a pair cached
        sampler.reseed(99)
        again = [sampler.standard_normal() for _ in range(3)]
        assert first == again

    def test_second_deviate_is_cached(self):
        sampler = GaussianSampler(5)
        z1 = sampler.standard_normal()
        assert sampler._has_cached
        cached = sampler._cached

        z2 = sampler.standard_normal()
        assert z2 == cached
        assert not sampler._has_cached
        assert np.isfinite(z1)

    def test_uniform_range(self):
        sampler = GaussianSampler(8)
        u = np.array([sampler.uniform() for _ in range(2000)])
        assert u.min() >= -1.0 and u.max() < 1.0

    def test_seed_must_fit_in_32_bits(self):
        with pytest.raises(ValueError):
            GaussianSampler(2**32)
        with pytest.raises(ValueError):
            GaussianSampler(-1)

    def test_clock_seed(self):
        seed = clock_seed()
        assert 0 <= seed <= 0xFFFFFFFF
        assert 0 <= GaussianSampler.from_clock().seed_value <= 0xFFFFFFFF

    def test_default_sampler(self):
        initialize_rng(77)
        first = [gaussian_rng() for _ in range(5)]
        initialize_rng(77)
        assert [gaussian_rng() for _ in range(5)] == first
        assert default_sampler().seed_value == 77

    def test_default_sampler_clock_seed(self):
        sampler = initialize_rng()
        assert sampler is default_sampler()
        assert np.isfinite(gaussian_rng())

    def test_standard_normal_matrix(self):
        Z = GaussianSampler(4).standard_normal_matrix(3, 5)
        assert Z.shape == (3, 5)
        with pytest.raises(ShapeError):
            GaussianSampler(4).standard_normal_matrix(0, 5)


class TestMultivariateNormal:
    """Test correlated draws against their target moments."""

    mu = Matrix("1,2,3")
    sigma = Matrix("4,1,-1; 1,3,0; -1,0,2")

    def test_sample_moments(self):
        M = 100000
        X = GaussianSampler(31415).mv_normal(M, self.mu, self.sigma)
        assert X.shape == (M, 3)

        check = sample_moment_check(X, self.mu, self.sigma)

        assert check['z_critical'] == pytest.approx(3.09, abs=0.01)
        assert np.all(np.abs(check['zscores']) <= check['z_critical'])
        assert check['max_cov_deviation'] <= 0.0595

    def test_reproducible(self):
        X1 = GaussianSampler(10).mv_normal(50, self.mu, self.sigma)
        X2 = GaussianSampler(10).mv_normal(50, self.mu, self.sigma)
        np.testing.assert_array_equal(X1.to_array(), X2.to_array())

    def test_mean_must_be_row(self):
        with pytest.raises(ShapeError):
            GaussianSampler(1).mv_normal(10, Matrix("1;2;3"), self.sigma)

    def test_covariance_shape(self):
        with pytest.raises(ShapeError):
            GaussianSampler(1).mv_normal(10, self.mu, Matrix("1,0;0,1"))

    def test_degenerate_covariance(self):
        with pytest.raises(SingularSystemError):
            GaussianSampler(1).mv_normal(10, Matrix("0,0"), Matrix("1,1;1,1"))
