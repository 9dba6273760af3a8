"""
Unit tests for the Oneka estimation engine.

Tests the oneka/engine.py module for:
1. The calibration scenario (posterior mean and standard deviations)
2. Realization shape, reproducibility and the zero-realization case
3. Input validation and singular configurations
4. Potential moments and potential/head conversions
5. The Config-driven entry point and the result report
"""

import logging
import pytest
import numpy as np
import pandas as pd
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from oneka.config import Config
from oneka.errors import SingularSystemError
from oneka.gaussian import GaussianSampler
from oneka.engine import (
    COEFFICIENT_NAMES,
    EngineResult,
    Piezometer,
    Well,
    build_system,
    discharge_potential_moments,
    engine,
    evaluate_potential,
    potential_to_head,
    run_engine,
    well_potential,
)
from oneka.version import engine_version


# Calibration scenario: one pumping well at the origin, eight piezometers on
# a 200 x 200 square around it.
K, H, BASE = 1.0, 50.0, 0.0
XW, YW, QW = [0.0], [0.0], [30.0]
XP = [100.0, 100.0, 0.0, -100.0, -100.0, -100.0, 0.0, 100.0]
YP = [0.0, 100.0, 100.0, 100.0, 0.0, -100.0, -100.0, -100.0]
EP = [
    45.2103543000137, 45.4674132751695, 51.4397613593277, 53.2728566993506,
    53.4397613593277, 49.6717794118054, 47.3706252432113, 40.3396290257491,
]
SP = [1.0] * 8

MU_ANS = [-0.9989e-02, -0.9989e-02, 0.1013e-02, -0.1998e+01, 0.9984e+00, 0.1300e+04]
MU_TOL = [1e-6, 1e-6, 1e-6, 1e-3, 1e-4, 1.0]
STD_ANS = [0.4145e-02, 0.4067e-02, 0.2318e-02, 0.1914e+00, 0.1927e+00, 0.5325e+02]
STD_TOL = [1e-6, 1e-6, 1e-6, 1e-4, 1e-4, 1e-2]


def run_scenario(n_sims=1, seed=1, **overrides):
    args = dict(k=K, H=H, base=BASE, xw=XW, yw=YW, qw=QW,
                xp=XP, yp=YP, ep=EP, sp=SP, x0=0.0, y0=0.0)
    args.update(overrides)
    return engine(n_sims=n_sims, sampler=GaussianSampler(seed), **args)


class TestCalibrationScenario:
    """Test the posterior against the published coefficient table."""

    def test_posterior_mean(self):
        result = run_scenario()
        for i in range(6):
            assert abs(result.mu[i] - MU_ANS[i]) <= MU_TOL[i], COEFFICIENT_NAMES[i]

    def test_posterior_std(self):
        result = run_scenario()
        for i in range(6):
            assert abs(np.sqrt(result.cov[i, i]) - STD_ANS[i]) <= STD_TOL[i], COEFFICIENT_NAMES[i]

    def test_covariance_symmetric_positive_definite(self):
        cov = run_scenario().cov
        np.testing.assert_allclose(cov, cov.T, rtol=1e-10, atol=0.0)
        assert np.all(np.linalg.eigvalsh(cov) > 0.0)

    def test_result_metadata(self):
        result = run_scenario()
        assert result.version == engine_version()
        assert len(result.run_time) > 0
        assert result.n_sims == 1
        assert result.samples.shape == (1, 6)

    def test_fitted_heads_close_to_observed(self):
        result = run_scenario()
        phi = evaluate_potential(result.mu, XP, YP, 0.0, 0.0, XW, YW, QW)
        heads = potential_to_head(phi, K, H, BASE)
        np.testing.assert_allclose(heads, EP, atol=0.1)

    def test_origin_shift_leaves_fit_unchanged(self):
        # A quadratic trend is invariant under translation of its origin.
        a = run_scenario()
        b = run_scenario(x0=20.0, y0=-10.0)
        x = np.array([-50.0, 30.0, 75.0])
        y = np.array([40.0, -60.0, 10.0])
        np.testing.assert_allclose(
            evaluate_potential(a.mu, x, y, 0.0, 0.0, XW, YW, QW),
            evaluate_potential(b.mu, x, y, 20.0, -10.0, XW, YW, QW),
            rtol=1e-6,
        )


class TestRealizations:
    """Test the posterior samples."""

    def test_same_seed_same_result(self):
        a = run_scenario(n_sims=25, seed=42)
        b = run_scenario(n_sims=25, seed=42)
        np.testing.assert_array_equal(a.mu, b.mu)
        np.testing.assert_array_equal(a.cov, b.cov)
        np.testing.assert_array_equal(a.samples, b.samples)

    def test_zero_realizations(self):
        result = run_scenario(n_sims=0)
        assert result.n_sims == 0
        assert result.samples.shape == (0, 6)
        assert abs(result.mu[5] - MU_ANS[5]) <= MU_TOL[5]

    def test_sample_mean_near_posterior_mean(self):
        result = run_scenario(n_sims=4000, seed=7)
        assert result.samples.shape == (4000, 6)
        se = result.std / np.sqrt(result.n_sims)
        assert np.all(np.abs(result.samples.mean(axis=0) - result.mu) <= 4.0 * se)

    def test_no_wells(self):
        result = run_scenario(n_sims=3, xw=[], yw=[], qw=[])
        assert result.samples.shape == (3, 6)
        assert np.all(np.isfinite(result.mu))


class TestValidation:
    """Test precondition checks."""

    @pytest.mark.parametrize("overrides", [
        {'k': 0.0},
        {'k': -1.0},
        {'H': 0.0},
        {'xw': [0.0, 1.0]},
        {'ep': EP[:7]},
        {'sp': [1.0] * 7 + [0.0]},
        {'sp': [1.0] * 7 + [-2.0]},
        {'xp': XP[:5], 'yp': YP[:5], 'ep': EP[:5], 'sp': SP[:5]},
    ])
    def test_bad_inputs(self, overrides):
        with pytest.raises(ValueError):
            run_scenario(**overrides)

    @pytest.mark.parametrize("n_sims", [-1, 2.5])
    def test_bad_n_sims(self, n_sims):
        with pytest.raises(ValueError):
            run_scenario(n_sims=n_sims)

    def test_head_at_base(self):
        with pytest.raises(ValueError, match="equals the aquifer base"):
            run_scenario(base=EP[7])

    def test_head_below_base_flips_row(self):
        # piezometer 7 sits 4.66 below the base: negative weight, finite fit
        A, b = build_system(K, H, 45.0, XW, YW, QW, XP, YP, EP, SP, 0.0, 0.0)
        assert A[7, 5] == pytest.approx(1.0 / (K * (EP[7] - 45.0)))
        assert A[7, 5] < 0.0

        result = run_scenario(base=45.0)
        assert np.all(np.isfinite(result.mu))
        assert np.all(np.linalg.eigvalsh(result.cov) > 0.0)

    def test_piezometer_on_well(self):
        with pytest.raises(ValueError, match="coincides"):
            run_scenario(xw=[100.0], yw=[0.0])

    @pytest.mark.filterwarnings("ignore::RuntimeWarning")
    def test_collinear_piezometers_are_singular(self):
        xp = [-300.0, -200.0, -100.0, 50.0, 100.0, 200.0, 300.0, 400.0]
        with pytest.raises(SingularSystemError):
            run_scenario(xp=xp, yp=[0.0] * 8, xw=[], yw=[], qw=[])

    def test_ill_conditioning_warns(self):
        config = Config(COND_WARN=1.0001)
        with pytest.warns(RuntimeWarning, match="ill conditioned"):
            engine(K, H, BASE, XW, YW, QW, XP, YP, EP, SP, 0.0, 0.0, 1,
                   sampler=GaussianSampler(1), config=config)


class TestModelPieces:
    """Test moments, well potential and head conversion."""

    def test_unconfined_moments(self):
        avg, std = discharge_potential_moments(head=20.0, std=2.0, k=3.0, H=50.0)
        assert avg == pytest.approx(0.5 * 3.0 * (400.0 + 4.0))
        assert std == pytest.approx(3.0 * 20.0 * 2.0)

    def test_confined_moments(self):
        avg, std = discharge_potential_moments(head=60.0, std=2.0, k=3.0, H=50.0)
        assert avg == pytest.approx(3.0 * 50.0 * (60.0 - 25.0))
        assert std == pytest.approx(3.0 * 50.0 * 2.0)

    def test_moments_at_transition_are_confined(self):
        avg, _ = discharge_potential_moments(head=50.0, std=0.0, k=1.0, H=50.0)
        assert avg == pytest.approx(0.5 * 50.0**2)

    def test_well_potential(self):
        phi = well_potential([10.0], [0.0], [0.0], [0.0], [4.0 * np.pi])
        assert phi[0] == pytest.approx(np.log(100.0))

    def test_well_potential_superposition(self):
        x, y = np.array([3.0, -2.0]), np.array([1.0, 5.0])
        both = well_potential(x, y, [0.0, 1.0], [0.0, 1.0], [10.0, -4.0])
        one = well_potential(x, y, [0.0], [0.0], [10.0])
        two = well_potential(x, y, [1.0], [1.0], [-4.0])
        np.testing.assert_allclose(both, one + two)

    @pytest.mark.parametrize("head", [0.5, 10.0, 49.0, 50.0, 70.0])
    def test_potential_head_round_trip(self, head):
        k, H, base = 2.0, 50.0, 100.0
        avg, _ = discharge_potential_moments(head, 0.0, k, H)
        assert float(potential_to_head(avg, k, H, base)) == pytest.approx(base + head)

    def test_negative_potential_is_nan(self):
        assert np.isnan(potential_to_head(-1.0, 1.0, 50.0))

    def test_evaluate_potential_trend_only(self):
        coefficients = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
        phi = evaluate_potential(coefficients, 3.0, 4.0, x0=1.0, y0=1.0)
        # dx = 2, dy = 3
        assert float(phi) == pytest.approx(4.0 + 18.0 + 18.0 + 8.0 + 15.0 + 6.0)

    def test_design_rows_are_weighted(self):
        A, b = build_system(K, H, BASE, [], [], [], XP, YP, EP, [2.0] * 8, 0.0, 0.0)
        assert A.shape == (8, 6) and b.shape == (8, 1)
        sigma = K * EP[0] * 2.0
        np.testing.assert_allclose(
            A.to_array()[0], np.array([1e4, 0.0, 0.0, 100.0, 0.0, 1.0]) / sigma
        )
        assert b[0, 0] == pytest.approx(0.5 * K * (EP[0] ** 2 + 4.0) / sigma)

    def test_debug_logging(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="oneka.engine"):
            run_scenario()
        assert "8 piezometers" in caplog.text


class TestRunEngine:
    """Test the Config-driven entry point and the report."""

    wells = [Well(0.0, 0.0, 30.0)]
    piezometers = [Piezometer(x, y, e, s) for x, y, e, s in zip(XP, YP, EP, SP)]

    def test_matches_engine(self):
        config = Config(N_SIMS=10, RNG_SEED=123)
        result = run_engine(self.wells, self.piezometers, config)
        direct = run_scenario(n_sims=10, seed=123)
        np.testing.assert_array_equal(result.mu, direct.mu)
        np.testing.assert_array_equal(result.samples, direct.samples)

    def test_config_aquifer_settings_are_used(self):
        config = Config(K_COND=2.0, N_SIMS=0)
        result = run_engine(self.wells, self.piezometers, config)
        direct = run_scenario(n_sims=0, k=2.0)
        np.testing.assert_allclose(result.mu, direct.mu)

    def test_summary(self):
        result = run_engine(self.wells, self.piezometers, Config(N_SIMS=0))
        text = result.summary()
        assert "Fitted Model Parameters" in text
        assert engine_version() in text
        for name in COEFFICIENT_NAMES:
            assert f"\n{name}: " in text
        # the F row carries six correlations ending with 1.00
        assert text.splitlines()[-2].endswith("1.00")

    def test_to_frame(self):
        result = run_engine(self.wells, self.piezometers, Config(N_SIMS=0))
        frame = result.to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame.index) == list(COEFFICIENT_NAMES)
        assert list(frame.columns) == ["mean", "std"] + list(COEFFICIENT_NAMES)
        np.testing.assert_allclose(frame["mean"].to_numpy(), result.mu)
        np.testing.assert_allclose(np.diag(frame[list(COEFFICIENT_NAMES)].to_numpy()), 1.0)

    def test_correlation_bounds(self):
        result = run_engine(self.wells, self.piezometers, Config(N_SIMS=0))
        assert isinstance(result, EngineResult)
        assert np.all(np.abs(result.correlation) <= 1.0 + 1e-12)
