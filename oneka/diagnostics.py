"""
Numerical checks shared by the test-suite and by callers validating a run.

- Approximate equality of scalars and matrices
- χ² goodness of fit of scalar deviates against the standard normal
- Moment check of multivariate-normal samples (mean z-scores, covariance)
"""

from typing import Dict, Optional, Sequence
import numpy as np
from scipy import stats

from .config import DEFAULT_CONFIG
from .gaussian import gaussian_cdf
from .matrix import Matrix, column_sum, max_abs, multiply_tn, scale, subtract

# Interior bin edges of the normality test; the outer bins are open ended
NORMAL_BIN_EDGES = np.arange(-3.0, 3.0 + 0.25, 0.5)

# Standard-normal probability of each bin
NORMAL_BIN_PROBABILITIES = (
    0.001349898, 0.004859767, 0.016540466, 0.044057069, 0.091848052,
    0.149882284, 0.191462461, 0.191462461, 0.149882284, 0.091848052,
    0.044057069, 0.016540466, 0.004859767, 0.001349898,
)


def approx_equal(x: float, y: float, tol: Optional[float] = None) -> bool:
    """|x - y| <= tol."""
    if tol is None:
        tol = DEFAULT_CONFIG.APPROX_TOL
    return abs(x - y) <= tol


def relative_equal(x: float, y: float, tol: Optional[float] = None) -> bool:
    """|x - y| <= tol * |y|."""
    if tol is None:
        tol = DEFAULT_CONFIG.APPROX_TOL
    return abs(x - y) <= tol * abs(y)


def matrix_approx_equal(A: Matrix, B: Matrix, tol: Optional[float] = None) -> bool:
    """Same shape and max |A - B| <= tol."""
    if tol is None:
        tol = DEFAULT_CONFIG.APPROX_TOL
    if A.shape != B.shape:
        return False
    return max_abs(subtract(A, B)) <= tol


def normal_bin_probabilities(edges: np.ndarray = NORMAL_BIN_EDGES) -> np.ndarray:
    """Bin probabilities of the standard normal for interior `edges`."""
    cdf = np.array([0.0] + [gaussian_cdf(e) for e in edges] + [1.0])
    return np.diff(cdf)


def chi_square_normality(
    draws: Sequence[float],
    probabilities: Sequence[float] = NORMAL_BIN_PROBABILITIES,
    confidence: float = 0.999,
) -> Dict:
    """
    Pearson χ² test of scalar deviates against the standard normal.

    Deviates are binned over left-closed half-unit intervals [a, b) from
    -3 to 3 plus the two tails (-inf, -3) and [3, inf).

    Parameters
    ----------
    draws : sequence
        Deviates to test
    probabilities : sequence, optional
        Expected probability of each of the 14 bins
    confidence : float, optional
        Quantile of the χ² distribution used as the critical value

    Returns
    -------
    dict
        - 'statistic': χ² statistic
        - 'critical': critical value (χ²⁻¹(confidence, bins - 1))
        - 'dof': degrees of freedom
        - 'observed': counts per bin
        - 'expected': expected counts per bin
        - 'passed': statistic <= critical
    """
    z = np.asarray(draws, dtype=float)
    n_bins = len(NORMAL_BIN_EDGES) + 1
    if len(probabilities) != n_bins:
        raise ValueError(f"Expected {n_bins} bin probabilities, got {len(probabilities)}")

    # Bin j holds [edge[j-1], edge[j]); bin 0 is (-inf, -3) and the last [3, inf).
    index = np.where(z < -3.0, 0, np.where(z >= 3.0, n_bins - 1, np.floor(2.0 * (z + 3.0)) + 1))
    observed = np.bincount(index.astype(int), minlength=n_bins).astype(float)
    expected = z.size * np.asarray(probabilities, dtype=float)

    statistic = float(np.sum((observed - expected) ** 2 / expected))
    dof = n_bins - 1
    critical = float(stats.chi2.ppf(confidence, dof))

    return {
        'statistic': statistic,
        'critical': critical,
        'dof': dof,
        'observed': observed,
        'expected': expected,
        'passed': statistic <= critical,
    }


def sample_moment_check(
    X: Matrix,
    mu: Matrix,
    sigma: Matrix,
    confidence: float = 0.999,
) -> Dict:
    """
    Compare sample moments of multivariate-normal rows with the target.

    Parameters
    ----------
    X : Matrix
        (M x N) samples, one vector per row
    mu : Matrix
        (1 x N) target mean
    sigma : Matrix
        (N x N) target covariance
    confidence : float, optional
        One-sided normal quantile for the z-score limit

    Returns
    -------
    dict
        - 'mean': (N,) sample mean
        - 'zscores': (N,) (mean - mu) / sqrt(Σ_jj / M)
        - 'z_critical': normal quantile at `confidence`
        - 'cov': (N, N) sample covariance (divisor M)
        - 'max_cov_deviation': max |cov - Σ|
    """
    M = X.rows
    xbar = scale(1.0 / M, column_sum(X))

    zscores = (xbar.to_array().ravel() - mu.to_array().ravel()) / np.sqrt(
        np.diag(sigma.to_array()) / M
    )

    B = Matrix(X)
    B.as_array()[:] -= xbar.base
    cov = scale(1.0 / M, multiply_tn(B, B))

    return {
        'mean': xbar.to_array().ravel(),
        'zscores': zscores,
        'z_critical': float(stats.norm.ppf(confidence)),
        'cov': cov.to_array(),
        'max_cov_deviation': max_abs(subtract(cov, sigma)),
    }
