"""
Standard-normal distribution function and Gaussian pseudo-random deviates.

This module implements:
- Φ(x), the standard normal CDF, by Marsaglia's (2004) Taylor series
- Scalar standard-normal deviates by the polar Box-Muller method
- Matrices of independent standard-normal deviates
- Correlated multivariate-normal vectors through a Cholesky factor

Key equations:
    Φ(x) = 1/2 + φ(x) (x + x³/3 + x⁵/(3·5) + x⁷/(3·5·7) + ...)

    polar Box-Muller: U1, U2 ~ U(-1, 1), R = U1² + U2² < 1,
                      P = sqrt(-2 ln R / R), deviates P·U1 and P·U2

    X = Z Lᵀ + 1 mu  with  L Lᵀ = Σ  and  Z i.i.d. N(0, 1)

Random state lives in a GaussianSampler: the uniform generator plus the cached
second Box-Muller deviate. Reseeding a sampler clears the cache, so a given
seed always reproduces the same stream. Samplers are not thread safe; share
one per thread at most. The module-level `initialize_rng` and `gaussian_rng`
act on a process-wide default sampler.

References:
    Marsaglia, G., 2004, Evaluating the Normal Distribution, Journal of
    Statistical Software, v. 11, n. 4.

    Press, W., B. Flannery, S. Teukolsky, and W. Vetterling, 1986, Numerical
    Recipes - The Art of Scientific Computing, Cambridge University Press,
    p. 203.
"""

from typing import Optional
import time
import numpy as np

from .errors import ShapeError
from .matrix import Matrix, transpose
from .linear_systems import affine_transformation, cholesky_decomposition


# ½·ln(2π)
HALF_LOG_TWO_PI = np.longdouble("0.91893853320467274178")

# Beyond ±8 the CDF is 0 or 1 to double precision
CDF_LIMIT = 8.0

SEED_MASK = 0xFFFFFFFF


def gaussian_cdf(x: float) -> float:
    """
    Standard normal cumulative distribution function.

    Relatively slow, but the error is below 1e-15 for all x. The series is
    summed in extended precision until two successive partial sums agree.

    Parameters
    ----------
    x : float
        Argument

    Returns
    -------
    float
        P(Z <= x) for Z ~ N(0, 1); NaN for a NaN argument
    """
    if np.isnan(x):
        return float("nan")
    if x < -CDF_LIMIT:
        return 0.0
    if x > CDF_LIMIT:
        return 1.0

    x = np.longdouble(x)
    s, t, b, q, i = x, np.longdouble(0.0), x, x * x, np.longdouble(1.0)
    while s != t:
        t = s
        i += 2
        b *= q / i
        s = t + b

    return float(0.5 + s * np.exp(-0.5 * q - HALF_LOG_TWO_PI))


def clock_seed() -> int:
    """32-bit seed derived from the wall clock."""
    return time.time_ns() & SEED_MASK


class GaussianSampler:
    """
    Source of standard-normal and multivariate-normal pseudo-random deviates.

    Parameters
    ----------
    seed : int, optional
        32-bit seed for the underlying uniform generator. When None the seed
        is taken from the wall clock.

    Attributes
    ----------
    seed_value : int
        The seed in effect since the last (re)seeding
    """

    def __init__(self, seed: Optional[int] = None):
        self.reseed(seed)

    @classmethod
    def from_clock(cls) -> "GaussianSampler":
        return cls(clock_seed())

    def reseed(self, seed: Optional[int] = None) -> None:
        """Restart the uniform stream and discard any cached deviate."""
        if seed is None:
            seed = clock_seed()
        if seed < 0 or seed > SEED_MASK:
            raise ValueError(f"Seed ({seed}) must fit in 32 bits.")

        self.seed_value = int(seed)
        self._rng = np.random.default_rng(self.seed_value)
        self._cached = 0.0
        self._has_cached = False

    def uniform(self) -> float:
        """Uniform deviate on [-1, 1)."""
        return 2.0 * self._rng.random() - 1.0

    def standard_normal(self) -> float:
        """
        One standard-normal deviate by the polar Box-Muller method.

        Deviates are produced in pairs; the second of each pair is cached and
        returned by the next call.
        """
        if self._has_cached:
            self._has_cached = False
            return self._cached

        while True:
            u1 = self.uniform()
            u2 = self.uniform()
            r = u1 * u1 + u2 * u2
            if 0.0 < r < 1.0:
                p = np.sqrt(-2.0 * np.log(r) / r)
                self._cached = float(p * u1)
                self._has_cached = True
                return float(p * u2)

    def standard_normal_matrix(self, m: int, n: int) -> Matrix:
        """(m x n) matrix of independent standard-normal deviates, row by row."""
        if m < 1 or n < 1:
            raise ShapeError(f"Invalid sample shape ({m}, {n})")

        Z = Matrix(m, n)
        data = Z.base
        for k in range(m * n):
            data[k] = self.standard_normal()
        return Z

    def mv_normal(self, m: int, mu: Matrix, sigma: Matrix) -> Matrix:
        """
        Independent draws from a multivariate normal distribution.

        Parameters
        ----------
        m : int
            Number of random vectors to generate
        mu : Matrix
            (1 x n) mean row
        sigma : Matrix
            (n x n) covariance (not correlation) matrix; must be symmetric
            positive definite, degenerate cases are not allowed

        Returns
        -------
        Matrix
            (m x n) matrix whose rows are independent N(mu, sigma) vectors

        Raises
        ------
        SingularSystemError
            If sigma is not positive definite
        """
        if mu.rows != 1 or mu.cols < 1:
            raise ShapeError(f"mu must be a row vector, got {mu.rows}x{mu.cols}")
        if sigma.shape != (mu.cols, mu.cols):
            raise ShapeError(
                f"sigma must be {mu.cols}x{mu.cols}, got {sigma.rows}x{sigma.cols}"
            )

        U = transpose(cholesky_decomposition(sigma))
        X = self.standard_normal_matrix(m, mu.cols)
        return affine_transformation(X, U, mu, out=X)


# =============================================================================
# Process-wide default sampler
# =============================================================================

_default_sampler = GaussianSampler()


def initialize_rng(seed: Optional[int] = None) -> GaussianSampler:
    """Reseed the default sampler (wall clock when seed is None) and return it."""
    _default_sampler.reseed(seed)
    return _default_sampler


def default_sampler() -> GaussianSampler:
    return _default_sampler


def gaussian_rng() -> float:
    """One standard-normal deviate from the default sampler."""
    return _default_sampler.standard_normal()
