"""
Posterior estimation of the Oneka regional discharge-potential model.

This package provides modules for:
- config: Centralized configuration with all defaults
- matrix: Dense row-major matrix and its arithmetic kernel
- linear_systems: Cholesky, SPD inverse, least squares, affine map
- gaussian: Normal CDF, Box-Muller sampler, multivariate-normal draws
- engine: Oneka equations, posterior mean/covariance, realizations
- diagnostics: Approximate equality, χ² and moment checks
- plots: Potential map and coefficient histograms
"""

from .config import Config, DEFAULT_CONFIG
from .errors import OnekaError, ShapeError, SingularSystemError
from .matrix import Matrix, format_matrix
from .linear_systems import (
    cholesky_decomposition,
    rspd_inverse,
    least_squares_solve,
    affine_transformation,
)
from .gaussian import (
    GaussianSampler,
    gaussian_cdf,
    gaussian_rng,
    initialize_rng,
)
from .engine import (
    EngineResult,
    Piezometer,
    Well,
    engine,
    run_engine,
    evaluate_potential,
    potential_to_head,
)
from .version import __version__, engine_version, now
from . import plots

__all__ = [
    "Config",
    "DEFAULT_CONFIG",
    "OnekaError",
    "ShapeError",
    "SingularSystemError",
    "Matrix",
    "format_matrix",
    "cholesky_decomposition",
    "rspd_inverse",
    "least_squares_solve",
    "affine_transformation",
    "GaussianSampler",
    "gaussian_cdf",
    "gaussian_rng",
    "initialize_rng",
    "EngineResult",
    "Piezometer",
    "Well",
    "engine",
    "run_engine",
    "evaluate_potential",
    "potential_to_head",
    "__version__",
    "engine_version",
    "now",
    "plots",
]
