"""
Centralized configuration for Oneka coefficient estimation.

All constants in one place with the defaults used by the calibration scenario.
Units are consistent but arbitrary: lengths [L], times [T], discharges [L³/T].

Configuration Groups:
    - Aquifer: Conductivity, thickness, base elevation
    - Model: Origin of the quadratic trend
    - Simulation: Number of posterior samples, RNG seed
    - Numerics: Conditioning threshold, comparison tolerance
    - Reporting: Field width of the printed coefficient table
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np


@dataclass
class Config:
    """
    Centralized configuration for the Oneka engine.

    Attributes
    ----------
    Aquifer:
        K_COND : float
            Hydraulic conductivity [L/T] (default: 1.0)
        H_THICK : float
            Aquifer thickness [L] (default: 50.0)
        BASE : float
            Elevation of the aquifer base [L] (default: 0.0)

    Model:
        X0, Y0 : float
            Coordinates of the model origin [L] (default: 0.0, 0.0)

    Simulation:
        N_SIMS : int
            Number of equiprobable coefficient realizations (default: 1000)
        RNG_SEED : int, optional
            32-bit seed for the Gaussian sampler; None seeds from the wall
            clock (default: None)

    Numerics:
        COND_WARN : float
            Condition number of AᵀA above which a RuntimeWarning is issued
            (default: 1e14)
        APPROX_TOL : float
            Absolute tolerance of the approximate-equality predicates
            (default: 1e-9)

    Reporting:
        REPORT_WIDTH : int
            Field width used when printing matrices (default: 12)
    """

    # =========================================================================
    # Aquifer
    # =========================================================================
    K_COND: float = 1.0                     # L/T (hydraulic conductivity)
    H_THICK: float = 50.0                   # L (aquifer thickness)
    BASE: float = 0.0                       # L (base elevation)

    # =========================================================================
    # Model
    # =========================================================================
    X0: float = 0.0                         # L (model origin x)
    Y0: float = 0.0                         # L (model origin y)

    # =========================================================================
    # Simulation
    # =========================================================================
    N_SIMS: int = 1000                      # realizations
    RNG_SEED: Optional[int] = None          # None = wall clock

    # =========================================================================
    # Numerics
    # =========================================================================
    COND_WARN: float = 1e14                 # cond(AᵀA) warning threshold
    APPROX_TOL: float = 1e-9                # absolute comparison tolerance

    # =========================================================================
    # Reporting
    # =========================================================================
    REPORT_WIDTH: int = 12                  # characters per printed column

    # =========================================================================
    # Derived Properties
    # =========================================================================
    @property
    def origin(self) -> Tuple[float, float]:
        """Model origin (x0, y0) [L]."""
        return (self.X0, self.Y0)

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.K_COND > 0.0:
            raise ValueError(f"K_COND ({self.K_COND}) must be > 0.")

        if not self.H_THICK > 0.0:
            raise ValueError(f"H_THICK ({self.H_THICK}) must be > 0.")

        if int(self.N_SIMS) != self.N_SIMS or self.N_SIMS < 0:
            raise ValueError(f"N_SIMS ({self.N_SIMS}) must be a non-negative integer.")

        if self.RNG_SEED is not None and not 0 <= self.RNG_SEED <= np.iinfo(np.uint32).max:
            raise ValueError(f"RNG_SEED ({self.RNG_SEED}) must fit in 32 bits.")

        if not self.COND_WARN > 1.0:
            raise ValueError(f"COND_WARN ({self.COND_WARN}) must be > 1.")

        if not self.APPROX_TOL >= 0.0:
            raise ValueError(f"APPROX_TOL ({self.APPROX_TOL}) must be >= 0.")


# Default configuration instance
DEFAULT_CONFIG = Config()
