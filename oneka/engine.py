"""
Oneka estimation engine: posterior of the quadratic discharge-potential model.

The regional discharge potential is modeled as a quadratic trend about the
model origin (x0, y0) plus the known contribution of discharge-specified wells:

    Φ(x, y) = A dx² + B dy² + C dx dy + D dx + E dy + F
              + Σ_w (Q_w / 4π) ln( (x - x_w)² + (y - y_w)² )

    dx = x - x0,  dy = y - y0

Each piezometer p supplies an expected head E_p and its standard deviation
S_p. With head = E_p - Base the potential moments are

    unconfined (head < H):  μ_Φ = ½ k (head² + S_p²)    σ_Φ = k head S_p
    confined   (head >= H): μ_Φ = k H (head - ½ H)       σ_Φ = k H S_p

(the S_p² term is E[head²] = E[head]² + Var[head]; σ_Φ linearizes around the
expected head). Dividing each equation by σ_Φ gives the weighted system

    A[p] = (dx², dy², dx dy, dx, dy, 1) / σ_Φ
    b[p] = (μ_Φ - Φ_w(p)) / σ_Φ

whose least-squares solution is the maximum-likelihood estimate. Under a flat
prior the posterior of the six coefficients is N(μ, Σ) with

    Σ = (AᵀA)⁻¹,   μ = Σ AᵀB

Realizations are drawn from N(μ, Σ) with a GaussianSampler.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple
import logging
import warnings
import numpy as np
import pandas as pd

from .config import Config, DEFAULT_CONFIG
from .errors import SingularSystemError
from .gaussian import GaussianSampler
from .linear_systems import rspd_inverse
from .matrix import Matrix, multiply, multiply_tn, transpose
from .version import engine_version, now

logger = logging.getLogger(__name__)

FOUR_PI = 12.56637061435917295385057

N_COEFFICIENTS = 6
COEFFICIENT_NAMES = ("A", "B", "C", "D", "E", "F")
MIN_PIEZOMETERS = N_COEFFICIENTS


@dataclass
class Well:
    """Discharge-specified well at (x, y) [L] with discharge q [L³/T]."""
    x: float
    y: float
    q: float


@dataclass
class Piezometer:
    """Observation well at (x, y) [L] with expected head and its std [L]."""
    x: float
    y: float
    head: float
    std: float


@dataclass
class EngineResult:
    """
    Posterior of the Oneka coefficients [A, B, C, D, E, F].

    Attributes
    ----------
    version : str
        Engine version that produced the result
    run_time : str
        Date and time of the run
    mu : np.ndarray
        (6,) posterior mean
    cov : np.ndarray
        (6, 6) posterior covariance
    n_sims : int
        Number of realizations
    samples : np.ndarray
        (n_sims, 6) equiprobable realizations, one per row
    """
    version: str
    run_time: str
    mu: np.ndarray
    cov: np.ndarray
    n_sims: int
    samples: np.ndarray

    @property
    def std(self) -> np.ndarray:
        """Posterior standard deviations."""
        return np.sqrt(np.diag(self.cov))

    @property
    def correlation(self) -> np.ndarray:
        """Posterior correlation matrix."""
        s = self.std
        return self.cov / np.outer(s, s)

    def to_frame(self) -> pd.DataFrame:
        """Coefficient table: mean, std, and the correlation matrix."""
        frame = pd.DataFrame(
            self.correlation,
            index=list(COEFFICIENT_NAMES),
            columns=list(COEFFICIENT_NAMES),
        )
        frame.insert(0, "std", self.std)
        frame.insert(0, "mean", self.mu)
        return frame

    def summary(self) -> str:
        """Fitted-parameter report with lower-triangular correlations."""
        rule = "-" * 75
        lines = [
            f"version: {self.version}",
            f"run on:  {self.run_time}",
            "",
            "Fitted Model Parameters",
            rule,
            "        Average      Std Dev                    Correlations",
            rule,
        ]
        corr = self.correlation
        for i, name in enumerate(COEFFICIENT_NAMES):
            row = "".join(f"{r:7.2f}" for r in corr[i, :i + 1])
            lines.append(f"{name}: {self.mu[i]:12.4E} {self.std[i]:12.4E}    {row}")
        lines.append(rule)
        return "\n".join(lines)


# =============================================================================
# Model pieces
# =============================================================================

def discharge_potential_moments(
    head: float,
    std: float,
    k: float,
    H: float,
) -> Tuple[float, float]:
    """
    Mean and standard deviation of the discharge potential at a piezometer.

    Parameters
    ----------
    head : float
        Expected head above the aquifer base [L]
    std : float
        Standard deviation of the head [L]
    k : float
        Hydraulic conductivity [L/T]
    H : float
        Aquifer thickness [L]

    Returns
    -------
    tuple
        (mean, std) of Φ [L³/T]
    """
    if head < H:
        return 0.5 * k * (head * head + std * std), k * head * std
    return k * H * (head - 0.5 * H), k * H * std


def well_potential(
    x: np.ndarray,
    y: np.ndarray,
    xw: Sequence[float],
    yw: Sequence[float],
    qw: Sequence[float],
) -> np.ndarray:
    """
    Combined discharge potential of the well field at points (x, y).

        Φ_w = Σ_w (Q_w / 4π) ln( (x - x_w)² + (y - y_w)² )

    The logarithm takes the squared distance, folding the factor 2 of
    ln d² = 2 ln d into the 1/(2π) coefficient.

    Returns
    -------
    np.ndarray
        Potential with the broadcast shape of x and y (-inf/inf at a well)
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    phi = np.zeros(np.broadcast(x, y).shape)
    with np.errstate(divide="ignore"):
        for xi, yi, qi in zip(xw, yw, qw):
            dx = x - xi
            dy = y - yi
            phi = phi + qi / FOUR_PI * np.log(dx * dx + dy * dy)
    return phi


def evaluate_potential(
    coefficients: Sequence[float],
    x: np.ndarray,
    y: np.ndarray,
    x0: float = 0.0,
    y0: float = 0.0,
    xw: Sequence[float] = (),
    yw: Sequence[float] = (),
    qw: Sequence[float] = (),
) -> np.ndarray:
    """
    Discharge potential of a fitted model at points (x, y).

    Parameters
    ----------
    coefficients : sequence
        [A, B, C, D, E, F]
    x, y : np.ndarray
        Evaluation points [L]
    x0, y0 : float, optional
        Model origin [L]
    xw, yw, qw : sequence, optional
        Well coordinates [L] and discharges [L³/T]

    Returns
    -------
    np.ndarray
        Φ(x, y) [L³/T]
    """
    a, b, c, d, e, f = coefficients
    dx = np.asarray(x, dtype=float) - x0
    dy = np.asarray(y, dtype=float) - y0
    trend = a * dx * dx + b * dy * dy + c * dx * dy + d * dx + e * dy + f
    return trend + well_potential(x, y, xw, yw, qw)


def potential_to_head(
    phi: np.ndarray,
    k: float,
    H: float,
    base: float = 0.0,
) -> np.ndarray:
    """
    Head elevation [L] corresponding to discharge potential phi.

    Inverse of Φ = ½ k h² (unconfined, Φ < ½ k H²) and
    Φ = k H h - ½ k H² (confined). Negative potentials map to NaN.
    """
    phi = np.asarray(phi, dtype=float)
    phi_c = 0.5 * k * H * H
    with np.errstate(invalid="ignore"):
        h = np.where(phi < phi_c, np.sqrt(2.0 * phi / k), (phi + phi_c) / (k * H))
    return base + h


# =============================================================================
# Engine
# =============================================================================

def _validate_inputs(k, H, xw, yw, qw, xp, yp, ep, sp, n_sims) -> None:
    if not k > 0.0:
        raise ValueError(f"Hydraulic conductivity k ({k}) must be > 0.")
    if not H > 0.0:
        raise ValueError(f"Aquifer thickness H ({H}) must be > 0.")

    if not len(xw) == len(yw) == len(qw):
        raise ValueError(
            f"Well arrays differ in length: {len(xw)}, {len(yw)}, {len(qw)}"
        )
    if not len(xp) == len(yp) == len(ep) == len(sp):
        raise ValueError(
            f"Piezometer arrays differ in length: {len(xp)}, {len(yp)}, {len(ep)}, {len(sp)}"
        )
    if len(xp) < MIN_PIEZOMETERS:
        raise ValueError(
            f"At least {MIN_PIEZOMETERS} piezometers are required, got {len(xp)}."
        )

    if np.any(~(np.asarray(sp, dtype=float) > 0.0)):
        raise ValueError("Every piezometer standard deviation must be > 0.")

    if int(n_sims) != n_sims or n_sims < 0:
        raise ValueError(f"n_sims ({n_sims}) must be a non-negative integer.")


def build_system(
    k: float,
    H: float,
    base: float,
    xw: Sequence[float],
    yw: Sequence[float],
    qw: Sequence[float],
    xp: Sequence[float],
    yp: Sequence[float],
    ep: Sequence[float],
    sp: Sequence[float],
    x0: float,
    y0: float,
) -> Tuple[Matrix, Matrix]:
    """
    Weighted design matrix and response vector of the Oneka equations.

    Returns
    -------
    tuple
        (A, b)
        - A: (P x 6) design matrix, row p scaled by 1/σ_Φ(p)
        - b: (P x 1) response, (μ_Φ(p) - Φ_w(p)) / σ_Φ(p)

    Raises
    ------
    ValueError
        If a piezometer head equals the aquifer base (zero weight), or a
        piezometer coincides with a well. A head below the base gives a
        negative σ_Φ, which flips the sign of its whole row and leaves the
        least-squares fit unchanged.
    """
    P = len(xp)
    A = Matrix(P, N_COEFFICIENTS)
    b = Matrix(P, 1)

    phi_w = well_potential(xp, yp, xw, yw, qw)
    n_confined = 0

    for p in range(P):
        head = ep[p] - base
        if head == 0.0:
            raise ValueError(
                f"Piezometer {p} head ({ep[p]}) equals the aquifer base ({base})."
            )
        if not np.isfinite(phi_w[p]):
            raise ValueError(f"Piezometer {p} coincides with a well.")

        avg, std = discharge_potential_moments(head, sp[p], k, H)
        n_confined += head >= H

        dx = xp[p] - x0
        dy = yp[p] - y0

        A[p, 0] = dx * dx / std
        A[p, 1] = dy * dy / std
        A[p, 2] = dx * dy / std
        A[p, 3] = dx / std
        A[p, 4] = dy / std
        A[p, 5] = 1.0 / std

        b[p, 0] = (avg - phi_w[p]) / std

    logger.debug(
        "Oneka system: %d piezometers (%d confined), %d wells", P, n_confined, len(xw)
    )
    return A, b


def engine(
    k: float,
    H: float,
    base: float,
    xw: Sequence[float],
    yw: Sequence[float],
    qw: Sequence[float],
    xp: Sequence[float],
    yp: Sequence[float],
    ep: Sequence[float],
    sp: Sequence[float],
    x0: float,
    y0: float,
    n_sims: int,
    sampler: Optional[GaussianSampler] = None,
    config: Optional[Config] = None,
) -> EngineResult:
    """
    Posterior mean, covariance and realizations of the Oneka coefficients.

    Parameters
    ----------
    k : float
        Hydraulic conductivity [L/T], > 0
    H : float
        Aquifer thickness [L], > 0
    base : float
        Elevation of the aquifer base [L]
    xw, yw, qw : sequence
        (W,) well coordinates [L] and discharges [L³/T]; W may be 0
    xp, yp : sequence
        (P,) piezometer coordinates [L], P >= 6
    ep, sp : sequence
        (P,) expected heads [L] and their standard deviations [L], sp > 0
    x0, y0 : float
        Model origin [L]
    n_sims : int
        Number of realizations to generate, >= 0
    sampler : GaussianSampler, optional
        Source of random deviates (wall-clock seeded when None)
    config : Config, optional
        Configuration (conditioning threshold)

    Returns
    -------
    EngineResult
        Each row of `samples` is an equiprobable realization of
        [A, B, C, D, E, F]

    Raises
    ------
    ValueError
        If the inputs violate a precondition
    SingularSystemError
        If the normal equations cannot be solved
    """
    if config is None:
        config = DEFAULT_CONFIG
    if sampler is None:
        sampler = GaussianSampler.from_clock()

    _validate_inputs(k, H, xw, yw, qw, xp, yp, ep, sp, n_sims)
    n_sims = int(n_sims)

    A, b = build_system(k, H, base, xw, yw, qw, xp, yp, ep, sp, x0, y0)

    # Statistics: one normal matrix serves both the covariance and the fit.
    AtA = multiply_tn(A, A)
    cond = np.linalg.cond(AtA.as_array())
    logger.debug("cond(AtA) = %.3e", cond)
    if cond > config.COND_WARN:
        warnings.warn(
            f"Normal matrix is ill conditioned (cond = {cond:.3e}); "
            "consider moving the model origin to the centre of the piezometers.",
            RuntimeWarning,
        )

    try:
        cov = rspd_inverse(AtA)
    except SingularSystemError as e:
        raise SingularSystemError(
            f"Oneka system with {A.rows} piezometers is singular: {e}"
        ) from e

    mu = multiply(cov, multiply_tn(A, b))

    # Realizations: the sampler needs the mean as a row.
    if n_sims > 0:
        try:
            samples = sampler.mv_normal(n_sims, transpose(mu), cov).to_array()
        except SingularSystemError as e:
            raise SingularSystemError(f"Posterior covariance is not positive definite: {e}") from e
    else:
        samples = np.empty((0, N_COEFFICIENTS))

    logger.debug("Generated %d realizations", n_sims)

    return EngineResult(
        version=engine_version(),
        run_time=now(),
        mu=mu.to_array().ravel(),
        cov=cov.to_array(),
        n_sims=n_sims,
        samples=samples,
    )


def run_engine(
    wells: Iterable[Well],
    piezometers: Iterable[Piezometer],
    config: Optional[Config] = None,
    sampler: Optional[GaussianSampler] = None,
) -> EngineResult:
    """
    Run the engine with aquifer, origin and sampling settings from a Config.

    Parameters
    ----------
    wells : iterable of Well
        Discharge-specified wells (may be empty)
    piezometers : iterable of Piezometer
        At least six observation wells
    config : Config, optional
        Configuration object
    sampler : GaussianSampler, optional
        Defaults to a sampler seeded with config.RNG_SEED

    Returns
    -------
    EngineResult
    """
    if config is None:
        config = DEFAULT_CONFIG
    if sampler is None:
        sampler = GaussianSampler(config.RNG_SEED)

    wells = list(wells)
    piezometers = list(piezometers)

    return engine(
        config.K_COND,
        config.H_THICK,
        config.BASE,
        [w.x for w in wells],
        [w.y for w in wells],
        [w.q for w in wells],
        [p.x for p in piezometers],
        [p.y for p in piezometers],
        [p.head for p in piezometers],
        [p.std for p in piezometers],
        config.X0,
        config.Y0,
        config.N_SIMS,
        sampler=sampler,
        config=config,
    )
