"""
Publication-style plots for Oneka results.

1. Map of the posterior-mean discharge potential with wells and piezometers
2. Histogram grid of the simulated coefficient realizations
"""

from typing import Optional, Sequence, Tuple
import numpy as np
import matplotlib.pyplot as plt

from .engine import COEFFICIENT_NAMES, EngineResult, Piezometer, Well, evaluate_potential


def plot_fitted_potential(
    result: EngineResult,
    piezometers: Sequence[Piezometer],
    wells: Sequence[Well] = (),
    origin: Tuple[float, float] = (0.0, 0.0),
    ax: Optional[plt.Axes] = None,
    n_grid: int = 101,
    padding: float = 0.25,
    levels: int = 20,
    figsize: Tuple[float, float] = (8, 7),
) -> plt.Figure:
    """
    Contour map of the posterior-mean discharge potential.

    Parameters
    ----------
    result : EngineResult
        Engine output supplying the mean coefficients
    piezometers : sequence of Piezometer
        Observation wells (define the plotted extent)
    wells : sequence of Well, optional
        Discharge-specified wells included in the potential
    origin : tuple, optional
        Model origin (x0, y0) used by the engine
    ax : plt.Axes, optional
        Axes to plot on (creates new figure if None)
    n_grid : int, optional
        Grid points per axis
    padding : float, optional
        Fraction of the piezometer extent added on each side
    levels : int, optional
        Number of contour levels
    figsize : tuple, optional
        Figure size

    Returns
    -------
    plt.Figure
        The figure object
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    xp = np.array([p.x for p in piezometers])
    yp = np.array([p.y for p in piezometers])
    xw = [w.x for w in wells]
    yw = [w.y for w in wells]
    qw = [w.q for w in wells]

    span = max(np.ptp(xp), np.ptp(yp), 1.0)
    x = np.linspace(xp.min() - padding * span, xp.max() + padding * span, n_grid)
    y = np.linspace(yp.min() - padding * span, yp.max() + padding * span, n_grid)
    X, Y = np.meshgrid(x, y)

    phi = evaluate_potential(result.mu, X, Y, origin[0], origin[1], xw, yw, qw)
    phi = np.ma.masked_invalid(phi)

    cs = ax.contourf(X, Y, phi, levels=levels, cmap='viridis')
    ax.contour(X, Y, phi, levels=levels, colors='k', linewidths=0.4, alpha=0.5)
    fig.colorbar(cs, ax=ax, label='Discharge potential Φ')

    ax.scatter(xp, yp, c='white', s=60, marker='o', edgecolors='black',
               linewidths=1.2, zorder=3, label='Piezometers')
    if wells:
        ax.scatter(xw, yw, c='red', s=120, marker='^', edgecolors='black',
                   linewidths=1.2, zorder=3, label='Wells')
    ax.scatter([origin[0]], [origin[1]], c='black', s=40, marker='+', zorder=3,
               label='Model origin')

    ax.set_xlabel('x [L]')
    ax.set_ylabel('y [L]')
    ax.set_title('Posterior-mean discharge potential')
    ax.set_aspect('equal')
    ax.legend(loc='upper right', fontsize=9)

    return fig


def plot_coefficient_samples(
    result: EngineResult,
    bins: int = 30,
    figsize: Tuple[float, float] = (12, 7),
) -> plt.Figure:
    """
    Histograms of the simulated coefficients with the posterior mean marked.

    Parameters
    ----------
    result : EngineResult
        Engine output with at least one realization
    bins : int, optional
        Histogram bins per coefficient
    figsize : tuple, optional
        Figure size

    Returns
    -------
    plt.Figure
        The figure object
    """
    if result.n_sims == 0:
        raise ValueError("Result holds no realizations to plot.")

    fig, axes = plt.subplots(2, 3, figsize=figsize)
    for i, (ax, name) in enumerate(zip(axes.ravel(), COEFFICIENT_NAMES)):
        ax.hist(result.samples[:, i], bins=bins, color='steelblue', alpha=0.8)
        ax.axvline(result.mu[i], color='red', linestyle='--', linewidth=1.5)
        ax.set_title(f'{name}: {result.mu[i]:.4g} ± {result.std[i]:.2g}')
        ax.grid(True, alpha=0.3)

    fig.suptitle(f'{result.n_sims} simulated Oneka coefficient vectors')
    fig.tight_layout()
    return fig
