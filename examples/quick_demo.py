#!/usr/bin/env python
"""
Quick demonstration of the Oneka estimation engine.

Fits the quadratic discharge-potential model to eight piezometers around a
single pumping well, prints the coefficient table and saves two figures.
"""

import numpy as np
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import matplotlib
matplotlib.use("Agg")

from oneka import Config, Piezometer, Well, run_engine, evaluate_potential, potential_to_head
from oneka.plots import plot_fitted_potential, plot_coefficient_samples


def main():
    print("=" * 70)
    print("ONEKA ESTIMATION ENGINE - QUICK DEMO")
    print("=" * 70)

    # 1. Define parameters
    print("\n1. Setting up parameters...")
    config = Config(K_COND=1.0, H_THICK=50.0, BASE=0.0, N_SIMS=1000, RNG_SEED=20100826)
    print(f"   Aquifer: k={config.K_COND}, H={config.H_THICK}, base={config.BASE}")
    print(f"   Origin: {config.origin}, realizations: {config.N_SIMS}")

    # 2. Observations
    print("\n2. Loading wells and piezometers...")
    wells = [Well(0.0, 0.0, 30.0)]
    piezometers = [
        Piezometer(100.0, 0.0, 45.2103543000137, 1.0),
        Piezometer(100.0, 100.0, 45.4674132751695, 1.0),
        Piezometer(0.0, 100.0, 51.4397613593277, 1.0),
        Piezometer(-100.0, 100.0, 53.2728566993506, 1.0),
        Piezometer(-100.0, 0.0, 53.4397613593277, 1.0),
        Piezometer(-100.0, -100.0, 49.6717794118054, 1.0),
        Piezometer(0.0, -100.0, 47.3706252432113, 1.0),
        Piezometer(100.0, -100.0, 40.3396290257491, 1.0),
    ]
    print(f"   {len(wells)} well(s), {len(piezometers)} piezometers")

    # 3. Run engine
    print("\n3. Running engine...")
    result = run_engine(wells, piezometers, config)
    print()
    print(result.summary())

    # 4. Check the fit
    print("\n4. Comparing fitted and observed heads...")
    xp = np.array([p.x for p in piezometers])
    yp = np.array([p.y for p in piezometers])
    phi = evaluate_potential(
        result.mu, xp, yp, config.X0, config.Y0,
        [w.x for w in wells], [w.y for w in wells], [w.q for w in wells],
    )
    fitted = potential_to_head(phi, config.K_COND, config.H_THICK, config.BASE)
    for p, h in zip(piezometers, fitted):
        print(f"   ({p.x:7.1f}, {p.y:7.1f})  observed {p.head:8.3f}  fitted {h:8.3f}")

    # 5. Figures
    print("\n5. Saving figures...")
    output_dir = os.path.join(os.path.dirname(__file__), 'output')
    os.makedirs(output_dir, exist_ok=True)

    fig = plot_fitted_potential(result, piezometers, wells, origin=config.origin)
    fig.savefig(os.path.join(output_dir, 'fitted_potential.png'), dpi=150)
    fig = plot_coefficient_samples(result)
    fig.savefig(os.path.join(output_dir, 'coefficient_samples.png'), dpi=150)
    print(f"   Figures written to {output_dir}")

    print("\n" + "=" * 70)
    print("DEMO COMPLETE")
    print("=" * 70)


if __name__ == "__main__":
    main()
