"""
Linear systems built on the dense matrix kernel.

This module implements:
- Cholesky decomposition of a real symmetric positive-definite (SPD) matrix
- Inverse of an SPD matrix through its Cholesky factor
- Least-squares solution of overdetermined systems via the normal equations
- The affine map Y = X U + 1 mu used to correlate Gaussian deviates

Key equations:
    L[j,j] = sqrt( S[j,j] - Σ_{k<j} L[j,k]² )
    L[i,j] = ( S[i,j] - Σ_{k<j} L[i,k] L[j,k] ) / L[j,j]        i > j

    S⁻¹ = L⁻ᵀ L⁻¹

    X = (AᵀA)⁻¹ (AᵀB)

A non-positive pivot under the square root means the input is not positive
definite (or is numerically rank deficient) and raises SingularSystemError.
"""

from typing import Optional, Tuple
import numpy as np

from .errors import ShapeError, SingularSystemError
from .matrix import (
    Matrix,
    _deliver,
    _require_nonempty,
    multiply,
    multiply_tn,
)


def cholesky_decomposition(S: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """
    Lower-triangular Cholesky factor L of a symmetric positive-definite S.

    Only the lower triangle of S is read. L[i,j] = 0 for j > i and L L' = S.

    Parameters
    ----------
    S : Matrix
        Square, symmetric positive-definite matrix of order n
    out : Matrix, optional
        Receives L; may be S itself

    Returns
    -------
    Matrix
        The (n x n) lower-triangular factor

    Raises
    ------
    ShapeError
        If S is empty or not square
    SingularSystemError
        If a pivot is not strictly positive
    """
    _require_nonempty(S)
    if S.rows != S.cols:
        raise ShapeError(f"Cholesky decomposition of a non-square {S.rows}x{S.cols} matrix")

    n = S.rows
    s = S.as_array()
    L = np.zeros((n, n))

    for j in range(n):
        pivot = s[j, j] - np.dot(L[j, :j], L[j, :j])
        if not pivot > 0.0:
            raise SingularSystemError(
                f"Matrix is not positive definite: pivot {j} = {pivot:.6g}"
            )
        L[j, j] = np.sqrt(pivot)
        L[j + 1:, j] = (s[j + 1:, j] - L[j + 1:, :j] @ L[j, :j]) / L[j, j]

    return _deliver(Matrix.from_array(L), out)


def invert_lower_triangular(L: Matrix) -> Matrix:
    """
    Inverse of a nonsingular lower-triangular matrix by substitution.

    The inverse is lower triangular as well; it is built one row at a time,
    each row depending only on rows above it.
    """
    _require_nonempty(L)
    if L.rows != L.cols:
        raise ShapeError(f"Triangular inverse of a non-square {L.rows}x{L.cols} matrix")

    n = L.rows
    l = L.as_array()
    Linv = np.zeros((n, n))

    for i in range(n):
        if l[i, i] == 0.0:
            raise SingularSystemError(f"Triangular matrix has a zero diagonal at {i}")
        Linv[i, i] = 1.0 / l[i, i]
        # Linv[i, j] = -(Σ_{j<=k<i} L[i,k] Linv[k,j]) / L[i,i]
        Linv[i, :i] = -(l[i, :i] @ Linv[:i, :i]) / l[i, i]

    return Matrix.from_array(Linv)


def rspd_inverse(S: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """
    Inverse of a real symmetric positive-definite matrix.

    S⁻¹ = L⁻ᵀ L⁻¹ with L the Cholesky factor of S.

    Parameters
    ----------
    S : Matrix
        Square SPD matrix
    out : Matrix, optional
        Receives S⁻¹; may be S itself

    Raises
    ------
    SingularSystemError
        Whenever the Cholesky decomposition fails
    """
    L = cholesky_decomposition(S)
    Linv = invert_lower_triangular(L)
    return _deliver(multiply_tn(Linv, Linv), out)


def solve_normal_equations(A: Matrix, B: Matrix) -> Tuple[Matrix, Matrix]:
    """
    Least-squares solution and (AᵀA)⁻¹ from a single factorization.

    Parameters
    ----------
    A : Matrix
        (m x n) design matrix, m >= n, full column rank
    B : Matrix
        (m x p) right-hand sides

    Returns
    -------
    tuple
        (X, AtA_inv)
        - X: (n x p) minimizer of ||A X - B||_F
        - AtA_inv: (n x n) inverse of the normal matrix
    """
    _require_nonempty(A, B)
    if A.rows < A.cols:
        raise ShapeError(f"Underdetermined system: {A.rows} equations, {A.cols} unknowns")
    if A.rows != B.rows:
        raise ShapeError(f"A has {A.rows} rows but B has {B.rows}")

    AtA_inv = rspd_inverse(multiply_tn(A, A))
    X = multiply(AtA_inv, multiply_tn(A, B))
    return X, AtA_inv


def least_squares_solve(A: Matrix, B: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """
    Solve the overdetermined system A X ≈ B in the least-squares sense.

    Uses the normal equations X = (AᵀA)⁻¹ (AᵀB); adequate when AᵀA is well
    conditioned.

    Raises
    ------
    SingularSystemError
        If AᵀA is not positive definite (A lacks full column rank)
    """
    X, _ = solve_normal_equations(A, B)
    return _deliver(X, out)


def affine_transformation(
    X: Matrix,
    U: Matrix,
    mu: Matrix,
    out: Optional[Matrix] = None,
) -> Matrix:
    """
    Y = X U + 1 mu: multiply every row of X by U, then add the row mu.

    Parameters
    ----------
    X : Matrix
        (m x n) input rows
    U : Matrix
        (n x n) transformation
    mu : Matrix
        (1 x n) offset row
    out : Matrix, optional
        Receives Y; may be X itself

    Returns
    -------
    Matrix
        (m x n) transformed rows
    """
    _require_nonempty(X, U, mu)
    n = X.cols
    if U.shape != (n, n):
        raise ShapeError(f"U must be {n}x{n}, got {U.rows}x{U.cols}")
    if mu.shape != (1, n):
        raise ShapeError(f"mu must be 1x{n}, got {mu.rows}x{mu.cols}")

    Y = multiply(X, U)
    Y.as_array()[:] += mu.base
    return _deliver(Y, out)
