"""
Exception types raised by the Oneka estimation engine.

- ShapeError: operand shapes or sizes violate an operation's preconditions
- SingularSystemError: a matrix that must be symmetric positive definite is not
  (non-positive Cholesky pivot), so the normal equations cannot be solved
"""


class OnekaError(Exception):
    """Base class for all errors raised by the oneka package."""


class ShapeError(OnekaError, ValueError):
    """Operand shapes are not compatible with the requested operation."""


class SingularSystemError(OnekaError, ArithmeticError):
    """A matrix expected to be symmetric positive definite is not."""
