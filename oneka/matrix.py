"""
Dense, row-major matrix of float64 values and its arithmetic kernel.

A Matrix owns a contiguous numpy buffer of rows*cols values; element (i, j)
lives at offset i*cols + j. Copies are always deep.

Construction forms:
    Matrix()                    empty 0x0
    Matrix(m, n)                m x n, zero filled
    Matrix(m, n, a)             m x n, every element a
    Matrix(m, n, data)          m x n, filled row-major from a sequence
    Matrix(B)                   deep copy of B
    Matrix("1,2,3; 4,5,6")      textual literal (rows by ';', columns by ',')

Free functions take matrices and return a new Matrix. Each accepts an optional
`out` matrix that is overwritten with the result; `out` may be one of the
operands because every result is first built in scratch storage.

The four products share the strided dot product `sum_product`:
    multiply     C = A B       multiply_tn  C = A'B
    multiply_nt  C = A B'      multiply_tt  C = A'B'

References:
    Golub, G. H., and C. F. Van Loan, 1996, Matrix Computations, 3rd ed.
"""

from typing import Optional, Sequence, Tuple, Union
import numpy as np

from .config import DEFAULT_CONFIG
from .errors import ShapeError


class Matrix:
    """
    Mutable rectangular block of float64 values in row-major order.

    Parameters
    ----------
    rows : int, Matrix or str
        Number of rows, a Matrix to copy, or a textual literal
    cols : int, optional
        Number of columns (required when `rows` is an int)
    fill : float or sequence, optional
        Scalar broadcast to every element, or rows*cols values in row-major
        order. Zero fill when omitted.
    """

    def __init__(
        self,
        rows: Union[int, "Matrix", str] = 0,
        cols: Optional[int] = None,
        fill: Union[None, float, Sequence[float], np.ndarray] = None,
    ):
        if isinstance(rows, Matrix):
            self._rows, self._cols = rows.rows, rows.cols
            self._data = rows._data.copy()
            return

        if isinstance(rows, str):
            values = _parse_literal(rows)
            self._rows = len(values)
            self._cols = max((len(row) for row in values), default=0)
            self._data = np.zeros(self._rows * self._cols)
            for i, row in enumerate(values):
                self._data[i * self._cols:i * self._cols + len(row)] = row
            return

        if cols is None:
            cols = 0 if rows == 0 else None
        if cols is None or rows < 0 or cols < 0:
            raise ShapeError(f"Invalid matrix dimensions ({rows}, {cols})")

        self._rows, self._cols = int(rows), int(cols)
        self._data = np.zeros(self._rows * self._cols)

        if fill is None:
            pass
        elif np.isscalar(fill):
            self._data[:] = float(fill)
        else:
            values = np.asarray(fill, dtype=float).ravel()
            if values.size != self._data.size:
                raise ShapeError(
                    f"Array fill has {values.size} values, expected {self._data.size}"
                )
            self._data[:] = values

    # =========================================================================
    # Life cycle
    # =========================================================================
    @classmethod
    def from_array(cls, array: np.ndarray) -> "Matrix":
        """Copy a 1-D (as a single row) or 2-D array into a new Matrix."""
        array = np.atleast_2d(np.asarray(array, dtype=float))
        if array.ndim != 2:
            raise ShapeError(f"Expected a 2-D array, got {array.ndim} dimensions")
        return cls(array.shape[0], array.shape[1], array)

    def resize(self, rows: int, cols: int) -> "Matrix":
        """
        Destructive resize: reallocate iff the shape changes, then zero fill.

        A zero in either dimension leaves an empty 0x0 matrix.
        """
        if rows < 0 or cols < 0:
            raise ShapeError(f"Invalid matrix dimensions ({rows}, {cols})")

        if rows == 0 or cols == 0:
            rows = cols = 0

        if (rows, cols) != (self._rows, self._cols):
            self._rows, self._cols = rows, cols
            self._data = np.zeros(rows * cols)
        else:
            self._data[:] = 0.0
        return self

    def assign(self, value: Union["Matrix", float]) -> "Matrix":
        """Deep copy another matrix into this one, or broadcast a scalar."""
        if isinstance(value, Matrix):
            if value is self:
                return self
            self.resize(value.rows, value.cols)
            self._data[:] = value._data
        else:
            self._data[:] = float(value)
        return self

    def copy(self) -> "Matrix":
        return Matrix(self)

    # =========================================================================
    # Inquiry and access
    # =========================================================================
    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def shape(self) -> Tuple[int, int]:
        return (self._rows, self._cols)

    @property
    def size(self) -> int:
        return self._rows * self._cols

    @property
    def base(self) -> np.ndarray:
        """Writable flat view of the row-major storage."""
        return self._data

    def offset(self, row: int, col: int) -> int:
        """Storage offset of element (row, col)."""
        self._check_index(row, col)
        return row * self._cols + col

    def as_array(self) -> np.ndarray:
        """Writable (rows, cols) view of the storage."""
        return self._data.reshape(self._rows, self._cols)

    def to_array(self) -> np.ndarray:
        """Independent (rows, cols) copy of the storage."""
        return self.as_array().copy()

    def __array__(self, dtype=None, copy=None):
        array = self.as_array()
        if copy:
            array = array.copy()
        return array.astype(dtype) if dtype is not None else array

    def _check_index(self, row: int, col: int) -> None:
        if not (0 <= row < self._rows and 0 <= col < self._cols):
            raise IndexError(
                f"Index ({row}, {col}) out of range for {self._rows}x{self._cols} matrix"
            )

    def __getitem__(self, index: Tuple[int, int]) -> float:
        row, col = index
        self._check_index(row, col)
        return float(self._data[row * self._cols + col])

    def __setitem__(self, index: Tuple[int, int], value: float) -> None:
        row, col = index
        self._check_index(row, col)
        self._data[row * self._cols + col] = value

    # =========================================================================
    # Operators
    # =========================================================================
    @property
    def T(self) -> "Matrix":
        return transpose(self)

    def __neg__(self) -> "Matrix":
        return negate(self)

    def __add__(self, other):
        if isinstance(other, Matrix):
            return add(self, other)
        return add_scalar(other, self)

    __radd__ = __add__

    def __sub__(self, other):
        if isinstance(other, Matrix):
            return subtract(self, other)
        return add_scalar(-other, self)

    def __mul__(self, other):
        if isinstance(other, Matrix):
            return NotImplemented
        return scale(other, self)

    __rmul__ = __mul__

    def __matmul__(self, other: "Matrix") -> "Matrix":
        return multiply(self, other)

    def __repr__(self) -> str:
        body = ";".join(
            ",".join(repr(float(v)) for v in self._data[i * self._cols:(i + 1) * self._cols])
            for i in range(self._rows)
        )
        return f"Matrix({body!r})"

    def __str__(self) -> str:
        return format_matrix(self, DEFAULT_CONFIG.REPORT_WIDTH)


# =============================================================================
# Textual literal and printing
# =============================================================================

def _parse_token(token: str) -> float:
    try:
        return float(token.strip(" \t"))
    except ValueError:
        return 0.0


def _parse_literal(text: str) -> list:
    """Split a literal into rows of floats; bad or empty tokens become 0.0."""
    if not text.strip(" \t"):
        return []
    return [[_parse_token(token) for token in line.split(",")] for line in text.split(";")]


def format_matrix(A: Matrix, width: int = 0) -> str:
    """
    Render A one row per line, each value right-aligned to `width`.

    Values use six significant digits, matching a default C++ ostream.
    """
    lines = []
    for i in range(A.rows):
        row = A.base[i * A.cols:(i + 1) * A.cols]
        lines.append("".join(f"{v:>{width}.6g}" for v in row) + "\n")
    return "".join(lines)


# =============================================================================
# Argument checks
# =============================================================================

def _require_nonempty(*matrices: Matrix) -> None:
    for M in matrices:
        if M.rows == 0 or M.cols == 0:
            raise ShapeError(f"Operand has a zero dimension: {M.rows}x{M.cols}")


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ShapeError(message)


def _deliver(result: Matrix, out: Optional[Matrix]) -> Matrix:
    """Copy a scratch result into `out` (if given) and return it."""
    if out is None:
        return result
    return out.assign(result)


# =============================================================================
# Dot-product primitive
# =============================================================================

def sum_product(
    n: int,
    x: np.ndarray,
    x_start: int = 0,
    dx: int = 1,
    y: Optional[np.ndarray] = None,
    y_start: int = 0,
    dy: int = 1,
) -> float:
    """
    Dot product of two strided vectors taken from flat storage.

    Parameters
    ----------
    n : int
        Number of elements in each vector
    x : np.ndarray
        Flat storage holding the first vector
    x_start, dx : int
        Offset of the first element and stride of the first vector
    y : np.ndarray, optional
        Flat storage holding the second vector (defaults to `x`, giving a
        sum of squares)
    y_start, dy : int
        Offset of the first element and stride of the second vector

    Returns
    -------
    float
        Σ_k x[x_start + k*dx] * y[y_start + k*dy]
    """
    if n <= 0:
        return 0.0
    if y is None:
        y, y_start, dy = x, x_start, dx
    xs = x[x_start:x_start + (n - 1) * dx + 1:dx]
    ys = y[y_start:y_start + (n - 1) * dy + 1:dy]
    return float(np.dot(xs, ys))


# =============================================================================
# Sums, measures and norms
# =============================================================================

def column_sum(A: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """Row matrix (1 x cols) of column totals."""
    _require_nonempty(A)
    return _deliver(Matrix(1, A.cols, A.as_array().sum(axis=0)), out)


def row_sum(A: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """Column matrix (rows x 1) of row totals."""
    _require_nonempty(A)
    return _deliver(Matrix(A.rows, 1, A.as_array().sum(axis=1)), out)


def trace(A: Matrix) -> float:
    """Sum of the diagonal; defined for square matrices only (GVL p. 310)."""
    _require_nonempty(A)
    _require(A.rows == A.cols, f"Trace of a non-square {A.rows}x{A.cols} matrix")
    return float(np.trace(A.as_array()))


def max_abs(A: Matrix) -> float:
    """Largest absolute element."""
    _require_nonempty(A)
    return float(np.max(np.abs(A.base)))


def l1_norm(A: Matrix) -> float:
    """Maximum absolute column sum (GVL 2.3.9)."""
    _require_nonempty(A)
    return float(np.max(np.sum(np.abs(A.as_array()), axis=0)))


def linf_norm(A: Matrix) -> float:
    """Maximum absolute row sum (GVL 2.3.10)."""
    _require_nonempty(A)
    return float(np.max(np.sum(np.abs(A.as_array()), axis=1)))


def f_norm(A: Matrix) -> float:
    """Frobenius norm (GVL 2.3.1)."""
    _require_nonempty(A)
    return float(np.sqrt(sum_product(A.size, A.base)))


# =============================================================================
# Unary operations
# =============================================================================

def transpose(A: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """C = A'"""
    _require_nonempty(A)
    return _deliver(Matrix(A.cols, A.rows, A.as_array().T), out)


def negate(A: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """C = -A"""
    _require_nonempty(A)
    return _deliver(Matrix(A.rows, A.cols, -A.base), out)


def identity(A: Matrix, n: int) -> Matrix:
    """Reset A to the n x n identity matrix and return it."""
    A.resize(n, n)
    for i in range(A.rows):
        A[i, i] = 1.0
    return A


# =============================================================================
# Scalar/matrix arithmetic
# =============================================================================

def add_scalar(a: float, A: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """C = a + A, element by element."""
    _require_nonempty(A)
    return _deliver(Matrix(A.rows, A.cols, a + A.base), out)


def scale(a: float, A: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """C = a * A, element by element."""
    _require_nonempty(A)
    return _deliver(Matrix(A.rows, A.cols, a * A.base), out)


# =============================================================================
# Matrix/matrix addition and subtraction
# =============================================================================

def add(A: Matrix, B: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """C = A + B"""
    _require_nonempty(A, B)
    _require(A.shape == B.shape, f"Cannot add {A.rows}x{A.cols} and {B.rows}x{B.cols}")
    return _deliver(Matrix(A.rows, A.cols, A.base + B.base), out)


def subtract(A: Matrix, B: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """C = A - B"""
    _require_nonempty(A, B)
    _require(A.shape == B.shape, f"Cannot subtract {B.rows}x{B.cols} from {A.rows}x{A.cols}")
    return _deliver(Matrix(A.rows, A.cols, A.base - B.base), out)


# =============================================================================
# Matrix/matrix multiplication
# =============================================================================

def multiply(A: Matrix, B: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """C = A B"""
    _require_nonempty(A, B)
    _require(A.cols == B.rows, f"Cannot multiply {A.rows}x{A.cols} by {B.rows}x{B.cols}")

    C = Matrix(A.rows, B.cols)
    for i in range(A.rows):
        for j in range(B.cols):
            C.base[i * C.cols + j] = sum_product(
                A.cols, A.base, i * A.cols, 1, B.base, j, B.cols
            )
    return _deliver(C, out)


def multiply_tn(A: Matrix, B: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """C = A'B"""
    _require_nonempty(A, B)
    _require(A.rows == B.rows, f"Cannot multiply ({A.rows}x{A.cols})' by {B.rows}x{B.cols}")

    C = Matrix(A.cols, B.cols)
    for i in range(A.cols):
        for j in range(B.cols):
            C.base[i * C.cols + j] = sum_product(
                A.rows, A.base, i, A.cols, B.base, j, B.cols
            )
    return _deliver(C, out)


def multiply_nt(A: Matrix, B: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """C = A B'"""
    _require_nonempty(A, B)
    _require(A.cols == B.cols, f"Cannot multiply {A.rows}x{A.cols} by ({B.rows}x{B.cols})'")

    C = Matrix(A.rows, B.rows)
    for i in range(A.rows):
        for j in range(B.rows):
            C.base[i * C.cols + j] = sum_product(
                A.cols, A.base, i * A.cols, 1, B.base, j * B.cols, 1
            )
    return _deliver(C, out)


def multiply_tt(A: Matrix, B: Matrix, out: Optional[Matrix] = None) -> Matrix:
    """C = A'B'"""
    _require_nonempty(A, B)
    _require(A.rows == B.cols, f"Cannot multiply ({A.rows}x{A.cols})' by ({B.rows}x{B.cols})'")

    C = Matrix(A.cols, B.rows)
    for i in range(A.cols):
        for j in range(B.rows):
            C.base[i * C.cols + j] = sum_product(
                A.rows, A.base, i, A.cols, B.base, j * B.cols, 1
            )
    return _deliver(C, out)


# =============================================================================
# Quadratic forms
# =============================================================================

def quadratic_form_tn(a: Matrix, B: Matrix, c: Matrix) -> float:
    """a'Bc for column vectors a and c."""
    _require_nonempty(a, B, c)
    _require(a.cols == 1 and c.cols == 1, "a and c must be column vectors")
    _require(a.rows == B.rows and B.cols == c.rows,
             f"Incompatible shapes {a.shape}' x {B.shape} x {c.shape}")
    return multiply_tn(a, multiply(B, c))[0, 0]


def quadratic_form(a: Matrix, B: Matrix, c: Matrix) -> float:
    """aBc for a row vector a and a column vector c."""
    _require_nonempty(a, B, c)
    _require(a.rows == 1 and c.cols == 1, "a must be a row vector and c a column vector")
    _require(a.cols == B.rows and B.cols == c.rows,
             f"Incompatible shapes {a.shape} x {B.shape} x {c.shape}")
    return multiply(a, multiply(B, c))[0, 0]
