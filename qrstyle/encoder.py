"""Encoder: text to BitMatrix via the qrcode library, always at ECC level H."""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

import qrcode
import qrcode.constants
import qrcode.exceptions

from qrstyle.errors import EncodingFailed
from qrstyle.logging import audit, get_logger, trace

log = get_logger("encoder")

EYE_SIZE = 7
MIN_MATRIX_SIZE = 21  # version 1


class ECCLevel(Enum):
    L = qrcode.constants.ERROR_CORRECT_L  # 7%
    M = qrcode.constants.ERROR_CORRECT_M  # 15%
    Q = qrcode.constants.ERROR_CORRECT_Q  # 25%
    H = qrcode.constants.ERROR_CORRECT_H  # 30%


@dataclass(frozen=True)
class BitMatrix:
    """Immutable square grid of modules; True marks a dark module."""

    rows: tuple[tuple[bool, ...], ...]

    def __post_init__(self):
        n = len(self.rows)
        if n < MIN_MATRIX_SIZE or n % 2 == 0:
            raise ValueError(f"matrix dimension must be odd and >= {MIN_MATRIX_SIZE}, got {n}")
        if any(len(row) != n for row in self.rows):
            raise ValueError("matrix must be square")

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[object]]) -> "BitMatrix":
        """Build a matrix from any nested sequence of truthy/falsy cells."""
        return cls(tuple(tuple(bool(cell) for cell in row) for row in rows))

    @property
    def size(self) -> int:
        return len(self.rows)

    def is_dark(self, row: int, col: int) -> bool:
        return self.rows[row][col]

    def dark_cells(self):
        """Yield (row, col) for every dark module in row-major order."""
        for r, row in enumerate(self.rows):
            for c, dark in enumerate(row):
                if dark:
                    yield r, c


def eye_region(size: int, row: int, col: int) -> str | None:
    """Name the finder pattern ("eye") a cell belongs to, or None for data cells.

    Only three corners carry an eye; the bottom-right corner is data.
    """
    top = row < EYE_SIZE
    left = col < EYE_SIZE
    if top and left:
        return "top_left"
    if top and col >= size - EYE_SIZE:
        return "top_right"
    if left and row >= size - EYE_SIZE:
        return "bottom_left"
    return None


@trace
def encode(text: str, level: str = "H") -> BitMatrix:
    """Encode text into a module matrix.

    The version and mask are chosen by the qrcode library; callers get the
    finished matrix with no quiet zone.

    Args:
        text: The string to encode.
        level: Error correction level L/M/Q/H. The studio always uses H.

    Raises:
        EncodingFailed: the text does not fit in a version 40 symbol.
    """
    ecc = ECCLevel[level.upper()]
    qr = qrcode.QRCode(
        version=None,
        error_correction=ecc.value,
        box_size=1,
        border=0,
    )
    qr.add_data(text)
    try:
        qr.make(fit=True)
    except (qrcode.exceptions.DataOverflowError, ValueError) as exc:
        # qrcode reports overflow as an invalid version 41 on some releases
        raise EncodingFailed(f"cannot encode {len(text)} characters at level {ecc.name}: {exc}") from exc

    matrix = BitMatrix.from_rows(qr.modules)
    audit("qr.encoded", logger=log,
          data=text[:80], version=qr.version,
          size=f"{matrix.size}x{matrix.size}", ecc=ecc.name)
    return matrix
