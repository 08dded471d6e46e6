import pytest

from qrstyle.encoder import BitMatrix, encode, eye_region
from qrstyle.errors import EncodingFailed


def test_encode_produces_square_odd_matrix():
    matrix = encode("https://example.com")
    assert matrix.size >= 21
    assert matrix.size % 2 == 1
    assert all(len(row) == matrix.size for row in matrix.rows)


def test_encode_uses_high_error_correction():
    # the same short text needs a larger symbol at H than at L
    assert encode("x" * 30, level="H").size > encode("x" * 30, level="L").size


def test_finder_corners_are_dark():
    matrix = encode("corners")
    n = matrix.size
    assert matrix.is_dark(0, 0)
    assert matrix.is_dark(0, n - 1)
    assert matrix.is_dark(n - 1, 0)


def test_encode_is_deterministic():
    assert encode("same") == encode("same")


def test_eye_regions():
    assert eye_region(21, 0, 0) == "top_left"
    assert eye_region(21, 6, 6) == "top_left"
    assert eye_region(21, 0, 14) == "top_right"
    assert eye_region(21, 6, 20) == "top_right"
    assert eye_region(21, 14, 0) == "bottom_left"
    assert eye_region(21, 20, 6) == "bottom_left"
    assert eye_region(21, 7, 7) is None
    assert eye_region(21, 20, 20) is None
    assert eye_region(21, 14, 14) is None


def test_dark_cells_in_row_major_order():
    rows = [[False] * 21 for _ in range(21)]
    rows[3][5] = True
    rows[1][9] = True
    assert list(BitMatrix.from_rows(rows).dark_cells()) == [(1, 9), (3, 5)]


@pytest.mark.parametrize("rows", [
    [[True] * 20 for _ in range(20)],
    [[True] * 19 for _ in range(19)],
    [[True] * 21 for _ in range(20)],
])
def test_bitmatrix_rejects_bad_shapes(rows):
    with pytest.raises(ValueError):
        BitMatrix.from_rows(rows)


def test_text_over_capacity_raises_encoding_failed():
    with pytest.raises(EncodingFailed):
        encode("x" * 4000)
