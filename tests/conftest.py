import io
import logging

import pytest
from PIL import Image

from qrstyle import CANVAS_SIZE, MARGIN_CELLS
from qrstyle.encoder import BitMatrix


def cell_center(n: int, row: int, col: int, canvas: int = CANVAS_SIZE) -> tuple[int, int]:
    """Pixel (x, y) at the middle of module (row, col)."""
    cell = canvas / (n + MARGIN_CELLS * 2)
    return int((col + MARGIN_CELLS + 0.5) * cell), int((row + MARGIN_CELLS + 0.5) * cell)


def png_bytes(size: tuple[int, int], color) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture(scope="session")
def oversized_png() -> bytes:
    """A 20000x20000 bilevel PNG, past Pillow's decompression-bomb limit."""
    buf = io.BytesIO()
    Image.new("1", (20000, 20000), 0).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def full_matrix():
    """21x21 matrix with every module dark."""
    return BitMatrix.from_rows([[True] * 21 for _ in range(21)])


@pytest.fixture
def white_base():
    return Image.new("RGBA", (CANVAS_SIZE, CANVAS_SIZE), (255, 255, 255, 255))


@pytest.fixture(autouse=True)
def _reset_qrstyle_logging():
    yield
    logging.getLogger("qrstyle").handlers.clear()
