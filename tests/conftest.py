"""
Shared fixtures: synthetic barcode images rendered with numpy + Pillow.

Symbols are drawn as vertical bars, 3 px per module, with a 12-module quiet
zone on both sides, so every row of the image is a clean scan line.
"""

import io
from typing import Callable, Sequence

import numpy as np
import pytest
from PIL import Image

from barcode_engine.code128 import encode_code128
from barcode_engine.pixels import PixelBuffer
from barcode_engine.transitions import expand_modules
from barcode_engine.upcean import encode_ean13

MODULE_PX = 3
QUIET_MODULES = 12
HEIGHT = 60


# ============================================================================
# RENDERING HELPERS
# ============================================================================

def bits_to_array(bits: Sequence[int], module_px: int = MODULE_PX, quiet: int = QUIET_MODULES, height: int = HEIGHT, dark: int = 0, light: int = 255) -> np.ndarray:
	row = [light] * (quiet * module_px)
	for b in bits:
		row.extend([dark if b else light] * module_px)
	row.extend([light] * (quiet * module_px))
	return np.tile(np.array(row, dtype=np.uint8), (height, 1))


def png_bytes(arr: np.ndarray) -> bytes:
	buf = io.BytesIO()
	Image.fromarray(arr).save(buf, format="PNG")
	return buf.getvalue()


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def render_bits() -> Callable[..., bytes]:
	"""PNG bytes for a module bit sequence (bar = 1)."""
	def _render(bits: Sequence[int], **kwargs) -> bytes:
		return png_bytes(bits_to_array(bits, **kwargs))
	return _render


@pytest.fixture
def render_code128() -> Callable[[str], bytes]:
	def _render(text: str) -> bytes:
		return png_bytes(bits_to_array(expand_modules(encode_code128(text), first_is_bar=True)))
	return _render


@pytest.fixture
def ean13_png(render_bits) -> bytes:
	return render_bits(encode_ean13("5901234123457"))


@pytest.fixture
def bad_ean13_png(render_bits) -> bytes:
	# Check digit should be 7
	return render_bits(encode_ean13("5901234123450"))


@pytest.fixture
def stripes_png() -> bytes:
	"""Five wide black stripes: far too few transitions for any symbology."""
	bits = [1, 1, 1, 1, 0, 0, 0, 0] * 5
	return png_bytes(bits_to_array(bits))


@pytest.fixture
def gray_png() -> bytes:
	return png_bytes(np.full((60, 200), 128, dtype=np.uint8))


@pytest.fixture
def gray_buffer() -> PixelBuffer:
	return PixelBuffer.from_array(np.full((40, 120), 128, dtype=np.uint8))
