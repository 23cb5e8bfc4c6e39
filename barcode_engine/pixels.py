import io
import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image, UnidentifiedImageError

# Register HEIC/HEIF with Pillow if available
try:
	import pillow_heif  # type: ignore
	pillow_heif.register_heif_opener()
except Exception:
	pillow_heif = None  # type: ignore

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


class ImageDecodeError(ValueError):
	"""Input bytes are not a decodable image."""


@dataclass(frozen=True, eq=False)
class PixelBuffer:
	"""Grayscale intensities (0-255) in a read-only (height, width) array."""
	pixels: np.ndarray

	@classmethod
	def from_array(cls, arr) -> "PixelBuffer":
		data = np.array(arr, dtype=np.uint8, copy=True)
		if data.ndim != 2:
			raise ValueError(f"expected a 2-D grayscale array, got shape {data.shape}")
		data.setflags(write=False)
		return cls(data)

	@property
	def width(self) -> int:
		return int(self.pixels.shape[1])

	@property
	def height(self) -> int:
		return int(self.pixels.shape[0])

	def pixel(self, x: int, y: int) -> int:
		return int(self.pixels[y, x])

	def row(self, y: int) -> np.ndarray:
		return self.pixels[y]

	def to_array(self) -> np.ndarray:
		return self.pixels.copy()


def luma(rgb: np.ndarray) -> np.ndarray:
	r, g, b = LUMA_WEIGHTS
	rgb = rgb.astype(np.float64)
	y = rgb[..., 0] * r + rgb[..., 1] * g + rgb[..., 2] * b
	return np.clip(np.floor(y + 0.5), 0, 255).astype(np.uint8)


def from_image(img: Image.Image) -> PixelBuffer:
	rgb = np.asarray(img.convert("RGB"))
	return PixelBuffer.from_array(luma(rgb))


def load_pixels(data: bytes) -> PixelBuffer:
	"""Decode PNG/JPEG/... bytes into a grayscale PixelBuffer."""
	if not data:
		raise ImageDecodeError("empty image payload")
	try:
		with Image.open(io.BytesIO(data)) as img:
			img.load()
			buffer = from_image(img)
	except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
		raise ImageDecodeError(f"cannot decode image: {exc}") from exc
	if buffer.width == 0 or buffer.height == 0:
		raise ImageDecodeError("image has no pixels")
	logger.debug("Image loaded: %dx%d", buffer.width, buffer.height)
	return buffer
