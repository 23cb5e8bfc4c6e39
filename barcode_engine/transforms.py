"""
Preprocessing variants tried against a scanned image.

Every transform takes a PixelBuffer and returns a new one; nothing is
modified in place. The catalog is ordered cheapest / most likely first so the
search can stop early.
"""

from dataclasses import dataclass
from typing import Callable, Iterator, Sequence, Tuple

import cv2
import numpy as np
from PIL import Image, ImageEnhance, ImageOps

from .pixels import PixelBuffer

SHARPEN_KERNEL = np.array([[0, -1, 0], [-1, 5, -1], [0, -1, 0]], dtype=np.float32)


@dataclass(frozen=True)
class Transform:
	name: str
	apply: Callable[[PixelBuffer], PixelBuffer]


def _pil(buffer: PixelBuffer) -> Image.Image:
	return Image.fromarray(buffer.to_array())


def _buffer(img: Image.Image) -> PixelBuffer:
	return PixelBuffer.from_array(np.asarray(img.convert("L")))


def identity(buffer: PixelBuffer) -> PixelBuffer:
	return buffer


def grayscale(buffer: PixelBuffer) -> PixelBuffer:
	# luma is computed at load time; stretch it to the full range
	return _buffer(ImageOps.autocontrast(_pil(buffer)))


def contrast(amount: float) -> Callable[[PixelBuffer], PixelBuffer]:
	factor = (1.0 + amount) / (1.0 - amount)

	def _apply(buffer: PixelBuffer) -> PixelBuffer:
		return _buffer(ImageEnhance.Contrast(_pil(buffer)).enhance(factor))
	return _apply


def brightness(amount: float) -> Callable[[PixelBuffer], PixelBuffer]:
	def _apply(buffer: PixelBuffer) -> PixelBuffer:
		return _buffer(ImageEnhance.Brightness(_pil(buffer)).enhance(1.0 + amount))
	return _apply


def invert(buffer: PixelBuffer) -> PixelBuffer:
	return _buffer(ImageOps.invert(_pil(buffer)))


def blur(radius: int) -> Callable[[PixelBuffer], PixelBuffer]:
	size = 2 * radius + 1

	def _apply(buffer: PixelBuffer) -> PixelBuffer:
		return PixelBuffer.from_array(cv2.blur(buffer.to_array(), (size, size)))
	return _apply


def sharpen(buffer: PixelBuffer) -> PixelBuffer:
	return PixelBuffer.from_array(cv2.filter2D(buffer.to_array(), -1, SHARPEN_KERNEL))


def _signed(amount: float) -> str:
	return f"{amount:+.1f}"


TRANSFORM_CATALOG: Tuple[Transform, ...] = (
	Transform("identity", identity),
	Transform("grayscale", grayscale),
	*(Transform(f"contrast{_signed(a)}", contrast(a)) for a in (0.5, 0.8, -0.3, -0.5)),
	*(Transform(f"brightness{_signed(a)}", brightness(a)) for a in (0.2, 0.3, -0.3, -0.5)),
	Transform("invert", invert),
	Transform("blur1", blur(1)),
	Transform("blur2", blur(2)),
	Transform("sharpen", sharpen),
)


class TransformSequence:
	"""Lazy, restartable sequence of (name, buffer) pairs."""

	def __init__(self, buffer: PixelBuffer, catalog: Sequence[Transform] = TRANSFORM_CATALOG):
		self.buffer = buffer
		self.catalog = tuple(catalog)

	def __len__(self) -> int:
		return len(self.catalog)

	def __iter__(self) -> Iterator[Tuple[str, PixelBuffer]]:
		for t in self.catalog:
			yield t.name, t.apply(self.buffer)

	def names(self) -> Tuple[str, ...]:
		return tuple(t.name for t in self.catalog)


def generate(buffer: PixelBuffer, catalog: Sequence[Transform] = TRANSFORM_CATALOG) -> TransformSequence:
	return TransformSequence(buffer, catalog)
