import math
from dataclasses import dataclass
from typing import Iterator, Tuple

from .models import ScanLine
from .pixels import PixelBuffer


@dataclass(frozen=True)
class ScanStrategy:
	name: str
	band: Tuple[float, float]
	step: int


# Barcodes are assumed roughly centered and horizontal; cheapest bands first.
DEFAULT_STRATEGIES: Tuple[ScanStrategy, ...] = (
	ScanStrategy("center", (0.45, 0.55), 4),
	ScanStrategy("sparse", (0.2, 0.8), 8),
	ScanStrategy("dense", (0.1, 0.9), 1),
)


def band_rows(height: int, band: Tuple[float, float], step: int) -> range:
	start_frac, end_frac = band
	if not 0.0 <= start_frac < end_frac <= 1.0:
		raise ValueError(f"invalid scan band {band!r}")
	if step < 1:
		raise ValueError(f"scan step must be >= 1, got {step}")
	start = int(height * start_frac)
	end = min(height, max(start + 1, math.ceil(height * end_frac)))
	return range(start, end, step)


def sample(buffer: PixelBuffer, band: Tuple[float, float] = (0.2, 0.8), step: int = 1, transform: str = "identity") -> Iterator[ScanLine]:
	"""Yield horizontal scan lines of `buffer` lazily, top to bottom."""
	for y in band_rows(buffer.height, band, step):
		yield ScanLine(row=y, transform=transform, values=buffer.row(y))
