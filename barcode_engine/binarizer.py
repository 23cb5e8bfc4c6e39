"""
Threshold selection for a single scan line.

Otsu is the primary method: barcode lines are bimodal (ink vs substrate).
Mean, median and adaptive thresholds are alternates, tried only when the
Otsu split leaves an implausible number of transitions.
"""

from typing import Callable, Tuple

import numpy as np

ThresholdFn = Callable[[np.ndarray], float]


def otsu_threshold(values: np.ndarray) -> float:
	"""Return the Otsu threshold for `values` (intensities 0-255).

	Pixels below the returned value are background. When several split points
	share the maximal between-class variance the middle of that plateau is
	used, so two flat modes are cut halfway between them.
	"""
	values = np.asarray(values, dtype=np.uint8).ravel()
	if values.size == 0:
		return 0.0
	hist = np.bincount(values, minlength=256).astype(np.float64)
	total = hist.sum()
	levels = np.arange(256, dtype=np.float64)

	count_b = np.cumsum(hist)
	count_f = total - count_b
	sum_b = np.cumsum(hist * levels)
	sum_total = sum_b[-1]

	valid = (count_b > 0) & (count_f > 0)
	if not valid.any():
		return float(values.mean())

	w_b = count_b / total
	w_f = count_f / total
	with np.errstate(divide="ignore", invalid="ignore"):
		m_b = np.where(valid, sum_b / count_b, 0.0)
		m_f = np.where(valid, (sum_total - sum_b) / count_f, 0.0)
	variance = np.where(valid, w_b * w_f * (m_b - m_f) ** 2, -1.0)

	best = variance.max()
	lo = int(np.argmax(variance))
	hi = lo
	while hi + 1 < 256 and variance[hi + 1] == best:
		hi += 1
	return float((lo + hi) // 2 + 1)


def mean_threshold(values: np.ndarray) -> float:
	return float(np.mean(values))


def median_threshold(values: np.ndarray) -> float:
	return float(np.median(values))


def adaptive_threshold(values: np.ndarray) -> float:
	values = np.asarray(values, dtype=np.float64)
	return float(values.mean() - 0.5 * values.std())


# Primary first; the rest are refinement alternates.
THRESHOLDS: Tuple[Tuple[str, ThresholdFn], ...] = (
	("otsu", otsu_threshold),
	("mean", mean_threshold),
	("median", median_threshold),
	("adaptive", adaptive_threshold),
)


def binarize(values: np.ndarray, threshold: float) -> np.ndarray:
	"""pixel < threshold -> 0, else 1."""
	return (np.asarray(values) >= threshold).astype(np.uint8)
