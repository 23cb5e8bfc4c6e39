from typing import Iterable, List

import numpy as np

from .models import BarWidths

MIN_TRANSITIONS = 20
MAX_TRANSITIONS = 300


def find_transitions(binary: np.ndarray) -> np.ndarray:
	"""Indices where the binary sequence flips, ascending."""
	binary = np.asarray(binary)
	if binary.size < 2:
		return np.zeros(0, dtype=np.int64)
	return np.flatnonzero(binary[1:] != binary[:-1]) + 1


def is_plausible(count: int, low: int = MIN_TRANSITIONS, high: int = MAX_TRANSITIONS) -> bool:
	return low <= count <= high


def bar_widths(binary: np.ndarray, transitions: np.ndarray) -> BarWidths:
	"""Normalise run lengths between transitions to module counts.

	Every run is divided by the narrowest one and rounded half-up, which
	assumes the narrowest run is exactly one module wide. Blur or noise that
	thins a single bar skews every other width; that is a known limitation.
	"""
	transitions = np.asarray(transitions)
	if transitions.size < 2:
		return BarWidths(widths=(), first_is_bar=True)
	deltas = np.diff(transitions).astype(np.float64)
	narrowest = float(deltas.min())
	normalized = np.maximum(1, np.floor(deltas / narrowest + 0.5)).astype(int)
	# ink is below the threshold, so 0 marks a bar
	first_is_bar = int(np.asarray(binary)[transitions[0]]) == 0
	return BarWidths(widths=tuple(int(w) for w in normalized), first_is_bar=first_is_bar, module_width=narrowest)


def expand_modules(widths: Iterable[int], first_is_bar: bool = True) -> List[int]:
	"""Expand element widths into module bits (bar = 1, space = 0)."""
	bits: List[int] = []
	bar = first_is_bar
	for w in widths:
		bits.extend([1 if bar else 0] * int(w))
		bar = not bar
	return bits
