"""
Code 128 decoding on element widths.

A symbol is Start A/B/C, data characters, a modulo-103 check character and
the 7-element stop pattern. Characters are 6 elements (3 bars, 3 spaces)
summing to 11 modules.
"""

import logging
from typing import List, Optional, Sequence

from . import gs1
from .models import BarWidths, DecodeCandidate
from .tables import (
	CODE128_DATA,
	CODE128_PATTERNS,
	CODE128_START_A,
	CODE128_START_B,
	CODE128_START_C,
	CODE128_START_PREFIX,
	CODE128_STARTS,
	CODE128_STOP,
	best_match,
)

logger = logging.getLogger(__name__)

CHAR_ELEMENTS = 6
SHIFT = 98
CODE_C = 99
FNC1 = 102
# start, one data character, check character, stop
MIN_ELEMENTS = 3 * CHAR_ELEMENTS + len(CODE128_STOP)
MIN_MODULES = 3 * 11 + 13


class Code128Decoder:
	name = "Code 128"
	min_modules = MIN_MODULES

	def decode(self, widths: BarWidths, tolerance: float = 0.8) -> Optional[DecodeCandidate]:
		elements = widths.widths
		if len(elements) < MIN_ELEMENTS or widths.total_modules < MIN_MODULES:
			return None
		mismatch: Optional[DecodeCandidate] = None
		for start in range(len(elements) - MIN_ELEMENTS + 1):
			if not widths.is_bar(start):
				continue
			if tuple(elements[start:start + 3]) != CODE128_START_PREFIX:
				continue
			start_value = best_match(elements[start:start + CHAR_ELEMENTS], CODE128_STARTS, tolerance)
			if start_value is None:
				continue
			values = _read_values(elements, start + CHAR_ELEMENTS, tolerance)
			if values is None or len(values) < 2:
				continue
			data, check = values[:-1], values[-1]
			text = _translate(start_value, data)
			if text is None:
				continue
			valid = gs1.code128_checksum(start_value, data) == check
			candidate = DecodeCandidate(self.name, text, valid, start)
			if valid:
				logger.debug("Code 128 decoded %r at element %d", text, start)
				return candidate
			if mismatch is None:
				mismatch = candidate
		return mismatch


def _read_values(elements: Sequence[int], pos: int, tolerance: float) -> Optional[List[int]]:
	"""Character values from `pos` up to the stop pattern, or None."""
	values: List[int] = []
	while pos + len(CODE128_STOP) <= len(elements):
		if tuple(elements[pos:pos + len(CODE128_STOP)]) == CODE128_STOP:
			return values
		value = best_match(elements[pos:pos + CHAR_ELEMENTS], CODE128_DATA, tolerance)
		if value is None:
			return None
		values.append(value)
		pos += CHAR_ELEMENTS
	return None


def _char(code_set: str, value: int) -> Optional[str]:
	if code_set == "A":
		if value < 64:
			return chr(value + 32)
		if value < 96:
			return chr(value - 64)
		return None
	if value < 96:
		return chr(value + 32)
	return None


def _translate(start_value: int, values: Sequence[int]) -> Optional[str]:
	code_set = {CODE128_START_A: "A", CODE128_START_B: "B", CODE128_START_C: "C"}[start_value]
	out: List[str] = []
	shifted = False
	for value in values:
		if code_set == "C":
			if value < 100:
				out.append(f"{value:02d}")
			elif value == 100:
				code_set = "B"
			elif value == 101:
				code_set = "A"
			elif value != FNC1:
				return None
			continue
		active = code_set
		if shifted:
			active = "B" if code_set == "A" else "A"
			shifted = False
		ch = _char(active, value)
		if ch is not None:
			out.append(ch)
		elif value == SHIFT:
			shifted = True
		elif value == CODE_C:
			code_set = "C"
		elif value == 100 and code_set == "A":
			code_set = "B"
		elif value == 101 and code_set == "B":
			code_set = "A"
		# FNC1-4 carry no text
	return "".join(out)


def encode_code128(text: str) -> List[int]:
	"""Element widths for `text`: code set C for even-length digit strings,
	code set B otherwise."""
	if text.isdigit() and len(text) % 2 == 0:
		start_value = CODE128_START_C
		values = [int(text[i:i + 2]) for i in range(0, len(text), 2)]
	else:
		start_value = CODE128_START_B
		values = []
		for ch in text:
			code = ord(ch) - 32
			if not 0 <= code < 96:
				raise ValueError(f"character {ch!r} not in code set B")
			values.append(code)
	check = gs1.code128_checksum(start_value, values)
	elements: List[int] = list(CODE128_PATTERNS[start_value])
	for value in values + [check]:
		elements.extend(CODE128_PATTERNS[value])
	elements.extend(CODE128_STOP)
	return elements


CODE128 = Code128Decoder()
