"""
EAN-13, EAN-8 and UPC-A decoding on module bit sequences.

Layout (modules): start guard 101, left digits of 7 modules each, middle
guard 01010, right digits of 7 modules each, end guard 101. The last right
digit is the check digit and is read from the symbol, then verified.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from . import gs1
from .models import BarWidths, DecodeCandidate
from .tables import (
	EAN13_FIRST_DIGIT_PARITY,
	EAN_G_CODES,
	EAN_L_CODES,
	EAN_LEFT_L,
	EAN_LEFT_LG,
	EAN_R_CODES,
	EAN_RIGHT,
	END_GUARD,
	MIDDLE_GUARD,
	START_GUARD,
	best_match,
)

logger = logging.getLogger(__name__)

DIGIT_MODULES = 7


@dataclass(frozen=True)
class UpcEanDecoder:
	name: str
	left_digits: int
	right_digits: int
	# EAN-13 mixes L and G codes on the left to carry its leading digit
	parity_encoded: bool = False

	@property
	def min_modules(self) -> int:
		return len(START_GUARD) + DIGIT_MODULES * self.left_digits + len(MIDDLE_GUARD) + DIGIT_MODULES * self.right_digits + len(END_GUARD)

	def decode(self, widths: BarWidths, tolerance: float = 0.8) -> Optional[DecodeCandidate]:
		bits = widths.modules
		if len(bits) < self.min_modules:
			return None
		mismatch: Optional[DecodeCandidate] = None
		for start in _guard_starts(bits, self.min_modules):
			digits = self._read(bits, start, tolerance)
			if digits is None:
				continue
			candidate = DecodeCandidate(self.name, digits, gs1.has_valid_check_digit(digits), start)
			if candidate.checksum_valid:
				logger.debug("%s decoded %s at module %d", self.name, digits, start)
				return candidate
			if mismatch is None:
				mismatch = candidate
		return mismatch

	def _read(self, bits: Sequence[int], start: int, tolerance: float) -> Optional[str]:
		pos = start + len(START_GUARD)
		left_table = EAN_LEFT_LG if self.parity_encoded else EAN_LEFT_L
		digits: List[int] = []
		parity = ""
		for _ in range(self.left_digits):
			match = best_match(bits[pos:pos + DIGIT_MODULES], left_table, tolerance)
			if match is None:
				return None
			digit, code = match
			digits.append(digit)
			parity += code
			pos += DIGIT_MODULES
		if tuple(bits[pos:pos + len(MIDDLE_GUARD)]) != MIDDLE_GUARD:
			return None
		pos += len(MIDDLE_GUARD)
		for _ in range(self.right_digits):
			digit = best_match(bits[pos:pos + DIGIT_MODULES], EAN_RIGHT, tolerance)
			if digit is None:
				return None
			digits.append(digit)
			pos += DIGIT_MODULES
		if self.parity_encoded:
			if parity not in EAN13_FIRST_DIGIT_PARITY:
				return None
			digits.insert(0, EAN13_FIRST_DIGIT_PARITY.index(parity))
		return "".join(str(d) for d in digits)


def _guard_starts(bits: Sequence[int], length: int) -> Iterator[int]:
	"""Offsets where a start guard and the matching end guard both sit."""
	n = len(bits)
	for start in range(n - length + 1):
		if tuple(bits[start:start + 3]) != START_GUARD:
			continue
		if start > 0 and bits[start - 1] != 0:
			continue
		end = start + length
		if tuple(bits[end - 3:end]) != END_GUARD:
			continue
		if end < n and bits[end] != 0:
			continue
		yield start


EAN13 = UpcEanDecoder("EAN-13", left_digits=6, right_digits=6, parity_encoded=True)
EAN8 = UpcEanDecoder("EAN-8", left_digits=4, right_digits=4)
UPCA = UpcEanDecoder("UPC-A", left_digits=6, right_digits=6)


def _complete(code: str, data_length: int) -> str:
	if not code.isdigit():
		raise ValueError(f"not a numeric code: {code!r}")
	if len(code) == data_length:
		return code + str(gs1.check_digit(code))
	if len(code) == data_length + 1:
		return code
	raise ValueError(f"expected {data_length} or {data_length + 1} digits, got {len(code)}")


def _encode(left: Sequence[Sequence[int]], right: Sequence[Sequence[int]]) -> List[int]:
	bits: List[int] = list(START_GUARD)
	for code in left:
		bits.extend(code)
	bits.extend(MIDDLE_GUARD)
	for code in right:
		bits.extend(code)
	bits.extend(END_GUARD)
	return bits


def encode_ean13(code: str) -> List[int]:
	"""Module bits for a 12-digit (check digit appended) or 13-digit code.

	A 13-digit code is encoded verbatim, even with a wrong check digit.
	"""
	full = _complete(code, 12)
	digits = [int(c) for c in full]
	parity = EAN13_FIRST_DIGIT_PARITY[digits[0]]
	left = [EAN_L_CODES[d] if p == "L" else EAN_G_CODES[d] for d, p in zip(digits[1:7], parity)]
	right = [EAN_R_CODES[d] for d in digits[7:]]
	return _encode(left, right)


def encode_ean8(code: str) -> List[int]:
	full = _complete(code, 7)
	digits = [int(c) for c in full]
	return _encode([EAN_L_CODES[d] for d in digits[:4]], [EAN_R_CODES[d] for d in digits[4:]])


def encode_upca(code: str) -> List[int]:
	full = _complete(code, 11)
	digits = [int(c) for c in full]
	return _encode([EAN_L_CODES[d] for d in digits[:6]], [EAN_R_CODES[d] for d in digits[6:]])
