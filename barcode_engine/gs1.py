import re
from typing import Optional

NON_DIGITS = re.compile(r"\D")

PAYLOAD_MIN_DIGITS = 8
PAYLOAD_MAX_DIGITS = 20


def check_digit(data: str) -> Optional[int]:
	"""GS1 mod-10 check digit for the data digits of a GTIN/EAN/UPC.

	Weights alternate 3, 1, 3, ... starting from the rightmost data digit.
	For EAN-13 (12 data digits) that is 1, 3, 1, ... from the left; for
	EAN-8 (7) and UPC-A (11) it is 3, 1, 3, ... from the left.
	"""
	if not data or not data.isdigit():
		return None
	total = 0
	for i, ch in enumerate(reversed(data)):
		total += int(ch) * (3 if i % 2 == 0 else 1)
	return (10 - (total % 10)) % 10


def has_valid_check_digit(code: str) -> bool:
	if len(code) < 2 or not code.isdigit():
		return False
	expected = check_digit(code[:-1])
	return expected is not None and expected == int(code[-1])


def code128_checksum(start_value: int, values) -> int:
	"""Code 128 symbol check character: start + sum(position * value) mod 103."""
	total = start_value
	for position, value in enumerate(values, start=1):
		total += position * value
	return total % 103


def digits_only(s: str) -> str:
	return NON_DIGITS.sub("", s or "")


def validate_payload(payload: str) -> bool:
	"""Post-decode sanity check: 8-20 digits once non-digits are stripped."""
	if payload is None:
		return False
	n = len(digits_only(payload))
	return PAYLOAD_MIN_DIGITS <= n <= PAYLOAD_MAX_DIGITS
