"""
Symbol tables for EAN/UPC and Code 128, as published in the GS1 General
Specifications and ISO/IEC 15417.

EAN/UPC digit codes are 7-module bit patterns (bar = 1). Code 128 characters
are 6 element widths (bar, space, bar, space, bar, space) summing to 11.
"""

import math
from typing import Hashable, Iterable, Optional, Sequence, Tuple

# L-code (odd parity, left half)
EAN_L_CODES: Tuple[Tuple[int, ...], ...] = (
	(0, 0, 0, 1, 1, 0, 1),
	(0, 0, 1, 1, 0, 0, 1),
	(0, 0, 1, 0, 0, 1, 1),
	(0, 1, 1, 1, 1, 0, 1),
	(0, 1, 0, 0, 0, 1, 1),
	(0, 1, 1, 0, 0, 0, 1),
	(0, 1, 0, 1, 1, 1, 1),
	(0, 1, 1, 1, 0, 1, 1),
	(0, 1, 1, 0, 1, 1, 1),
	(0, 0, 0, 1, 0, 1, 1),
)
# R-code is the bitwise complement of L; G-code is R reversed
EAN_R_CODES: Tuple[Tuple[int, ...], ...] = tuple(tuple(1 - b for b in code) for code in EAN_L_CODES)
EAN_G_CODES: Tuple[Tuple[int, ...], ...] = tuple(tuple(reversed(code)) for code in EAN_R_CODES)

# EAN-13 leading digit, encoded by the L/G parity of the six left digits
EAN13_FIRST_DIGIT_PARITY: Tuple[str, ...] = (
	"LLLLLL",
	"LLGLGG",
	"LLGGLG",
	"LLGGGL",
	"LGLLGG",
	"LGGLLG",
	"LGGGLL",
	"LGLGLG",
	"LGLGGL",
	"LGGLGL",
)

START_GUARD = (1, 0, 1)
MIDDLE_GUARD = (0, 1, 0, 1, 0)
END_GUARD = (1, 0, 1)

# Code 128 values 0-105; 103/104/105 are Start A/B/C
CODE128_PATTERNS: Tuple[Tuple[int, ...], ...] = tuple(
	tuple(int(ch) for ch in p)
	for p in (
		"212222", "222122", "222221", "121223", "121322", "131222", "122213", "122312", "132212", "221213",
		"221312", "231212", "112232", "122132", "122231", "113222", "123122", "123221", "223211", "221132",
		"221231", "213212", "223112", "312131", "311222", "321122", "321221", "312212", "322112", "322211",
		"212123", "212321", "232121", "111323", "131123", "131321", "112313", "132113", "132311", "211313",
		"231113", "231311", "112133", "112331", "132131", "113123", "113321", "133121", "313121", "211331",
		"231131", "213113", "213311", "213131", "311123", "311321", "331121", "312113", "312311", "332111",
		"314111", "221411", "431111", "111224", "111422", "121124", "121421", "141122", "141221", "112214",
		"112412", "122114", "122411", "142112", "142211", "241211", "221114", "413111", "241112", "134111",
		"111242", "121142", "121241", "114212", "124112", "124211", "411212", "421112", "421211", "212141",
		"214121", "412121", "111143", "111341", "131141", "114113", "114311", "411113", "411311", "113141",
		"114131", "311141", "411131", "211412", "211214", "211232",
	)
)
CODE128_STOP = (2, 3, 3, 1, 1, 1, 2)
CODE128_START_A = 103
CODE128_START_B = 104
CODE128_START_C = 105
CODE128_START_PREFIX = (2, 1, 1)


def min_agreement(size: int, tolerance: float) -> int:
	return int(math.ceil(tolerance * size - 1e-9))


def best_match(observed: Sequence[int], candidates: Iterable[Tuple[Hashable, Sequence[int]]], tolerance: float = 0.8) -> Optional[Hashable]:
	"""Return the key whose pattern agrees with `observed` on enough positions.

	An entry qualifies when at least ceil(tolerance * n) positions agree. The
	highest-agreement entry wins; a tie for the top is rejected (None).
	"""
	size = len(observed)
	needed = min_agreement(size, tolerance)
	best_key = None
	best_score = -1
	tied = False
	for key, pattern in candidates:
		if len(pattern) != size:
			continue
		score = sum(1 for a, b in zip(observed, pattern) if a == b)
		if score < needed:
			continue
		if score > best_score:
			best_key, best_score, tied = key, score, False
		elif score == best_score:
			tied = True
	if tied:
		return None
	return best_key


# Candidate lists in the (key, pattern) form best_match expects
EAN_LEFT_L = tuple(((d, "L"), code) for d, code in enumerate(EAN_L_CODES))
EAN_LEFT_LG = EAN_LEFT_L + tuple(((d, "G"), code) for d, code in enumerate(EAN_G_CODES))
EAN_RIGHT = tuple((d, code) for d, code in enumerate(EAN_R_CODES))
CODE128_DATA = tuple((v, CODE128_PATTERNS[v]) for v in range(CODE128_START_A))
CODE128_STARTS = tuple((v, CODE128_PATTERNS[v]) for v in (CODE128_START_A, CODE128_START_B, CODE128_START_C))
