from dataclasses import asdict, dataclass, field
from enum import Enum
from functools import cached_property
from typing import Optional, Tuple

import numpy as np


class ErrorKind(str, Enum):
	IMAGE_DECODE_ERROR = "image-decode-error"
	NO_PATTERN_FOUND = "no-pattern-found"
	CHECKSUM_MISMATCH = "checksum-mismatch"
	BUDGET_EXCEEDED = "budget-exceeded"


class Outcome(str, Enum):
	MATRIX_HIT = "matrix-hit"
	MATRIX_MISS = "matrix-miss"
	LINE_REJECTED = "line-rejected"
	NO_MATCH = "no-match"
	CHECKSUM_MISMATCH = "checksum-mismatch"
	PAYLOAD_REJECTED = "payload-rejected"
	ACCEPTED = "accepted"
	BUDGET = "budget"


@dataclass(frozen=True, eq=False)
class ScanLine:
	row: int
	transform: str
	values: np.ndarray


@dataclass(frozen=True)
class BarWidths:
	"""Run lengths between transitions, in module counts.

	`first_is_bar` tells the colour of the first run (dark is a bar). Runs
	alternate from there.
	"""
	widths: Tuple[int, ...]
	first_is_bar: bool
	module_width: float = 1.0

	@property
	def total_modules(self) -> int:
		return sum(self.widths)

	def is_bar(self, index: int) -> bool:
		return (index % 2 == 0) == self.first_is_bar

	@cached_property
	def modules(self) -> Tuple[int, ...]:
		bits = []
		for i, w in enumerate(self.widths):
			bits.extend([1 if self.is_bar(i) else 0] * w)
		return tuple(bits)


@dataclass(frozen=True)
class DecodeCandidate:
	symbology: str
	payload: str
	checksum_valid: bool
	start: int = 0


@dataclass(frozen=True)
class TraceEntry:
	outcome: Outcome
	transform: Optional[str] = None
	row: Optional[int] = None
	threshold: Optional[str] = None
	symbology: Optional[str] = None
	detail: str = ""
	payload: Optional[str] = None
	checksum_valid: bool = False


@dataclass(frozen=True)
class DecodeResult:
	success: bool
	payload: Optional[str] = None
	symbology: Optional[str] = None
	error: Optional[ErrorKind] = None
	message: Optional[str] = None
	strategy: Optional[str] = None
	evaluations: int = 0
	trace: Tuple[TraceEntry, ...] = field(default_factory=tuple)
	trace_dropped: int = 0

	@property
	def checksum_valid_candidates(self) -> int:
		return sum(1 for e in self.trace if e.checksum_valid)

	def to_dict(self, include_trace: bool = False) -> dict:
		data = {
			"success": self.success,
			"payload": self.payload,
			"symbology": self.symbology,
			"error": self.error.value if self.error else None,
			"message": self.message,
			"strategy": self.strategy,
			"evaluations": self.evaluations,
		}
		if include_trace:
			trace = []
			for e in self.trace:
				item = asdict(e)
				item["outcome"] = e.outcome.value
				trace.append(item)
			data["trace"] = trace
			data["trace_dropped"] = self.trace_dropped
		return data
