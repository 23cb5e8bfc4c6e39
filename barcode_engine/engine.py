"""
Barcode decode pipeline.

Strategy:
- QR first, on the unmodified buffer (cheaper and far more reliable)
- Then a bounded search over transform x scan line x threshold x symbology
- Stop at the first checksum-valid read; every rejected attempt is traced

The engine keeps no state between calls, so one instance can serve many
threads at once.
"""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from . import binarizer, gs1
from .code128 import CODE128
from .config import DecodeOptions
from .matrix import decode_matrix
from .models import DecodeResult, ErrorKind, Outcome, ScanLine, TraceEntry
from .pixels import ImageDecodeError, PixelBuffer, load_pixels
from .sampler import DEFAULT_STRATEGIES, ScanStrategy, sample
from .transforms import TRANSFORM_CATALOG, Transform
from .transitions import bar_widths, find_transitions, is_plausible
from .upcean import EAN8, EAN13, UPCA

logger = logging.getLogger(__name__)

validate_payload = gs1.validate_payload

# Longest / most specific guard patterns first
DEFAULT_DECODERS = (EAN13, EAN8, CODE128, UPCA)

MatrixDecoder = Callable[[PixelBuffer], Optional[str]]

DECODE_ATTEMPTS = frozenset((Outcome.NO_MATCH, Outcome.CHECKSUM_MISMATCH, Outcome.PAYLOAD_REJECTED, Outcome.ACCEPTED))


class _Halt(Exception):
	def __init__(self, reason: str):
		super().__init__(reason)
		self.reason = reason


class _Trace:
	def __init__(self, limit: int):
		self.limit = limit
		self.entries: List[TraceEntry] = []
		self.dropped = 0
		# most recent decoder evaluation, kept even when the entry is dropped
		self.last_attempt: Optional[TraceEntry] = None

	def add(self, entry: TraceEntry) -> None:
		if entry.outcome in DECODE_ATTEMPTS:
			self.last_attempt = entry
		if len(self.entries) < self.limit:
			self.entries.append(entry)
		else:
			self.dropped += 1

	def merge(self, other: "_Trace") -> None:
		room = max(0, self.limit - len(self.entries))
		self.entries.extend(other.entries[:room])
		self.dropped += max(0, len(other.entries) - room) + other.dropped
		if other.last_attempt is not None:
			self.last_attempt = other.last_attempt


class _SearchState:
	"""Budget and cancellation shared by every transform search of one request."""

	def __init__(self, options: DecodeOptions):
		self.options = options
		self._lock = threading.Lock()
		self.evaluations = 0
		self.winner: Optional[int] = None
		self._deadline = None
		if options.timeout_seconds is not None:
			self._deadline = time.monotonic() + options.timeout_seconds

	def check(self, index: int) -> None:
		if self.winner is not None and self.winner < index:
			raise _Halt("superseded")
		if self._deadline is not None and time.monotonic() >= self._deadline:
			raise _Halt("timeout")

	def claim_evaluation(self) -> None:
		with self._lock:
			if self.evaluations >= self.options.max_evaluations:
				raise _Halt("budget")
			self.evaluations += 1

	def record_success(self, index: int) -> None:
		with self._lock:
			if self.winner is None or index < self.winner:
				self.winner = index


@dataclass
class _TransformOutcome:
	index: int
	name: str
	trace: _Trace
	accepted: Optional[TraceEntry] = None
	strategy: Optional[str] = None
	halted: Optional[str] = None


class BarcodeEngine:
	"""Configurable decode pipeline.

	Args:
		options: budget and tolerance settings
		decoders: symbology decoders, tried in order on every usable line
		transforms: preprocessing catalog, tried in order
		strategies: scan line band/step strategies, cheapest first
		thresholds: (name, fn) pairs; the first is primary, the rest are
			alternates used only when the primary leaves an unusable line
		matrix_decoder: QR reader run before any 1-D work; None disables it
	"""

	def __init__(
		self,
		options: Optional[DecodeOptions] = None,
		decoders: Sequence = DEFAULT_DECODERS,
		transforms: Sequence[Transform] = TRANSFORM_CATALOG,
		strategies: Sequence[ScanStrategy] = DEFAULT_STRATEGIES,
		thresholds: Sequence[Tuple[str, binarizer.ThresholdFn]] = binarizer.THRESHOLDS,
		matrix_decoder: Optional[MatrixDecoder] = decode_matrix,
	):
		self.options = (options or DecodeOptions()).validate()
		self.decoders = tuple(decoders)
		self.transforms = tuple(transforms)
		self.strategies = tuple(strategies)
		self.thresholds = tuple(thresholds)
		self.matrix_decoder = matrix_decoder
		if not self.thresholds:
			raise ValueError("at least one threshold method is required")

	def decode_image(self, data: bytes) -> DecodeResult:
		try:
			buffer = load_pixels(data)
		except ImageDecodeError as exc:
			logger.warning("Image decode failed: %s", exc)
			return DecodeResult(success=False, error=ErrorKind.IMAGE_DECODE_ERROR, message=str(exc))
		return self.decode_buffer(buffer)

	def decode_buffer(self, buffer: PixelBuffer) -> DecodeResult:
		trace = _Trace(self.options.max_trace_entries)
		if self.matrix_decoder is not None:
			payload = self.matrix_decoder(buffer)
			if payload:
				entry = TraceEntry(Outcome.MATRIX_HIT, transform="identity", symbology="QR Code", payload=payload, checksum_valid=True)
				return DecodeResult(success=True, payload=payload, symbology="QR Code", strategy="matrix", trace=(entry,))
			trace.add(TraceEntry(Outcome.MATRIX_MISS, transform="identity", symbology="QR Code", detail="no QR symbol"))

		state = _SearchState(self.options)
		outcomes = self._search(buffer, state)
		return self._result(trace, outcomes, state)

	def _search(self, buffer: PixelBuffer, state: _SearchState) -> List[_TransformOutcome]:
		if self.options.workers > 1 and len(self.transforms) > 1:
			return self._search_parallel(buffer, state)
		outcomes: List[_TransformOutcome] = []
		for index, transform in enumerate(self.transforms):
			outcome = self._run_transform(index, transform, buffer, state)
			outcomes.append(outcome)
			if outcome.accepted is not None or outcome.halted:
				break
		return outcomes

	def _search_parallel(self, buffer: PixelBuffer, state: _SearchState) -> List[_TransformOutcome]:
		workers = max(1, min(self.options.workers, os.cpu_count() or 1, len(self.transforms)))
		with ThreadPoolExecutor(max_workers=workers) as pool:
			futures = [
				pool.submit(self._run_transform, index, transform, buffer, state)
				for index, transform in enumerate(self.transforms)
			]
			return [f.result() for f in futures]

	def _run_transform(self, index: int, transform: Transform, buffer: PixelBuffer, state: _SearchState) -> _TransformOutcome:
		outcome = _TransformOutcome(index, transform.name, _Trace(self.options.max_trace_entries))
		try:
			state.check(index)
			logger.debug("Trying %s transform", transform.name)
			transformed = transform.apply(buffer)
			visited = set()
			for strategy in self.strategies:
				for line in sample(transformed, strategy.band, strategy.step, transform=transform.name):
					if line.row in visited:
						continue
					visited.add(line.row)
					state.check(index)
					accepted = self._scan_line(line, index, state, outcome.trace)
					if accepted is not None:
						state.record_success(index)
						outcome.accepted = accepted
						outcome.strategy = f"{transform.name}/{strategy.name}/row={line.row}/{accepted.threshold}/{accepted.symbology}"
						return outcome
		except _Halt as halt:
			outcome.halted = halt.reason
			if halt.reason == "timeout":
				outcome.trace.add(TraceEntry(Outcome.BUDGET, transform=transform.name, detail="timeout"))
			elif halt.reason == "budget":
				detail = f"evaluation budget of {self.options.max_evaluations} exhausted"
				outcome.trace.add(TraceEntry(Outcome.BUDGET, transform=transform.name, detail=detail))
		return outcome

	def _scan_line(self, line: ScanLine, index: int, state: _SearchState, trace: _Trace) -> Optional[TraceEntry]:
		(primary_name, primary), *alternates = self.thresholds
		usable, accepted = self._try_threshold(line, primary_name, primary, index, state, trace)
		if usable:
			return accepted
		for name, method in alternates:
			_usable, accepted = self._try_threshold(line, name, method, index, state, trace)
			if accepted is not None:
				return accepted
		return None

	def _try_threshold(self, line: ScanLine, name: str, method, index: int, state: _SearchState, trace: _Trace) -> Tuple[bool, Optional[TraceEntry]]:
		opts = self.options
		binary = binarizer.binarize(line.values, method(line.values))
		transitions = find_transitions(binary)
		count = len(transitions)
		if not is_plausible(count, opts.min_transitions, opts.max_transitions):
			detail = f"{count} transitions outside [{opts.min_transitions}, {opts.max_transitions}]"
			trace.add(TraceEntry(Outcome.LINE_REJECTED, transform=line.transform, row=line.row, threshold=name, detail=detail))
			return False, None

		widths = bar_widths(binary, transitions)
		for decoder in self.decoders:
			state.check(index)
			state.claim_evaluation()
			where = dict(transform=line.transform, row=line.row, threshold=name, symbology=decoder.name)
			candidate = decoder.decode(widths, opts.match_tolerance)
			if candidate is None:
				trace.add(TraceEntry(Outcome.NO_MATCH, detail="guard or character pattern not found", **where))
				continue
			if not candidate.checksum_valid:
				trace.add(TraceEntry(Outcome.CHECKSUM_MISMATCH, detail="check character mismatch", payload=candidate.payload, **where))
				continue
			if not gs1.validate_payload(candidate.payload):
				trace.add(TraceEntry(Outcome.PAYLOAD_REJECTED, detail="payload needs 8-20 digits", payload=candidate.payload, checksum_valid=True, **where))
				continue
			entry = TraceEntry(Outcome.ACCEPTED, detail=f"{count} transitions", payload=candidate.payload, checksum_valid=True, **where)
			trace.add(entry)
			return True, entry
		return True, None

	def _result(self, trace: _Trace, outcomes: List[_TransformOutcome], state: _SearchState) -> DecodeResult:
		winner = next((o for o in outcomes if o.accepted is not None), None)
		relevant = outcomes if winner is None else [o for o in outcomes if o.index <= winner.index]
		for o in relevant:
			trace.merge(o.trace)
		common = dict(evaluations=state.evaluations, trace=tuple(trace.entries), trace_dropped=trace.dropped)

		if winner is not None:
			accepted = winner.accepted
			logger.info("Decoded %s %s via %s", accepted.symbology, accepted.payload, winner.strategy)
			return DecodeResult(success=True, payload=accepted.payload, symbology=accepted.symbology, strategy=winner.strategy, **common)

		halted = next((o.halted for o in outcomes if o.halted in ("budget", "timeout")), None)
		if halted is not None:
			message = "timeout" if halted == "timeout" else "evaluation budget exhausted"
			logger.info("Search stopped early: %s after %d evaluations", message, state.evaluations)
			return DecodeResult(success=False, error=ErrorKind.BUDGET_EXCEEDED, message=message, **common)

		last = trace.last_attempt
		if last is not None and last.outcome is Outcome.CHECKSUM_MISMATCH:
			error, message = ErrorKind.CHECKSUM_MISMATCH, "checksum mismatch on the final candidate"
		else:
			error, message = ErrorKind.NO_PATTERN_FOUND, "no barcode detected"
		logger.info("No barcode decoded after %d evaluations", state.evaluations)
		return DecodeResult(success=False, error=error, message=message, **common)


def decode_image(data: bytes, options: Optional[DecodeOptions] = None) -> DecodeResult:
	"""Decode raw image bytes with the default pipeline."""
	return BarcodeEngine(options).decode_image(data)
