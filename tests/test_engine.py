import io
from concurrent.futures import ThreadPoolExecutor

import cv2
import numpy as np
import pytest
from PIL import Image

from barcode_engine.config import DecodeOptions
from barcode_engine.engine import BarcodeEngine, decode_image, validate_payload
from barcode_engine.models import ErrorKind, Outcome
from barcode_engine.upcean import EAN13, encode_ean8, encode_ean13, encode_upca


class CountingDecoder:
	name = "Counting"

	def __init__(self):
		self.calls = 0

	def decode(self, widths, tolerance=0.8):
		self.calls += 1
		return None


def one_d_only(**kwargs) -> BarcodeEngine:
	return BarcodeEngine(matrix_decoder=None, **kwargs)


# ============================================================================
# SUCCESSFUL DECODES
# ============================================================================

def test_decodes_ean13(ean13_png):
	result = decode_image(ean13_png)
	assert result.success
	assert result.payload == "5901234123457"
	assert result.symbology == "EAN-13"
	assert result.error is None
	assert result.strategy.startswith("identity/center/row=")
	assert result.strategy.endswith("/otsu/EAN-13")
	assert result.evaluations == 1
	assert result.trace[0].outcome is Outcome.MATRIX_MISS
	assert result.trace[-1].outcome is Outcome.ACCEPTED


def test_decodes_ean8(render_bits):
	result = one_d_only().decode_image(render_bits(encode_ean8("9638507")))
	assert result.success
	assert (result.symbology, result.payload) == ("EAN-8", "96385074")


def test_upca_symbol_is_read_as_ean13(render_bits):
	result = one_d_only().decode_image(render_bits(encode_upca("03600029145")))
	assert result.success
	assert (result.symbology, result.payload) == ("EAN-13", "0036000291452")


def test_decodes_code128(render_code128):
	result = one_d_only().decode_image(render_code128("12345678"))
	assert result.success
	assert (result.symbology, result.payload) == ("Code 128", "12345678")


def test_low_contrast_symbol(render_bits):
	data = render_bits(encode_ean13("5901234123457"), dark=110, light=150)
	result = one_d_only().decode_image(data)
	assert result.payload == "5901234123457"


def test_repeated_decodes_are_identical(ean13_png, bad_ean13_png):
	engine = one_d_only()
	for data in (ean13_png, bad_ean13_png):
		first = engine.decode_image(data)
		second = engine.decode_image(data)
		assert first == second


def test_parallel_matches_sequential(ean13_png, bad_ean13_png):
	sequential = one_d_only()
	parallel = one_d_only(options=DecodeOptions(workers=4))
	a, b = sequential.decode_image(ean13_png), parallel.decode_image(ean13_png)
	assert (a.payload, a.symbology, a.strategy) == (b.payload, b.symbology, b.strategy)
	a, b = sequential.decode_image(bad_ean13_png), parallel.decode_image(bad_ean13_png)
	assert not b.success
	assert (a.error, a.evaluations) == (b.error, b.evaluations)


def test_one_engine_shared_across_threads(ean13_png, bad_ean13_png, gray_png):
	engine = one_d_only(options=DecodeOptions(timeout_seconds=None))
	images = [ean13_png, bad_ean13_png, gray_png] * 8
	expected = [engine.decode_image(data) for data in images]
	with ThreadPoolExecutor(max_workers=8) as pool:
		concurrent = list(pool.map(engine.decode_image, images))
	assert concurrent == expected
	assert [r.success for r in concurrent[:3]] == [True, False, False]


# ============================================================================
# QR PATH
# ============================================================================

def test_qr_beside_stripes():
	code = cv2.QRCodeEncoder.create().encode("HELLO")
	# 8 px per module plus a 4-module quiet zone
	code = cv2.resize(code, None, fx=8, fy=8, interpolation=cv2.INTER_NEAREST)
	qr = np.pad(code, 32, constant_values=255).astype(np.uint8)
	height = qr.shape[0]
	stripes = np.tile(np.array(([0] * 4 + [255] * 4) * 25, dtype=np.uint8), (height, 1))
	canvas = np.hstack([qr, stripes])
	buf = io.BytesIO()
	Image.fromarray(canvas).save(buf, format="PNG")

	result = decode_image(buf.getvalue())
	assert result.success
	assert (result.symbology, result.payload, result.strategy) == ("QR Code", "HELLO", "matrix")
	assert result.evaluations == 0


def test_matrix_hit_skips_linear_search(ean13_png):
	counter = CountingDecoder()
	engine = BarcodeEngine(decoders=(counter,), matrix_decoder=lambda buffer: "https://example.com/p/1")
	result = engine.decode_image(ean13_png)
	assert result.success
	assert result.payload == "https://example.com/p/1"
	assert result.trace[0].outcome is Outcome.MATRIX_HIT
	assert counter.calls == 0


# ============================================================================
# FAILURES
# ============================================================================

def test_uniform_gray_finds_nothing(gray_png):
	result = decode_image(gray_png)
	assert not result.success
	assert result.error is ErrorKind.NO_PATTERN_FOUND
	assert result.message == "no barcode detected"
	assert result.payload is None
	assert result.checksum_valid_candidates == 0
	assert result.evaluations == 0


def test_short_lines_never_reach_a_decoder(stripes_png, ean13_png):
	counter = CountingDecoder()
	engine = one_d_only(decoders=(counter,))
	result = engine.decode_image(stripes_png)
	assert counter.calls == 0
	assert result.error is ErrorKind.NO_PATTERN_FOUND
	assert {e.outcome for e in result.trace} == {Outcome.LINE_REJECTED}

	engine.decode_image(ean13_png)
	assert counter.calls > 0


def test_bad_checksum_tries_every_symbology(bad_ean13_png):
	result = one_d_only().decode_image(bad_ean13_png)
	assert not result.success
	assert result.payload is None

	mismatch = next(e for e in result.trace if e.outcome is Outcome.CHECKSUM_MISMATCH)
	assert mismatch.symbology == "EAN-13"
	assert mismatch.payload == "5901234123450"
	same_line = [
		e.symbology for e in result.trace
		if (e.transform, e.row, e.threshold) == (mismatch.transform, mismatch.row, mismatch.threshold)
	]
	assert same_line == ["EAN-13", "EAN-8", "Code 128", "UPC-A"]


def test_checksum_mismatch_as_final_attempt(bad_ean13_png):
	result = one_d_only(decoders=(EAN13,)).decode_image(bad_ean13_png)
	assert result.error is ErrorKind.CHECKSUM_MISMATCH
	assert result.checksum_valid_candidates == 0


def test_evaluation_budget(bad_ean13_png):
	result = one_d_only(options=DecodeOptions(max_evaluations=3)).decode_image(bad_ean13_png)
	assert not result.success
	assert result.error is ErrorKind.BUDGET_EXCEEDED
	assert result.message == "evaluation budget exhausted"
	assert result.evaluations == 3
	assert result.trace[-1].outcome is Outcome.BUDGET


def test_timeout(ean13_png):
	result = one_d_only(options=DecodeOptions(timeout_seconds=0)).decode_image(ean13_png)
	assert result.error is ErrorKind.BUDGET_EXCEEDED
	assert result.message == "timeout"
	assert result.evaluations == 0


def test_trace_cap_counts_dropped_entries(bad_ean13_png):
	result = one_d_only(options=DecodeOptions(max_trace_entries=5)).decode_image(bad_ean13_png)
	assert len(result.trace) == 5
	assert result.trace_dropped > 0


@pytest.mark.parametrize("data", [b"", b"definitely not an image"])
def test_undecodable_image(data):
	result = decode_image(data)
	assert not result.success
	assert result.error is ErrorKind.IMAGE_DECODE_ERROR
	assert result.trace == ()


def test_payload_rejected_trace(render_code128):
	# checksum-valid Code 128 text is read, but is not a product code
	result = one_d_only().decode_image(render_code128("Hello, World"))
	assert not result.success
	rejected = [e for e in result.trace if e.outcome is Outcome.PAYLOAD_REJECTED]
	assert rejected
	assert rejected[0].payload == "Hello, World"


# ============================================================================
# MISC
# ============================================================================

def test_to_dict(ean13_png, gray_png):
	data = one_d_only().decode_image(ean13_png).to_dict()
	assert data["payload"] == "5901234123457"
	assert "trace" not in data
	failed = one_d_only().decode_image(gray_png).to_dict(include_trace=True)
	assert failed["error"] == "no-pattern-found"
	assert failed["trace"][0]["outcome"] == "line-rejected"


def test_validate_payload_is_exported():
	assert validate_payload("5901234123457")
	assert not validate_payload("123")


def test_engine_rejects_bad_options():
	with pytest.raises(ValueError):
		BarcodeEngine(DecodeOptions(match_tolerance=2.0))
	with pytest.raises(ValueError):
		BarcodeEngine(thresholds=())
