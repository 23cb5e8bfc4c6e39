"""
QR decoding, delegated to zxing-cpp with ZBar as a second reader.
"""

import logging
from typing import Optional

import numpy as np
import zxingcpp

from .pixels import PixelBuffer

# Optional fallback dep
try:
	from pyzbar.pyzbar import ZBarSymbol, decode as zbar_decode  # type: ignore
except Exception:
	zbar_decode = None  # type: ignore
	ZBarSymbol = None  # type: ignore

logger = logging.getLogger(__name__)


def _read_barcodes_with_opts(arr: np.ndarray, formats):
	try:
		return zxingcpp.read_barcodes(arr, formats=formats, try_rotate=True)
	except TypeError:
		# Older bindings without try_rotate
		return zxingcpp.read_barcodes(arr, formats=formats)


def _zxing_qr(arr: np.ndarray) -> Optional[str]:
	try:
		results = _read_barcodes_with_opts(arr, zxingcpp.BarcodeFormat.QRCode)
	except (RuntimeError, ValueError) as exc:
		logger.warning("zxing-cpp QR read failed: %s", exc)
		return None
	for r in results:
		if r.text:
			return r.text
	return None


def _zbar_qr(arr: np.ndarray) -> Optional[str]:
	if zbar_decode is None:
		return None
	try:
		results = zbar_decode(arr, symbols=[ZBarSymbol.QRCODE])
	except (RuntimeError, ValueError) as exc:
		logger.warning("ZBar QR read failed: %s", exc)
		return None
	for r in results:
		val = r.data.decode(errors="ignore").strip()
		if val:
			return val
	return None


def decode_matrix(buffer: PixelBuffer) -> Optional[str]:
	"""Return the text of the first QR symbol found in `buffer`, or None."""
	arr = np.ascontiguousarray(buffer.to_array())
	text = _zxing_qr(arr)
	if text is None:
		text = _zbar_qr(arr)
	if text is not None:
		logger.info("QR code found: %s", text)
	return text
