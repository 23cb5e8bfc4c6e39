import logging
import re
from typing import Optional

import requests

from .gs1 import digits_only

logger = logging.getLogger(__name__)

RE_SPACES = re.compile(r"\s+")
OFF_PRODUCT_URL = "https://world.openfoodfacts.org/api/v2/product/{code}"


def _clean_name(name: str) -> str:
	return RE_SPACES.sub(" ", (name or "")).strip()


def lookup_product_name(barcode: str, timeout: float = 6.0) -> Optional[str]:
	"""Try to resolve a UPC/EAN to a product name using OpenFoodFacts."""
	code = digits_only(barcode)
	if not code:
		return None
	try:
		r = requests.get(OFF_PRODUCT_URL.format(code=code), timeout=timeout)
		if r.status_code != 200:
			logger.debug("OpenFoodFacts returned %s for %s", r.status_code, code)
			return None
		prod = r.json().get("product") or {}
	except (requests.RequestException, ValueError) as exc:
		logger.warning("OpenFoodFacts lookup failed for %s: %s", code, exc)
		return None
	brand = prod.get("brands") or prod.get("brand_owner") or ""
	name = prod.get("product_name") or prod.get("generic_name") or ""
	clean = _clean_name(f"{brand} {name}".strip() or name)
	return clean or None
