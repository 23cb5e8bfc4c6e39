"""
Product catalog and the in-memory list of scanned items.
"""

import itertools
import logging
import threading
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional

from .lookup import lookup_product_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Product:
	name: str
	price: float


UNKNOWN_PRODUCT = Product("Unknown Product", 0.0)

DEMO_PRODUCTS: Mapping[str, Product] = MappingProxyType({
	"5901234123457": Product("Organic Whole Milk", 4.99),
	"5012345678900": Product("Whole Wheat Bread", 3.49),
	"1234567890128": Product("Spring Water 1L", 1.25),
	"7891234567895": Product("Free-Range Eggs (Dozen)", 5.75),
	"9827348723400": Product("Java Programming Book", 49.99),
})


class ProductCatalog:
	"""Barcode -> Product, with an optional online name lookup for misses.

	Products resolved online carry the default price since the lookup
	service has no pricing.
	"""

	def __init__(
		self,
		products: Mapping[str, Product] = DEMO_PRODUCTS,
		default: Product = UNKNOWN_PRODUCT,
		online_lookup: Optional[Callable[[str], Optional[str]]] = None,
	):
		self._products = MappingProxyType(dict(products))
		self.default = default
		self.online_lookup = online_lookup

	@classmethod
	def with_online_lookup(cls, timeout: float = 6.0) -> "ProductCatalog":
		return cls(online_lookup=lambda code: lookup_product_name(code, timeout=timeout))

	def __contains__(self, barcode: str) -> bool:
		return barcode in self._products

	def __len__(self) -> int:
		return len(self._products)

	def get(self, barcode: str) -> Product:
		product = self._products.get(barcode)
		if product is not None:
			return product
		if self.online_lookup is not None:
			name = self.online_lookup(barcode)
			if name:
				logger.info("Resolved %s online as %r", barcode, name)
				return Product(name, self.default.price)
		return self.default


@dataclass(frozen=True)
class ScannedItem:
	id: int
	barcode: str
	name: str
	price: float
	timestamp: str


class ItemStore:
	"""Scanned items in insertion order. Safe to share between threads."""

	def __init__(self):
		self._lock = threading.Lock()
		self._items: List[ScannedItem] = []
		self._ids = itertools.count(1)

	def add(self, barcode: str, product: Product) -> ScannedItem:
		with self._lock:
			item = ScannedItem(
				id=next(self._ids),
				barcode=barcode,
				name=product.name,
				price=product.price,
				timestamp=time.strftime("%H:%M:%S"),
			)
			self._items.append(item)
		logger.debug("Recorded item %d: %s", item.id, barcode)
		return item

	def items(self) -> List[ScannedItem]:
		with self._lock:
			return list(self._items)

	def clear(self) -> None:
		with self._lock:
			self._items.clear()

	def total(self) -> float:
		with self._lock:
			return round(sum(i.price for i in self._items), 2)

	def __len__(self) -> int:
		with self._lock:
			return len(self._items)
