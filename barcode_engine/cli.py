import argparse
import json
import logging
import os
from dataclasses import replace
from typing import List, Optional

from tqdm import tqdm

from .config import DecodeOptions, options_from_env
from .engine import BarcodeEngine
from .image_discovery import discover_images
from .inventory import ItemStore, ProductCatalog
from .models import DecodeResult

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
	p = argparse.ArgumentParser(description="Decode EAN/UPC, Code 128 and QR barcodes from images")
	p.add_argument("--src", required=True, help="Folder, .zip or single image")
	p.add_argument("--limit", type=int, default=0, help="Process only first N images")
	p.add_argument("--workers", type=int, help="Transform searches to run in parallel (default: 1)")
	p.add_argument("--max-evaluations", type=int, help="Decoder evaluation budget per image")
	p.add_argument("--timeout", type=float, help="Wall-clock seconds per image; 0 gives up immediately")
	# Lookup OFF by default; it goes to the network
	p.add_argument("--lookup", dest="lookup", action="store_true", default=False, help="Resolve unknown barcodes via OpenFoodFacts")
	p.add_argument("--no-lookup", dest="lookup", action="store_false")
	p.add_argument("--json", action="store_true", help="Print one JSON result per image")
	p.add_argument("--trace", action="store_true", help="Include the attempt trace in JSON output")
	p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
	return p.parse_args(argv)


def build_opts(args: argparse.Namespace) -> DecodeOptions:
	try:
		opts = options_from_env()
		changes = {}
		if args.workers is not None:
			changes["workers"] = args.workers
		if args.max_evaluations is not None:
			changes["max_evaluations"] = args.max_evaluations
		if args.timeout is not None:
			changes["timeout_seconds"] = args.timeout
		return replace(opts, **changes).validate()
	except ValueError as exc:
		raise SystemExit(f"Invalid options: {exc}") from None


def _read_bytes(path: str) -> bytes:
	with open(path, "rb") as f:
		return f.read()


def _print_json(path: str, result: DecodeResult, include_trace: bool) -> None:
	data = result.to_dict(include_trace=include_trace)
	data["file"] = os.path.basename(path)
	print(json.dumps(data))


def main(argv: Optional[List[str]] = None) -> None:
	args = parse_args(argv)
	logging.basicConfig(
		level=logging.DEBUG if args.verbose else logging.WARNING,
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)
	opts = build_opts(args)
	engine = BarcodeEngine(opts)
	catalog = ProductCatalog.with_online_lookup() if args.lookup else ProductCatalog()
	store = ItemStore()

	try:
		paths = discover_images(args.src)
	except FileNotFoundError as exc:
		raise SystemExit(str(exc)) from None
	if args.limit:
		paths = paths[: args.limit]
	if not paths:
		raise SystemExit("No images found.")

	failures: List[str] = []
	for path in tqdm(paths, desc="Scanning images", disable=args.json):
		try:
			data = _read_bytes(path)
		except OSError as exc:
			logger.warning("Could not read %s: %s", path, exc)
			failures.append(f"{os.path.basename(path)}: {exc}")
			continue
		result = engine.decode_image(data)
		if args.json:
			_print_json(path, result, args.trace)
		if not result.success:
			failures.append(f"{os.path.basename(path)}: {result.message}")
			continue
		store.add(result.payload, catalog.get(result.payload))

	if not args.json:
		for item in store.items():
			print(f"{item.id}\t{item.barcode}\t{item.name}\t{item.price:.2f}\t{item.timestamp}")
		for line in failures:
			print(f"FAILED\t{line}")
		if len(store):
			print(f"Total: {store.total():.2f} ({len(store)} items)")

	if not len(store):
		raise SystemExit("No barcodes detected in provided images.")


if __name__ == "__main__":
	main()
