import atexit
import logging
import os
import shutil
import tempfile
import zipfile
from typing import Iterator, List

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = frozenset((".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tif", ".tiff", ".webp", ".heic", ".heif"))
# Archive metadata written by macOS Finder
SKIP_DIRS = frozenset(("__MACOSX",))


def _is_image_name(name: str) -> bool:
	# dotfiles include AppleDouble forks (._IMG_0001.jpg)
	if name.startswith("."):
		return False
	return os.path.splitext(name)[1].lower() in IMAGE_SUFFIXES


def _walk_images(top: str) -> Iterator[str]:
	for root, dirs, files in os.walk(top):
		dirs[:] = [d for d in dirs if d not in SKIP_DIRS and not d.startswith(".")]
		for name in files:
			if _is_image_name(name):
				yield os.path.join(root, name)


def _extract_zip(path: str) -> str:
	target = tempfile.mkdtemp(prefix="barcode_zip_")
	atexit.register(shutil.rmtree, target, True)
	with zipfile.ZipFile(path) as zf:
		zf.extractall(target)
	logger.debug("Extracted %s to %s", path, target)
	return target


def discover_images(src_path: str) -> List[str]:
	"""Absolute image paths under a folder, inside a zip, or the file itself.

	Paths come back sorted so batch runs are reproducible. Extracted zip
	contents are removed when the process exits.
	"""
	src = os.path.abspath(src_path)
	if not os.path.exists(src):
		raise FileNotFoundError(f"Source path not found: {src}")
	if zipfile.is_zipfile(src):
		return sorted(_walk_images(_extract_zip(src)))
	if os.path.isfile(src):
		return [src] if _is_image_name(os.path.basename(src)) else []
	return sorted(_walk_images(src))
