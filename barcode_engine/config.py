import os
from dataclasses import dataclass, replace
from typing import Callable, Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class DecodeOptions:
	max_evaluations: int = 50000
	timeout_seconds: Optional[float] = 10.0
	min_transitions: int = 20
	max_transitions: int = 300
	match_tolerance: float = 0.8
	workers: int = 1
	max_trace_entries: int = 2000

	def validate(self) -> "DecodeOptions":
		if self.max_evaluations < 1:
			raise ValueError("max_evaluations must be at least 1")
		if self.timeout_seconds is not None and self.timeout_seconds < 0:
			raise ValueError("timeout_seconds must be non-negative")
		if self.min_transitions < 2 or self.max_transitions < self.min_transitions:
			raise ValueError(f"invalid transition band [{self.min_transitions}, {self.max_transitions}]")
		if not 0.5 <= self.match_tolerance <= 1.0:
			raise ValueError("match_tolerance must be within [0.5, 1.0]")
		if self.workers < 1:
			raise ValueError("workers must be at least 1")
		if self.max_trace_entries < 0:
			raise ValueError("max_trace_entries must be non-negative")
		return self


ENV_FIELDS = {
	"BARCODE_MAX_EVALUATIONS": ("max_evaluations", int),
	"BARCODE_TIMEOUT_SECONDS": ("timeout_seconds", float),
	"BARCODE_MIN_TRANSITIONS": ("min_transitions", int),
	"BARCODE_MAX_TRANSITIONS": ("max_transitions", int),
	"BARCODE_MATCH_TOLERANCE": ("match_tolerance", float),
	"BARCODE_WORKERS": ("workers", int),
	"BARCODE_MAX_TRACE_ENTRIES": ("max_trace_entries", int),
}


def _load_env_chain() -> None:
	load_dotenv()
	if os.path.exists(".env.local"):
		load_dotenv(dotenv_path=".env.local", override=True)
	elif os.path.exists("env.local"):
		load_dotenv(dotenv_path="env.local", override=True)


def _parse(name: str, raw: str, cast: Callable):
	# "none"/"off" disables the wall-clock timeout
	if name == "BARCODE_TIMEOUT_SECONDS" and raw.lower() in ("", "none", "off"):
		return None
	try:
		return cast(raw)
	except ValueError:
		raise ValueError(f"{name}={raw!r} is not a valid {cast.__name__}") from None


def options_from_env(base: Optional[DecodeOptions] = None, load_files: bool = True) -> DecodeOptions:
	"""Build DecodeOptions from BARCODE_* environment variables.

	Values from `.env` are loaded first, then `.env.local` (or `env.local`)
	overrides them. Unset variables keep the value from `base`.
	"""
	if load_files:
		_load_env_chain()
	opts = base or DecodeOptions()
	changes = {}
	for name, (attr, cast) in ENV_FIELDS.items():
		raw = os.environ.get(name)
		if raw is None:
			continue
		changes[attr] = _parse(name, raw.strip(), cast)
	return replace(opts, **changes).validate()
