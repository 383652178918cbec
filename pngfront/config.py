"""Decode options and YAML loading."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import yaml

logger = logging.getLogger(__name__)

EngineName = Literal["png", "pillow"]
ENGINE_NAMES = ("png", "pillow")


@dataclass(frozen=True)
class DecodeOptions:
    # Checksum policy
    # - True: chunk CRC-32 and zlib Adler-32 are not verified; structural
    #   errors are still reported as malformed input / decode failure
    # - False: mismatches are reported like any other structural error
    ignore_checksum: bool = True

    # Upper bound on per-image scratch memory. None: only the allocator limits it.
    max_scratch_bytes: Optional[int] = None

    # Decode engine, see pngfront.engines.get_engine
    engine: EngineName = "png"

    def __post_init__(self):
        if not isinstance(self.ignore_checksum, bool):
            raise ValueError(f"ignore_checksum must be a bool, got {self.ignore_checksum!r}")
        if self.max_scratch_bytes is not None:
            if isinstance(self.max_scratch_bytes, bool) or not isinstance(self.max_scratch_bytes, int):
                raise ValueError(f"max_scratch_bytes must be an int, got {self.max_scratch_bytes!r}")
            if self.max_scratch_bytes < 0:
                raise ValueError("max_scratch_bytes must be non-negative")
        if self.engine not in ENGINE_NAMES:
            raise ValueError(f"Unsupported engine: {self.engine}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def options_from_dict(raw: Optional[Dict[str, Any]]) -> DecodeOptions:
    """Build DecodeOptions from a plain mapping, rejecting unknown keys."""
    if raw is None:
        return DecodeOptions()
    if not isinstance(raw, dict):
        raise ValueError(f"Decode options must be a mapping, got {type(raw).__name__}")

    known = {f.name for f in fields(DecodeOptions)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown decode option(s): {', '.join(unknown)}")
    return DecodeOptions(**raw)


def load_options(config_path: Union[str, Path, None] = None) -> DecodeOptions:
    """Load decode options from a YAML file.

    Args:
        config_path: Path to a YAML mapping. If None, defaults are returned.
            A top-level `decode:` section is used when present.

    Returns:
        DecodeOptions
    """
    if config_path is None:
        return DecodeOptions()

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    if isinstance(raw, dict) and "decode" in raw:
        raw = raw["decode"]

    options = options_from_dict(raw)
    logger.info("Loaded decode options from %s: %s", config_path, options.to_dict())
    return options
