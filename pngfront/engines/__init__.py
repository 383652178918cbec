"""Decode engines: `png` (numpy/zlib, default) and `pillow`."""

from .pillow import PillowDecoder, PillowEngine
from .png import PngDecoder, PngEngine

ENGINES = {
    "png": PngEngine,
    "pillow": PillowEngine,
}


def get_engine(name: str = "png"):
    """Return a fresh engine instance by name."""
    try:
        return ENGINES[name]()
    except KeyError:
        raise ValueError(f"Unknown engine: {name}") from None


__all__ = [
    "ENGINES",
    "get_engine",
    "PngDecoder",
    "PngEngine",
    "PillowDecoder",
    "PillowEngine",
]
