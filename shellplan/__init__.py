"""Natural-language requests to confirmed, time-limited shell command plans."""

from .cli import main

__version__ = "0.1.0"

__all__ = ["main", "__version__"]
