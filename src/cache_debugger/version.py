"""Package version (Semantic Versioning)."""

__version__ = "0.1.0"

VERSION_INFO = tuple(int(part) for part in __version__.split("."))
