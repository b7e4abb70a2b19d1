"""Build labels read from marker files in a publish directory."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("publabel")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"
