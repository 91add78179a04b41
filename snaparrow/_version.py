"""Installed SnapArrow version, read from package metadata."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("snaparrow")
except PackageNotFoundError:
    # source checkout without an install
    __version__ = "0.3.0-dev"
