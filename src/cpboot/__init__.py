"""cpboot: provision and tear down control plane environments."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cpboot")
except PackageNotFoundError:
    __version__ = "0.0.0"
