"""Attach and detach host USB devices to running VMs via the QEMU monitor."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("usb-attach")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
