"""Read, crawl and filter Linux kernel and udev device events."""

__version__ = "0.1.0"
__all__ = ["__version__"]