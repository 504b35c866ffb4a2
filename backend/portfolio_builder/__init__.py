"""Local portfolio builder: capture, enhance, preview and export a personal portfolio."""

__version__ = "1.0.0"
