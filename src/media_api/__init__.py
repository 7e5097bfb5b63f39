"""Wedding Media API: upload, list, preview and delete wedding photos and videos."""

__version__ = "0.1.0"
