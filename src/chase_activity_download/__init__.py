"""Download Chase account activity for every account in the download form."""

__version__ = "0.1.0"
