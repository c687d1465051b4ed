"""Two-way sync between a local directory and a Google Drive folder."""

__version__ = "0.3.0"
