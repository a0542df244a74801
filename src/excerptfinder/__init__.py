"""ExcerptFinder - extractive question answering over a local corpus."""

__version__ = "0.1.0"
