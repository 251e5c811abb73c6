"""swapchat - conversational token swap assistant."""

__version__ = "0.1.0"
