"""Relay that forwards document-structuring requests to LLM backends."""

__version__ = "0.1.0"
