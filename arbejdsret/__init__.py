"""Arbejdsret AI – HR compliance backend on top of Gemini."""

__version__ = "0.1.0"
