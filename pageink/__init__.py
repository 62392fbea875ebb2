"""PageInk - page annotation and coordinate-transform engine for PDF tools."""

__version__ = "1.0.0"
