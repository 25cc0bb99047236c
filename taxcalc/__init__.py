"""Progressive bracket tax calculator."""

__version__ = "1.0.0"
