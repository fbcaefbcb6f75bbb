"""GameStream host pairing."""

__version__ = "0.1.0"
