"""Cross-linguistic analysis of F0 in polite vs. informal speech."""

__version__ = "0.1.0"
