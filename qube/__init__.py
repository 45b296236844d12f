"""Terminal front-end for interactive Amazon Q sessions."""

__version__ = "0.1.0"
