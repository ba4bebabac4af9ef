"""Voice interview recorder: capture spoken answers, upload them, browse recordings."""

__version__ = "0.1.0"
