"""Status-driven notification pipeline for fire-protection project workflows."""

__version__ = "0.1.0"
