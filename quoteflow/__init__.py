"""Quote generation, pricing and PDF pipeline."""

__version__ = "1.0.0"
