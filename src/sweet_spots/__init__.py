"""Sweet-spot prop screening pipeline."""

__version__ = "0.1.0"
