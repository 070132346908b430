"""Read-through cache layer for the invoicing backend."""

__version__ = "1.0.0"
