"""Voice order relay and point-of-sale cart."""

__version__ = "1.0.0"
