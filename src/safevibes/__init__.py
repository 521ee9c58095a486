"""Repository security hygiene scanner."""

__version__ = "0.1.0"
