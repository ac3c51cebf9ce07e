"""Convert MinIO trace output into statemap input."""

__version__ = "0.1.0"
