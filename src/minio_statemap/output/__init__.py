"""Output assemblers."""
