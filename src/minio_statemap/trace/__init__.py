"""Trace events and the readers that produce them."""
