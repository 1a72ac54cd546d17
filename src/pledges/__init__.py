"""Pledge registry — per-participant commitments with priority and deadlines."""

__version__ = "0.1.0"
