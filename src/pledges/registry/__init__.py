"""Pledge registry — commitment lifecycle, priority and temporal bounds."""

from pledges.registry.engine import PledgeRegistry

__all__ = ["PledgeRegistry"]
