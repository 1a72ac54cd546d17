"""Pledge policy — typed access to config/pledge_policy.json."""

from pledges.policy.resolver import PledgePolicy, PolicyResolver

__all__ = ["PledgePolicy", "PolicyResolver"]
