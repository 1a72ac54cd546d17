"""Policy resolver — loads pledge_policy.json and exposes the registry
rules as a typed, immutable policy object.

No magic. No defaults. If a value is missing from the config, it fails loud.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any


POLICY_FILENAME = "pledge_policy.json"


@dataclass(frozen=True)
class PledgePolicy:
    """Resolved registry policy."""
    max_text_length: int
    priority_levels: frozenset[int]
    open_delegation: bool
    cascade_on_terminate: bool


class PolicyResolver:
    """Loads and resolves pledge policy.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        policy = resolver.pledge_policy()
    """

    def __init__(self, policy: dict[str, Any]) -> None:
        self._policy = policy
        self._validate_version()
        self._resolved = self._resolve()

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load from the canonical config directory."""
        return cls(_load_json(config_dir / POLICY_FILENAME))

    def _validate_version(self) -> None:
        if "version" not in self._policy:
            raise ValueError(f"{POLICY_FILENAME} missing version")

    def _resolve(self) -> PledgePolicy:
        max_len = self._require("commitment", "max_text_length")
        if not isinstance(max_len, int) or isinstance(max_len, bool) or max_len <= 0:
            raise ValueError(f"commitment.max_text_length must be a positive int, got {max_len!r}")

        levels = self._require("priority", "levels")
        if not isinstance(levels, list) or not levels:
            raise ValueError(f"priority.levels must be a non-empty list, got {levels!r}")
        for level in levels:
            if not isinstance(level, int) or isinstance(level, bool):
                raise ValueError(f"priority.levels must be ints, got {level!r}")
        if sorted(levels) != list(range(1, len(levels) + 1)):
            raise ValueError(f"priority.levels must be 1..N without gaps, got {levels}")

        open_delegation = self._require("delegation", "open")
        cascade = self._require("termination", "cascade")
        for name, value in (("delegation.open", open_delegation), ("termination.cascade", cascade)):
            if not isinstance(value, bool):
                raise ValueError(f"{name} must be a boolean, got {value!r}")

        return PledgePolicy(
            max_text_length=max_len,
            priority_levels=frozenset(levels),
            open_delegation=open_delegation,
            cascade_on_terminate=cascade,
        )

    def _require(self, section: str, key: str) -> Any:
        block = self._policy.get(section)
        if not isinstance(block, dict) or key not in block:
            raise ValueError(f"{POLICY_FILENAME} missing {section}.{key}")
        return block[key]

    @property
    def version(self) -> str:
        return str(self._policy["version"])

    def pledge_policy(self) -> PledgePolicy:
        """Get the full registry policy."""
        return self._resolved


def _load_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)
