#!/usr/bin/env python3
"""Pledge registry invariant checks against the policy file and stored state."""

import json
import sys
from pathlib import Path
from typing import Optional


ROOT = Path(__file__).resolve().parents[1]
CONFIG_DIR = ROOT / "config"
DATA_DIR = ROOT / "data"


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def section(document: dict, name: str, errors: Optional[list[str]] = None) -> dict:
    """Return a config/state section, or {} (recording an error) if not a dict."""
    value = document.get(name) if isinstance(document, dict) else None
    if isinstance(value, dict):
        return value
    if errors is not None:
        errors.append(f"{name} must be an object, got {value!r}")
    return {}


def check_policy(policy: dict, errors: list[str]) -> None:
    """Validate the structural rules of pledge_policy.json."""
    if not isinstance(policy, dict):
        errors.append(f"pledge_policy.json must be an object, got {policy!r}")
        return
    if "version" not in policy:
        errors.append("pledge_policy.json missing version")

    max_len = section(policy, "commitment", errors).get("max_text_length")
    if not isinstance(max_len, int) or isinstance(max_len, bool) or max_len <= 0:
        errors.append(f"commitment.max_text_length must be a positive int, got {max_len!r}")

    levels = section(policy, "priority", errors).get("levels")
    if not isinstance(levels, list) or not levels:
        errors.append(f"priority.levels must be a non-empty list, got {levels!r}")
    elif any(not isinstance(lv, int) or isinstance(lv, bool) for lv in levels):
        errors.append("priority.levels must contain only ints")
    elif sorted(levels) != list(range(1, len(levels) + 1)):
        errors.append(f"priority.levels must be 1..N without gaps, got {levels}")

    for name, key in (("delegation", "open"), ("termination", "cascade")):
        value = section(policy, name, errors).get(key)
        if not isinstance(value, bool):
            errors.append(f"{name}.{key} must be a boolean, got {value!r}")


def check_state(state: dict, policy: dict, errors: list[str]) -> None:
    """Validate stored pledge records against the policy.

    Policy structure errors are reported by check_policy; here a malformed
    policy section just falls back to an empty one.
    """
    if not isinstance(state, dict):
        errors.append(f"state.json must be an object, got {state!r}")
        return
    max_len = section(policy, "commitment").get("max_text_length", 0)
    raw_levels = section(policy, "priority").get("levels", [])
    levels = set(raw_levels) if isinstance(raw_levels, list) else set()
    cascade = section(policy, "termination").get("cascade", False)
    height = state.get("height", 0)

    if not isinstance(height, int) or isinstance(height, bool) or height < 0:
        errors.append(f"height must be a non-negative int, got {height!r}")

    pledges = state.get("pledges", [])
    if not isinstance(pledges, list):
        errors.append(f"pledges must be a list, got {pledges!r}")
        return

    seen: set[str] = set()
    for entry in pledges:
        if not isinstance(entry, dict):
            errors.append(f"pledge entry must be an object, got {entry!r}")
            continue
        owner = entry.get("owner")
        if owner in seen:
            errors.append(f"duplicate pledge owner: {owner}")
        seen.add(owner)

        commitment = entry.get("commitment")
        priority = entry.get("priority")
        bound = entry.get("temporal_bound")

        if commitment is None and priority is None and bound is None:
            errors.append(f"{owner}: empty record must not be stored")
        if commitment is not None:
            if not isinstance(commitment, dict):
                errors.append(f"{owner}: commitment must be an object")
            else:
                text = commitment.get("text")
                if not isinstance(text, str) or not text:
                    errors.append(f"{owner}: commitment text must be non-empty")
                elif isinstance(max_len, int) and len(text) > max_len:
                    errors.append(f"{owner}: commitment text exceeds {max_len} characters")
                if not isinstance(commitment.get("fulfilled"), bool):
                    errors.append(f"{owner}: fulfilled must be a boolean")
        elif cascade is True and (priority is not None or bound is not None):
            errors.append(f"{owner}: orphaned fields present with cascading termination")
        if priority is not None and (
            not isinstance(priority, int) or isinstance(priority, bool) or priority not in levels
        ):
            errors.append(f"{owner}: priority {priority} not in {sorted(levels)}")
        if bound is not None:
            if not isinstance(bound, dict):
                errors.append(f"{owner}: temporal_bound must be an object")
                continue
            deadline = bound.get("deadline_height")
            if not isinstance(deadline, int) or isinstance(deadline, bool) or deadline < 1:
                errors.append(f"{owner}: deadline_height must be >= 1, got {deadline!r}")
            if not isinstance(bound.get("alert_activated"), bool):
                errors.append(f"{owner}: alert_activated must be a boolean")


def check(config_dir: Optional[Path] = None, data_dir: Optional[Path] = None) -> int:
    config_dir = config_dir or CONFIG_DIR
    data_dir = data_dir or DATA_DIR
    policy = load_json(config_dir / "pledge_policy.json")
    errors: list[str] = []

    check_policy(policy, errors)

    state_path = data_dir / "state.json"
    if state_path.exists():
        check_state(load_json(state_path), policy, errors)

    if errors:
        print("Invariant check failed:")
        for err in errors:
            print(f"- {err}")
        return 1

    print("Invariant check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(check())
