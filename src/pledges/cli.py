"""Pledges CLI — command-line interface for the pledge registry.

Usage:
    python -m pledges.cli status
    python -m pledges.cli initialize --caller alice --text "finish report"
    python -m pledges.cli modify --caller alice --text "finish report v2" --fulfilled true
    python -m pledges.cli assign-priority --caller alice --level 2
    python -m pledges.cli set-deadline --caller alice --duration 100
    python -m pledges.cli set-alert --caller alice --on
    python -m pledges.cli delegate --caller alice --target bob --text "review draft"
    python -m pledges.cli verify --caller alice
    python -m pledges.cli show --id alice
    python -m pledges.cli terminate --caller alice
    python -m pledges.cli advance-height --blocks 10
    python -m pledges.cli check-invariants

Environment (also read from the .env file at the project root):
    PLEDGES_CONFIG_DIR   policy directory (default: config/)
    PLEDGES_DATA_DIR     state and event log directory (default: data/)
    PLEDGES_CALLER       default caller identity for --caller
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from pledges.persistence.event_log import EventLog
from pledges.persistence.state_store import StateStore
from pledges.policy.resolver import PolicyResolver
from pledges.service import PledgeService, ServiceResult


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = ROOT / "config"
DEFAULT_DATA = ROOT / "data"


def _make_service(config_dir: Path, data_dir: Path) -> PledgeService:
    """Create a PledgeService with durable persistence."""
    data_dir.mkdir(parents=True, exist_ok=True)
    resolver = PolicyResolver.from_config_dir(config_dir)
    event_log = EventLog(storage_path=data_dir / "events.jsonl")
    state_store = StateStore(storage_path=data_dir / "state.json")
    return PledgeService(resolver, event_log=event_log, state_store=state_store)


def _service(args: argparse.Namespace) -> PledgeService:
    return _make_service(args.config, args.data)


def _caller(args: argparse.Namespace) -> Optional[str]:
    return args.caller or os.getenv("PLEDGES_CALLER")


def _report(result: ServiceResult, message: str) -> int:
    if result.success:
        print(message)
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "yes", "1"):
        return True
    if lowered in ("false", "no", "0"):
        return False
    raise argparse.ArgumentTypeError(f"Expected true/false, got {value!r}")


def _require_caller(args: argparse.Namespace) -> Optional[str]:
    caller = _caller(args)
    if not caller:
        print("Failed: no caller identity (use --caller or PLEDGES_CALLER)", file=sys.stderr)
    return caller


def cmd_status(args: argparse.Namespace) -> int:
    service = _service(args)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_initialize(args: argparse.Namespace) -> int:
    caller = _require_caller(args)
    if not caller:
        return 1
    result = _service(args).initialize(caller, args.text)
    return _report(result, f"Pledge created for {caller}")


def cmd_modify(args: argparse.Namespace) -> int:
    caller = _require_caller(args)
    if not caller:
        return 1
    result = _service(args).modify(caller, args.text, args.fulfilled)
    return _report(result, f"Pledge updated for {caller} (fulfilled: {args.fulfilled})")


def cmd_assign_priority(args: argparse.Namespace) -> int:
    caller = _require_caller(args)
    if not caller:
        return 1
    result = _service(args).assign_priority(caller, args.level)
    return _report(result, f"Priority {args.level} assigned to {caller}")


def cmd_set_deadline(args: argparse.Namespace) -> int:
    caller = _require_caller(args)
    if not caller:
        return 1
    result = _service(args).set_temporal_boundary(caller, args.duration)
    if result.success:
        return _report(result, f"Deadline for {caller}: height {result.data['deadline_height']}")
    return _report(result, "")


def cmd_set_alert(args: argparse.Namespace) -> int:
    caller = _require_caller(args)
    if not caller:
        return 1
    result = _service(args).set_alert(caller, args.active)
    state = "on" if args.active else "off"
    return _report(result, f"Alert {state} for {caller}")


def cmd_delegate(args: argparse.Namespace) -> int:
    caller = _require_caller(args)
    if not caller:
        return 1
    result = _service(args).delegate(caller, args.target, args.text)
    return _report(result, f"Pledge created for {args.target} by {caller}")


def cmd_verify(args: argparse.Namespace) -> int:
    caller = _require_caller(args)
    if not caller:
        return 1
    result = _service(args).verify(caller)
    print(json.dumps(result.data, indent=2))
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    service = _service(args)
    print(json.dumps(service.describe(args.id), indent=2))
    return 0


def cmd_terminate(args: argparse.Namespace) -> int:
    caller = _require_caller(args)
    if not caller:
        return 1
    result = _service(args).terminate(caller)
    return _report(result, f"Pledge terminated for {caller}")


def cmd_advance_height(args: argparse.Namespace) -> int:
    result = _service(args).advance_height(args.blocks)
    if result.success:
        return _report(result, f"Height: {result.data['height']}")
    return _report(result, "")


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Run policy and stored-state invariant checks."""
    tools_dir = ROOT / "tools"
    sys.path.insert(0, str(tools_dir))
    from check_invariants import check
    return check(config_dir=args.config, data_dir=args.data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pledges",
        description="Pledge registry CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config directory (default: $PLEDGES_CONFIG_DIR or config/)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=None,
        help="Path to data directory (default: $PLEDGES_DATA_DIR or data/)",
    )
    sub = parser.add_subparsers(dest="command")

    def with_caller(p: argparse.ArgumentParser) -> argparse.ArgumentParser:
        p.add_argument("--caller", help="Caller identity (default: $PLEDGES_CALLER)")
        return p

    # status
    sub.add_parser("status", help="Show registry status")

    # initialize
    p_init = with_caller(sub.add_parser("initialize", help="Create your pledge"))
    p_init.add_argument("--text", required=True, help="Commitment text")

    # modify
    p_mod = with_caller(sub.add_parser("modify", help="Update your pledge"))
    p_mod.add_argument("--text", required=True, help="Commitment text")
    p_mod.add_argument(
        "--fulfilled", required=True, type=_parse_bool,
        help="Fulfillment flag (true/false)",
    )

    # assign-priority
    p_pri = with_caller(sub.add_parser("assign-priority", help="Set pledge priority"))
    p_pri.add_argument("--level", required=True, type=int, help="Priority level")

    # set-deadline
    p_dl = with_caller(sub.add_parser("set-deadline", help="Set a deadline relative to current height"))
    p_dl.add_argument("--duration", required=True, type=int, help="Blocks until deadline")

    # set-alert
    p_alert = with_caller(sub.add_parser("set-alert", help="Toggle the deadline alert flag"))
    toggle = p_alert.add_mutually_exclusive_group(required=True)
    toggle.add_argument("--on", dest="active", action="store_true")
    toggle.add_argument("--off", dest="active", action="store_false")

    # delegate
    p_del = with_caller(sub.add_parser("delegate", help="Create a pledge for another identity"))
    p_del.add_argument("--target", required=True, help="Identity to pledge for")
    p_del.add_argument("--text", required=True, help="Commitment text")

    # verify
    with_caller(sub.add_parser("verify", help="Show your pledge projection"))

    # show
    p_show = sub.add_parser("show", help="Show everything stored for an identity")
    p_show.add_argument("--id", required=True, help="Identity")

    # terminate
    with_caller(sub.add_parser("terminate", help="Remove your pledge"))

    # advance-height
    p_adv = sub.add_parser("advance-height", help="Advance the height clock")
    p_adv.add_argument("--blocks", type=int, default=1, help="Blocks to advance (default: 1)")

    # check-invariants
    sub.add_parser("check-invariants", help="Run policy and state invariant checks")

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv(ROOT / ".env")
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.config is None:
        args.config = Path(os.getenv("PLEDGES_CONFIG_DIR") or DEFAULT_CONFIG)
    if args.data is None:
        args.data = Path(os.getenv("PLEDGES_DATA_DIR") or DEFAULT_DATA)

    commands = {
        "status": cmd_status,
        "initialize": cmd_initialize,
        "modify": cmd_modify,
        "assign-priority": cmd_assign_priority,
        "set-deadline": cmd_set_deadline,
        "set-alert": cmd_set_alert,
        "delegate": cmd_delegate,
        "verify": cmd_verify,
        "show": cmd_show,
        "terminate": cmd_terminate,
        "advance-height": cmd_advance_height,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
