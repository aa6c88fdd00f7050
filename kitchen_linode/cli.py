"""kitchen-linode CLI — create or destroy one instance from the command line.

The state file plays the orchestrator's part: it is read before the
action and written back afterwards, even when the action fails, so a
re-run picks up where the last one stopped.

Usage examples::

    kitchen-linode create --state .kitchen/default.json --instance-name default-ubuntu \
        --platform linode/ubuntu22.04 --config '{"region": "us-east"}'
    kitchen-linode destroy --state .kitchen/default.json --instance-name default-ubuntu
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ``kitchen-linode`` CLI.

    Returns:
        Configured :class:`~argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(
        prog="kitchen-linode",
        description="Provision and tear down a Linode for a test run",
    )
    parser.add_argument(
        "action",
        choices=["create", "destroy"],
        help="Lifecycle action",
    )
    parser.add_argument(
        "--state",
        required=True,
        help="JSON file holding the instance state (created if missing)",
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default="{}",
        help='JSON driver options (e.g. \'{"region":"us-east"}\')',
    )
    parser.add_argument(
        "--instance-name", "-n",
        default="default",
        help="Orchestrator instance name",
    )
    parser.add_argument(
        "--platform", "-p",
        default="",
        help="Platform name, used as the image when none is configured",
    )
    parser.add_argument(
        "--no-bootstrap",
        action="store_true",
        help="Skip SSH bootstrap (non-POSIX platforms)",
    )
    return parser


def _load_state(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    return json.loads(path.read_text() or "{}")  # type: ignore[no-any-return]


def _save_state(path: Path, state: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(state, indent=2, sort_keys=True))


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Args:
        argv: Optional argument list (defaults to ``sys.argv``).
    """
    parser = _build_parser()
    ns = parser.parse_args(argv)

    try:
        config: dict[str, Any] = json.loads(ns.config)
    except json.JSONDecodeError as e:
        print(f"Invalid --config JSON: {e}", file=sys.stderr)
        sys.exit(1)

    state_path = Path(ns.state)
    try:
        state = _load_state(state_path)
    except json.JSONDecodeError as e:
        print(f"Invalid state file {state_path}: {e}", file=sys.stderr)
        sys.exit(1)

    # Lazy-import so --help works without paramiko / pydantic loaded
    from pydantic import ValidationError

    from kitchen_linode.base.exceptions import ActionFailed
    from kitchen_linode.factory import build_controller

    try:
        controller = build_controller(
            config,
            ns.instance_name,
            ns.platform,
            posix_shell=not ns.no_bootstrap,
        )
    except ValidationError as e:
        print(f"Invalid config: {e}", file=sys.stderr)
        sys.exit(1)

    action = controller.create if ns.action == "create" else controller.destroy
    try:
        action(state)
    except ActionFailed as e:
        print(f"{ns.action} failed: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        _save_state(state_path, state)

    print("OK")


if __name__ == "__main__":
    main()
