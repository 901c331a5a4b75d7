from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from fanout.app import apply_parent, describe_parent, parse_manifest, reconcile_parent
from fanout.config import configure_logging
from fanout.domain.model import ConditionType, ObjectReference

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from fanout.app import ParentDescription

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile parents and their children")
    subparsers = parser.add_subparsers(dest="command", required=True)

    apply = subparsers.add_parser("apply", help="Create a parent from a JSON manifest")
    apply.add_argument(
        "file",
        type=Path,
        help="Path to a JSON manifest with name, namespace and definition",
    )

    reconcile = subparsers.add_parser("reconcile", help="Run one reconciliation pass")
    reconcile.add_argument("parent", type=str, help="Parent reference as NAMESPACE/NAME")
    reconcile.add_argument(
        "--timeout",
        type=float,
        help="Abort the pass after this many seconds",
    )

    status = subparsers.add_parser("status", help="Show a parent and its children")
    status.add_argument("parent", type=str, help="Parent reference as NAMESPACE/NAME")

    return parser.parse_args(list(argv))


def _read_manifest(path: Path) -> dict[str, Any]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ValueError(f"Cannot read manifest {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Manifest {path} is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"Manifest {path} must contain a JSON object")
    return raw


def _format_description(description: ParentDescription) -> str:
    parent = description.parent
    lines = [
        f"{parent.reference}  definition={parent.spec.definition_ref}  "
        f"phase={parent.status.phase}",
    ]
    condition = parent.status.condition(ConditionType.ENSURE_CHILDREN)
    if condition is not None:
        lines.append(
            f"  {condition.type}={condition.status} reason={condition.reason or '-'} "
            f"message={condition.message or '-'}"
        )
    for tracked in parent.status.tracked_children:
        lines.append(f"  tracked {tracked.name} -> {tracked.reference}")
    for child in description.children:
        marker = " (deleting)" if child.metadata.pending_deletion else ""
        ref = child.spec.definition_ref if child.spec is not None else "-"
        lines.append(
            f"  child {child.reference} definition={ref} phase={child.status.phase}{marker}"
        )
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    manifest: dict[str, Any] | None = None
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "apply":
            manifest = _read_manifest(parsed_args.file)
            parse_manifest(manifest)
        else:
            ObjectReference.parse(parsed_args.parent)
            timeout = getattr(parsed_args, "timeout", None)
            if timeout is not None and timeout <= 0:
                raise ValueError("Timeout must be positive")  # noqa: TRY301
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "apply" and manifest is not None:
            apply_parent(manifest)
        elif parsed_args.command == "reconcile":
            outcome = reconcile_parent(parsed_args.parent, timeout=parsed_args.timeout)
            if outcome.blocked_by is not None:
                log.info("Waiting for %s to settle", outcome.blocked_by)
        elif parsed_args.command == "status":
            print(_format_description(describe_parent(parsed_args.parent)))  # noqa: T201
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
