"""
Command-line shim over ``InventoryLedger``.

Usage:
    stock-ledger add-item SKU-001 "Widget" --initial-qty 100 --location WH1
    stock-ledger create pickup SKU-001 5 --from WH1
    stock-ledger issue-code <tx-id> alice
    stock-ledger confirm-code <tx-id> alice 042137
    stock-ledger complete <tx-id>
    stock-ledger snapshot --sku SKU-001

Every command prints one JSON document on stdout.  A ledger error prints
``{"error": <code>, "message": ...}`` on stderr and exits with status 1.
"""

import argparse
import dataclasses
import json
import sys
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from stock_ledger.config import load_config
from stock_ledger.domain.transaction import TransactionType
from stock_ledger.exceptions import StockLedgerError
from stock_ledger.ledger import InventoryLedger
from stock_ledger.logging_config import configure_logging


def _json_default(obj: Any) -> Any:
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _to_jsonable(result: Any) -> Any:
    if dataclasses.is_dataclass(result) and not isinstance(result, type):
        return dataclasses.asdict(result)
    if isinstance(result, tuple):
        return [_to_jsonable(r) for r in result]
    return result


def _emit(result: Any, stream=None) -> None:
    stream = stream or sys.stdout
    print(json.dumps(_to_jsonable(result), default=_json_default, indent=2), file=stream)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stock-ledger",
        description="Stock/inventory transaction ledger",
    )
    parser.add_argument("--config", default=None, help="YAML configuration file")
    parser.add_argument("--database-url", default=None, help="Override the database URL")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("add-item", help="Register a SKU")
    p.add_argument("sku")
    p.add_argument("name")
    p.add_argument("--uom", default="ea")
    p.add_argument("--initial-qty", type=int, default=0)
    p.add_argument("--location", default=None)

    p = sub.add_parser("create", help="Record a new OPEN transaction")
    p.add_argument("type", choices=[t.value for t in TransactionType])
    p.add_argument("sku")
    p.add_argument("qty", type=int)
    p.add_argument("--from", dest="from_location", default=None)
    p.add_argument("--to", dest="to_location", default=None)
    p.add_argument("--ref", default=None)

    for name, help_text in (
        ("in-transit", "Mark a transaction IN_TRANSIT"),
        ("complete", "Complete a transaction and apply it"),
        ("cancel", "Cancel a transaction"),
        ("show", "Show one transaction"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("transaction_id")

    p = sub.add_parser("issue-code", help="Issue a one-time pickup code")
    p.add_argument("transaction_id")
    p.add_argument("picker")

    p = sub.add_parser("confirm-code", help="Confirm a pickup with its code")
    p.add_argument("transaction_id")
    p.add_argument("picker")
    p.add_argument("code")

    p = sub.add_parser("confirm-signature", help="Confirm a pickup with a signature")
    p.add_argument("transaction_id")
    p.add_argument("picker")
    p.add_argument("signature_ref")

    p = sub.add_parser("snapshot", help="Stock per (sku, location)")
    p.add_argument("--sku", default=None)
    p.add_argument("--location", default=None)

    return parser


def run(ledger: InventoryLedger, args: argparse.Namespace) -> Any:
    """Dispatch one parsed command; returns the result to print."""
    command = args.command
    if command == "add-item":
        return ledger.add_item(
            args.sku, args.name,
            uom=args.uom, initial_qty=args.initial_qty, location=args.location,
        )
    if command == "create":
        return ledger.create(
            args.type, args.sku, args.qty,
            from_location=args.from_location,
            to_location=args.to_location,
            ref=args.ref,
        )
    if command == "in-transit":
        return ledger.mark_in_transit(args.transaction_id)
    if command == "complete":
        return ledger.complete(args.transaction_id)
    if command == "cancel":
        return ledger.cancel(args.transaction_id)
    if command == "show":
        return ledger.get(args.transaction_id)
    if command == "issue-code":
        return ledger.generate_code(args.transaction_id, args.picker)
    if command == "confirm-code":
        return ledger.confirm_by_code(args.transaction_id, args.picker, args.code)
    if command == "confirm-signature":
        return ledger.confirm_by_signature(args.transaction_id, args.picker, args.signature_ref)
    if command == "snapshot":
        if args.location:
            entries = ledger.location_snapshot(args.location)
            return tuple(e for e in entries if args.sku is None or e.sku == args.sku)
        return ledger.snapshot(args.sku)
    raise ValueError(f"Unknown command: {command}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    if args.database_url:
        config = dataclasses.replace(config, database_url=args.database_url)
    configure_logging(level=config.log_level)

    ledger = InventoryLedger.from_config(config)
    try:
        _emit(run(ledger, args))
    except StockLedgerError as exc:
        _emit({"error": exc.code, "message": str(exc)}, stream=sys.stderr)
        return 1
    finally:
        ledger.store.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
