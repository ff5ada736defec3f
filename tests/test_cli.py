"""Tests for the ``stock-ledger`` command line (stock_ledger/cli.py)."""

import json
import os

import pytest

from stock_ledger.cli import build_parser, main


@pytest.fixture
def db_args(tmp_path, monkeypatch):
    for name in list(os.environ):
        if name.startswith("STOCK_LEDGER_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return ["--database-url", f"sqlite:///{tmp_path / 'cli.db'}"]


def _run(capsys, argv) -> tuple[int, dict | list]:
    code = main(argv)
    out, err = capsys.readouterr()
    return code, json.loads(out if code == 0 else err)


class TestParser:

    def test_create_flags(self):
        args = build_parser().parse_args(
            ["create", "transfer", "SKU-1", "4", "--from", "WH1", "--to", "WH2"]
        )
        assert (args.type, args.sku, args.qty) == ("transfer", "SKU-1", 4)
        assert (args.from_location, args.to_location) == ("WH1", "WH2")

    def test_unknown_type_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["create", "teleport", "SKU-1", "4"])


class TestCommands:

    def test_pickup_round_trip(self, db_args, capsys, tmp_path):
        sig = tmp_path / "signatures" / "alice.png"
        sig.parent.mkdir()
        sig.write_bytes(b"signature")

        code, item = _run(capsys, db_args + [
            "add-item", "SKU-001", "Widget", "--initial-qty", "100", "--location", "WH1",
        ])
        assert code == 0
        assert item["sku"] == "SKU-001"

        code, tx = _run(capsys, db_args + ["create", "pickup", "SKU-001", "5", "--from", "WH1"])
        assert tx["status"] == "open"

        code, err = _run(capsys, db_args + ["complete", tx["id"]])
        assert code == 1
        assert err["error"] == "CONFIRMATION_REQUIRED"

        code, conf = _run(capsys, db_args + ["confirm-signature", tx["id"], "alice", "alice.png"])
        assert code == 0
        assert conf["confirmed"] is True
        assert conf["method"] == "signature"

        code, done = _run(capsys, db_args + ["complete", tx["id"]])
        assert done["status"] == "completed"

        code, snap = _run(capsys, db_args + ["snapshot", "--sku", "SKU-001"])
        assert snap == [{"sku": "SKU-001", "location": "WH1", "quantity": 95}]

    def test_code_flow(self, db_args, capsys):
        _run(capsys, db_args + ["add-item", "SKU-001", "Widget", "--initial-qty", "10", "--location", "WH1"])
        _, tx = _run(capsys, db_args + ["create", "pickup", "SKU-001", "1", "--from", "WH1"])

        code, issued = _run(capsys, db_args + ["issue-code", tx["id"], "bob"])
        assert code == 0
        assert len(issued["code"]) == 6

        code, err = _run(capsys, db_args + ["confirm-code", tx["id"], "bob", "not-it"])
        assert code == 1
        assert err["error"] == "CODE_MISMATCH"

        code, conf = _run(capsys, db_args + ["confirm-code", tx["id"], "bob", issued["code"]])
        assert code == 0
        assert conf["confirmed"] is True

    def test_show_and_cancel(self, db_args, capsys):
        _run(capsys, db_args + ["add-item", "SKU-001", "Widget"])
        _, tx = _run(capsys, db_args + ["create", "delivery", "SKU-001", "3", "--to", "WH1"])
        _, moving = _run(capsys, db_args + ["in-transit", tx["id"]])
        assert moving["status"] == "in_transit"
        _, cancelled = _run(capsys, db_args + ["cancel", tx["id"]])
        assert cancelled["status"] == "cancelled"
        _, shown = _run(capsys, db_args + ["show", tx["id"]])
        assert shown["status"] == "cancelled"
        assert shown["applied"] is False

    def test_location_snapshot(self, db_args, capsys):
        _run(capsys, db_args + ["add-item", "SKU-001", "Widget", "--initial-qty", "4", "--location", "WH1"])
        code, snap = _run(capsys, db_args + ["snapshot", "--location", "WH1"])
        assert snap == [{"sku": "SKU-001", "location": "WH1", "quantity": 4}]
        code, err = _run(capsys, db_args + ["snapshot", "--location", "WH9"])
        assert code == 1
        assert err["error"] == "LOCATION_NOT_FOUND"

    def test_unknown_transaction(self, db_args, capsys):
        code, err = _run(capsys, db_args + ["show", "00000000-0000-0000-0000-000000000000"])
        assert code == 1
        assert err["error"] == "TRANSACTION_NOT_FOUND"
