"""Tests for the append-only pick ledger."""

import pytest
from unittest.mock import MagicMock
from sqlalchemy.exc import OperationalError

from settlement.exceptions import LedgerError
from settlement.models import LedgerEntry
from settlement.services.ledger import append_ledger_entry, generate_hash, verify_chain

from conftest import add_game, add_pick


def test_hash_is_canonical():
    assert generate_hash({"b": 1, "a": 2}) == generate_hash({"a": 2, "b": 1})
    assert len(generate_hash({"a": 1})) == 64


def test_append_builds_chain(db):
    add_game(db)
    pick = add_pick(db)

    first = append_ledger_entry(db, pick, "create")
    second = append_ledger_entry(db, pick, "grade")

    assert first.sequence == 1
    assert first.previous_hash is None
    assert second.sequence == 2
    assert second.previous_hash == first.hash
    assert second.data["action"] == "grade"


def test_append_is_idempotent_by_pick_and_action(db):
    add_game(db)
    pick = add_pick(db)

    first = append_ledger_entry(db, pick, "grade")
    again = append_ledger_entry(db, pick, "grade")

    assert again.id == first.id
    assert db.query(LedgerEntry).count() == 1


def test_verify_chain_valid(db):
    add_game(db)
    pick = add_pick(db)
    append_ledger_entry(db, pick, "create")
    append_ledger_entry(db, pick, "grade")

    report = verify_chain(db, pick.id)
    assert report["valid"] is True
    assert report["entry_count"] == 2


def test_verify_chain_detects_tampering(db):
    add_game(db)
    pick = add_pick(db)
    append_ledger_entry(db, pick, "create")
    entry = append_ledger_entry(db, pick, "grade")

    entry.data = {**entry.data, "result": "win"}
    db.commit()

    report = verify_chain(db, pick.id)
    assert report["valid"] is False
    assert "Hash mismatch at sequence 2" == report["reason"]


def test_verify_chain_empty(db):
    assert verify_chain(db, 999) == {"valid": False, "reason": "No entries found"}


def test_store_failure_raises_ledger_error():
    db = MagicMock()
    db.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))
    pick = MagicMock()
    pick.id = 7
    with pytest.raises(LedgerError):
        append_ledger_entry(db, pick, "grade")
    db.rollback.assert_called_once()
