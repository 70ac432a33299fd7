"""
Append-only pick ledger.

Each entry stores a canonical JSON snapshot of a pick, its SHA-256 hash,
and the hash of the previous entry for the same pick, forming a per-pick
chain that verify_chain() can re-check.

Appends are idempotent by (pick_id, action): a retried append returns the
existing entry instead of writing a duplicate row.  Callers pass their own
session so the append never shares a transaction with the pick update.
"""

import hashlib
import json
import logging
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from settlement.exceptions import LedgerError
from settlement.models import LedgerEntry, Pick

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def build_snapshot(pick: Pick, action: str, now: Optional[datetime] = None) -> Dict:
    """JSON-safe snapshot of the fields a ledger entry commits to."""
    now = now or datetime.utcnow()
    return {
        "pick_id": pick.id,
        "creator_id": pick.creator_id,
        "sport": pick.sport,
        "game_id": pick.game_id,
        "selection": pick.selection,
        "bet_type": pick.bet_type,
        "is_parlay": bool(pick.is_parlay),
        "odds_american": pick.odds_american,
        "odds_decimal": pick.odds_decimal,
        "units_risked": pick.units_risked,
        "amount_risked": pick.amount_risked,
        "unit_value_at_post": pick.unit_value_at_post,
        "game_start_time": _iso(pick.game_start_time),
        "created_at": _iso(pick.created_at),
        "status": pick.status,
        "result": pick.result,
        "profit_units": pick.profit_units,
        "profit_amount": pick.profit_amount,
        "clv_score": pick.clv_score,
        "is_verified": bool(pick.is_verified),
        "action": action,
        "timestamp": now.isoformat(),
    }


def generate_hash(data: Dict) -> str:
    """SHA-256 of the canonical (sorted keys, no whitespace) JSON encoding."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _existing_entry(db: Session, pick_id: int, action: str) -> Optional[LedgerEntry]:
    return (
        db.query(LedgerEntry)
        .filter(LedgerEntry.pick_id == pick_id, LedgerEntry.action == action)
        .first()
    )


def append_ledger_entry(db: Session, pick: Pick, action: str = "create") -> LedgerEntry:
    """
    Append a ledger entry for ``pick`` and commit it.

    Returns the existing entry when one is already recorded for
    (pick.id, action).  Raises LedgerError on any store failure.
    """
    try:
        existing = _existing_entry(db, pick.id, action)
        if existing is not None:
            logger.debug("Ledger entry for pick %s/%s already present", pick.id, action)
            return existing

        previous = (
            db.query(LedgerEntry)
            .filter(LedgerEntry.pick_id == pick.id)
            .order_by(LedgerEntry.sequence.desc())
            .first()
        )

        now = datetime.utcnow()
        snapshot = build_snapshot(pick, action, now)
        entry = LedgerEntry(
            resource_type="Pick",
            pick_id=pick.id,
            action=action,
            hash=generate_hash(snapshot),
            previous_hash=previous.hash if previous else None,
            sequence=previous.sequence + 1 if previous else 1,
            data=snapshot,
            timestamp=now,
            creator_id=pick.creator_id,
        )
        db.add(entry)
        db.commit()
    except IntegrityError as exc:
        # A concurrent append for the same (pick, action) won the race
        db.rollback()
        existing = _existing_entry(db, pick.id, action)
        if existing is not None:
            return existing
        raise LedgerError(f"Ledger append failed for pick {pick.id}: {exc}") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise LedgerError(f"Ledger append failed for pick {pick.id}: {exc}") from exc

    logger.info("Ledger: pick %s %s (seq %d)", pick.id, action, entry.sequence)
    return entry


def verify_chain(db: Session, pick_id: int) -> Dict:
    """Recompute every hash and link in a pick's chain."""
    entries = (
        db.query(LedgerEntry)
        .filter(LedgerEntry.pick_id == pick_id)
        .order_by(LedgerEntry.sequence.asc())
        .all()
    )
    if not entries:
        return {"valid": False, "reason": "No entries found"}

    for i, entry in enumerate(entries):
        if generate_hash(entry.data) != entry.hash:
            return {
                "valid": False,
                "reason": f"Hash mismatch at sequence {entry.sequence}",
                "entry": entry.id,
            }
        if i > 0 and entry.previous_hash != entries[i - 1].hash:
            return {
                "valid": False,
                "reason": f"Previous hash mismatch at sequence {entry.sequence}",
                "entry": entry.id,
            }

    return {
        "valid": True,
        "entry_count": len(entries),
        "first_entry": entries[0].id,
        "last_entry": entries[-1].id,
    }
