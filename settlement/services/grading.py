"""
Automated pick grading.

Scheduled jobs:
  run_grading_job()     - every 10 minutes: grade picks on finished games
  lock_started_picks()  - every 5 minutes: pending → locked once a game starts

Per pick:
  result determiner [→ parlay resolver] → profit → CLV
  → conditional write (pending/locked → graded) → ledger append

The graded transition is a single conditional UPDATE, so overlapping runs
grade each pick at most once: the losing run sees zero rows updated.  The
ledger append happens afterwards in its own session and never rolls back
a grading.
"""

import logging
import os
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from settlement.core.odds_math import american_to_decimal, is_valid_american_odds
from settlement.exceptions import GradingError, MissingMarketDataError, PersistenceError
from settlement.models import (
    GRADABLE_STATUSES,
    DataFetch,
    Game,
    ParlayLeg,
    Pick,
    SessionLocal,
)
from settlement.services.clv import calculate_clv, clv_grade
from settlement.services.ledger import append_ledger_entry
from settlement.services.parlay import calculate_parlay_odds, calculate_parlay_result
from settlement.services.profit import calculate_profit
from settlement.services.result_determiner import ResultDecision, determine_pick_result
from settlement.services.sports_api import SportsAPIClient, get_sports_api

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_HOURS = float(os.getenv("GRADING_LOOKBACK_HOURS", "24"))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _record_fetch(db: Session, source: str, success: bool, records: int = 0, error: str = None) -> None:
    try:
        db.add(DataFetch(
            data_source=source,
            success=success,
            records_fetched=records,
            error_message=error[:500] if error else None,
        ))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Could not record %s fetch: %s", source, exc)


def _pick_decimal_odds(pick: Pick) -> Optional[float]:
    if pick.odds_decimal:
        return float(pick.odds_decimal)
    if is_valid_american_odds(pick.odds_american):
        return american_to_decimal(pick.odds_american)
    return None


def _is_verified(pick: Pick, game: Game) -> bool:
    """Posted strictly before the scheduled start."""
    start = game.start_time or pick.game_start_time
    return bool(pick.created_at and start and pick.created_at < start)


def _verification_evidence(game: Game, now: datetime) -> Dict:
    return {
        "provider": game.provider,
        "game_id": game.game_id,
        "final_score": {"home": game.home_score, "away": game.away_score},
        "graded_at": now.isoformat(),
        "raw_game_data": game.raw_provider_data,
    }


def _job_summary() -> Dict:
    return {
        "games_processed": 0,
        "picks_graded": 0,
        "wins": 0,
        "losses": 0,
        "pushes": 0,
        "voids": 0,
        "deferred": 0,
        "skipped": 0,
        "errors": 0,
        "error_details": [],
        "timestamp": datetime.utcnow().isoformat(),
    }


def _tally(summary: Dict, record: Dict) -> None:
    if "error" in record:
        summary["errors"] += 1
        summary["error_details"].append(f"Pick {record['pick_id']}: {record['error']}")
    elif record.get("deferred"):
        summary["deferred"] += 1
    elif record.get("skipped"):
        summary["skipped"] += 1
    else:
        summary["picks_graded"] += 1
        bucket = {"win": "wins", "loss": "losses", "push": "pushes", "void": "voids"}
        summary[bucket[record["result"]]] += 1


# ---------------------------------------------------------------------------
# Single pick
# ---------------------------------------------------------------------------

def _grade_parlay_legs(db: Session, pick: Pick, game: Game) -> List[ResultDecision]:
    """Grade each leg against its own game; legs on unfinished games stay pending."""
    decisions: List[ResultDecision] = []
    for leg in pick.parlay_legs:
        leg_game_id = leg.game_id or pick.game_id
        if leg_game_id == game.game_id:
            leg_game = game
        else:
            leg_game = db.query(Game).filter(Game.game_id == leg_game_id).first()

        if leg_game is None or leg_game.status != "final":
            decisions.append(ResultDecision("pending", f"Game {leg_game_id} not final"))
        else:
            decisions.append(determine_pick_result(leg.bet_type, leg.selection, leg_game))
    return decisions


def grade_pick(
    db: Session,
    pick: Pick,
    game: Game,
    closing_lines: Optional[Dict],
    session_factory: Callable[[], Session] = SessionLocal,
    now: Optional[datetime] = None,
) -> Dict:
    """
    Grade one pick and persist it with a conditional update.

    ``game`` is the finished game being processed.  For a parlay it may be
    the game of one of its legs rather than the pick's own game.

    Returns a result record.  ``deferred`` marks a parlay still waiting on
    another game; ``skipped`` marks a pick another run graded first.

    Raises InvalidLegError for bad parlay odds, PersistenceError when the
    write fails, GradingError when a winning pick has no usable odds.
    """
    now = now or datetime.utcnow()
    own_game = game if pick.game_id == game.game_id else (pick.game or game)
    legs = list(pick.parlay_legs) if pick.is_parlay else []
    leg_decisions: List[ResultDecision] = []

    if pick.is_parlay:
        parlay_odds = calculate_parlay_odds(legs)
        leg_decisions = _grade_parlay_legs(db, pick, game)
        result = calculate_parlay_result([d.result for d in leg_decisions])
        reason = "; ".join(f"{leg.selection}: {d.result}" for leg, d in zip(legs, leg_decisions))
        odds_decimal = parlay_odds.odds_decimal

        if result == "pending":
            logger.info("Parlay pick %s deferred: %s", pick.id, reason)
            return {"pick_id": pick.id, "deferred": True, "reason": reason}
        clv_score = None
    else:
        decision = determine_pick_result(pick.bet_type, pick.selection, game)
        result, reason = decision.result, decision.reason
        odds_decimal = _pick_decimal_odds(pick)
        clv_score = calculate_clv(pick.bet_type, pick.selection, odds_decimal, closing_lines)

    if result == "win" and odds_decimal is None:
        raise GradingError(f"Pick {pick.id} has no usable odds (american={pick.odds_american!r})")

    profit = calculate_profit(result, pick.units_risked, pick.amount_risked, odds_decimal)

    values = {
        "status": "graded",
        "result": result,
        "profit_units": profit.profit_units,
        "profit_amount": profit.profit_amount,
        "resolved_at": now,
        "updated_at": now,
        "clv_score": clv_score,
    }
    if closing_lines and own_game is game:
        values["closing_odds"] = closing_lines
    if pick.is_parlay and not pick.odds_decimal:
        values["odds_decimal"] = parlay_odds.odds_decimal
        values["odds_american"] = parlay_odds.odds_american

    verified = _is_verified(pick, own_game)
    if verified:
        values["is_verified"] = True
        values["verification_source"] = "api"
        values["verification_evidence"] = _verification_evidence(own_game, now)

    pick_id = pick.id
    try:
        stmt = (
            update(Pick)
            .where(Pick.id == pick_id, Pick.status.in_(GRADABLE_STATUSES))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if db.execute(stmt).rowcount == 0:
            db.rollback()
            logger.warning("Pick %s already graded by another run; skipping", pick_id)
            return {"pick_id": pick_id, "skipped": True}

        for leg, decision in zip(legs, leg_decisions):
            db.execute(
                update(ParlayLeg)
                .where(ParlayLeg.id == leg.id)
                .values(result=decision.result)
                .execution_options(synchronize_session=False)
            )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError(f"Could not persist pick {pick_id}: {exc}") from exc

    _append_grade_ledger(session_factory, pick_id)

    record = {
        "pick_id": pick_id,
        "result": result,
        "reason": reason,
        "profit_units": profit.profit_units,
        "profit_amount": profit.profit_amount,
        "clv_score": clv_score,
        "clv_grade": clv_grade(clv_score),
        "is_verified": verified or bool(pick.is_verified),
        "is_parlay": bool(pick.is_parlay),
    }
    if pick.is_parlay:
        record["parlay_legs"] = [
            {"selection": leg.selection, "result": d.result}
            for leg, d in zip(legs, leg_decisions)
        ]
    return record


def _append_grade_ledger(session_factory: Callable[[], Session], pick_id: int) -> None:
    """Best-effort; a failure is logged and the pick stays graded."""
    ledger_db = session_factory()
    try:
        graded = ledger_db.get(Pick, pick_id)
        append_ledger_entry(ledger_db, graded, "grade")
    except Exception as exc:
        logger.warning("Ledger entry for pick %s failed (non-critical): %s", pick_id, exc)
    finally:
        ledger_db.close()


# ---------------------------------------------------------------------------
# Single game
# ---------------------------------------------------------------------------

def _refresh_closing_lines(db: Session, api: SportsAPIClient, game: Game) -> Optional[Dict]:
    """Fetch closing lines and cache them on the game; fall back to the cache."""
    try:
        lines = api.get_closing_lines(game.game_id)
    except MissingMarketDataError as exc:
        logger.info("No closing lines for %s: %s", game.game_id, exc)
        return game.closing_lines
    except Exception as exc:
        logger.warning("Could not fetch closing lines for %s: %s", game.game_id, exc)
        _record_fetch(db, "closing_lines", False, error=str(exc))
        return game.closing_lines

    _record_fetch(db, "closing_lines", True, records=1 if lines else 0)
    if not lines:
        return game.closing_lines

    try:
        game.closing_lines = lines
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Could not cache closing lines for %s: %s", game.game_id, exc)
    return lines


def _grade_game(
    db: Session,
    game: Game,
    api: SportsAPIClient,
    session_factory: Callable[[], Session],
    now: datetime,
) -> List[Dict]:
    # Parlays also settle through the games of their legs
    leg_pick_ids = select(ParlayLeg.pick_id).where(ParlayLeg.game_id == game.game_id)
    picks = (
        db.query(Pick)
        .filter(
            or_(Pick.game_id == game.game_id, Pick.id.in_(leg_pick_ids)),
            Pick.status.in_(GRADABLE_STATUSES),
        )
        .all()
    )
    if not picks:
        logger.info("No picks to grade for game %s", game.game_id)
        return []

    closing_lines = _refresh_closing_lines(db, api, game)

    results: List[Dict] = []
    for pick in picks:
        pick_id = pick.id
        try:
            record = grade_pick(db, pick, game, closing_lines, session_factory, now)
            if "result" in record:
                logger.info(
                    "Graded pick %s (%s): %s | %+.2fu | %s",
                    pick_id, pick.selection, record["result"].upper(),
                    record["profit_units"], record["reason"],
                )
            results.append(record)
        except Exception as exc:
            db.rollback()
            logger.error("Error grading pick %s: %s", pick_id, exc, exc_info=True)
            results.append({"pick_id": pick_id, "error": str(exc)})

    return results


def grade_game_picks(
    game_id: str,
    session_factory: Callable[[], Session] = SessionLocal,
    sports_api: Optional[SportsAPIClient] = None,
    now: Optional[datetime] = None,
) -> List[Dict]:
    """
    Grade every pending/locked pick on one game.

    Returns one record per pick.  Unknown or unfinished games return [].
    """
    api = sports_api or get_sports_api()
    now = now or datetime.utcnow()
    db = session_factory()
    try:
        game = db.query(Game).filter(Game.game_id == game_id).first()
        if game is None:
            logger.info("Game %s not found", game_id)
            return []
        if game.status != "final":
            logger.info("Game %s is not final yet (status: %s)", game_id, game.status)
            return []
        return _grade_game(db, game, api, session_factory, now)
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Job: run_grading_job
# ---------------------------------------------------------------------------

def _collect_finished_game_ids(
    db: Session,
    api: SportsAPIClient,
    start: datetime,
    end: datetime,
) -> List[str]:
    """Games final in storage within the window, plus any the feed reports finished."""
    stored = [
        row.game_id
        for row in db.query(Game.game_id)
        .filter(Game.status == "final", Game.start_time >= start, Game.start_time <= end)
        .all()
    ]

    reported: List[str] = []
    try:
        reported = list(api.get_finished_games(start, end))
    except Exception as exc:
        logger.warning("Could not fetch finished games from feed: %s", exc)
        _record_fetch(db, "finished_games", False, error=str(exc))
    else:
        if api.is_configured:
            _record_fetch(db, "finished_games", True, records=len(reported))

    for game_id in reported:
        game = db.query(Game).filter(Game.game_id == game_id).first()
        if game is not None and game.status != "final":
            game.status = "final"
            db.commit()
            logger.info("Game %s marked final from feed", game_id)

    return list(dict.fromkeys(stored + reported))


def run_grading_job(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    session_factory: Callable[[], Session] = SessionLocal,
    sports_api: Optional[SportsAPIClient] = None,
    now: Optional[datetime] = None,
) -> Dict:
    """
    Find finished games in [start_date, end_date] and grade their picks.

    Defaults to the last GRADING_LOOKBACK_HOURS (24) hours.  Safe to rerun
    and to overlap with another run.  Per-pick failures are counted in the
    summary; only failures to reach the store propagate.
    """
    now = now or datetime.utcnow()
    end = end_date or now
    start = start_date or end - timedelta(hours=DEFAULT_LOOKBACK_HOURS)
    api = sports_api or get_sports_api()

    logger.info("Starting grading job for %s → %s", start.isoformat(), end.isoformat())
    summary = _job_summary()
    db = session_factory()

    try:
        game_ids = _collect_finished_game_ids(db, api, start, end)

        for game_id in game_ids:
            game = db.query(Game).filter(Game.game_id == game_id).first()
            summary["games_processed"] += 1
            if game is None:
                logger.info("Game %s reported finished but not stored", game_id)
                continue

            for record in _grade_game(db, game, api, session_factory, now):
                _tally(summary, record)

    except Exception as exc:
        logger.error("Fatal error in run_grading_job: %s", exc, exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()

    logger.info("Grading job done: %s", {k: v for k, v in summary.items() if k != "error_details"})
    return summary


# ---------------------------------------------------------------------------
# Job: lock_started_picks
# ---------------------------------------------------------------------------

def lock_started_picks(
    session_factory: Callable[[], Session] = SessionLocal,
    now: Optional[datetime] = None,
) -> int:
    """Move pending picks whose game has started to locked.  Returns the count."""
    now = now or datetime.utcnow()
    db = session_factory()
    try:
        locked = db.execute(
            update(Pick)
            .where(Pick.status == "pending", Pick.game_start_time <= now)
            .values(status="locked", updated_at=now)
            .execution_options(synchronize_session=False)
        ).rowcount
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    finally:
        db.close()

    if locked:
        logger.info("Locked %d started pick(s)", locked)
    return locked
