"""
FastAPI host for the pick settlement engine
Runs the scheduled grading jobs and exposes manual admin triggers
"""

from fastapi import FastAPI, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import text
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
import logging
import os

from settlement.models import get_db
from settlement.auth import verify_admin_api_key
from settlement.services.grading import run_grading_job, grade_game_picks, lock_started_picks
from settlement.services.ledger import verify_chain
from settlement.schemas import (
    GradingRunRequest,
    GradingRunResponse,
    GameGradingResponse,
)

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Scheduler instance
scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("Starting pick settlement service")

    grading_interval = int(os.getenv("GRADING_INTERVAL_MIN", "10"))
    lock_interval = int(os.getenv("LOCK_INTERVAL_MIN", "5"))

    # Overlap is safe (conditional writes) but pointless within one process
    scheduler.add_job(
        _grading_job,
        IntervalTrigger(minutes=grading_interval),
        id="grade_picks",
        name="Grade Picks On Finished Games",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.add_job(
        _lock_job,
        IntervalTrigger(minutes=lock_interval),
        id="lock_started_picks",
        name="Lock Picks On Started Games",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started: grading every %dmin, locking every %dmin",
        grading_interval, lock_interval,
    )

    yield

    logger.info("Shutting down pick settlement service")
    scheduler.shutdown()


app = FastAPI(
    title="Pick Settlement",
    description="Automated wager grading and settlement",
    version="1.0",
    lifespan=lifespan,
)


# ============================================================================
# SCHEDULED JOBS
# ============================================================================

def _grading_job():
    """Grade picks on finished games; runs every 10 minutes by default."""
    try:
        summary = run_grading_job()
        logger.info(
            "Grading: %d games, %d graded, %d errors",
            summary["games_processed"], summary["picks_graded"], summary["errors"],
        )
    except Exception as exc:
        logger.error("Grading job failed: %s", exc, exc_info=True)


def _lock_job():
    """Lock pending picks whose game has started."""
    try:
        lock_started_picks()
    except Exception as exc:
        logger.error("Lock job failed: %s", exc, exc_info=True)


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint"""
    health = {"status": "healthy", "database": "connected", "scheduler": "running"}

    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Health check database error: %s", e)
        health["status"] = "degraded"
        health["database"] = f"error: {str(e)}"

    if not scheduler.running:
        health["status"] = "degraded"
        health["scheduler"] = "stopped"

    health["timestamp"] = datetime.utcnow().isoformat()
    return health


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================

@app.post("/api/grading/run", response_model=GradingRunResponse)
def trigger_grading_run(
    payload: Optional[GradingRunRequest] = None,
    role: str = Depends(verify_admin_api_key),
):
    """Manually trigger the grading job (admin only). Runs synchronously."""
    payload = payload or GradingRunRequest()
    logger.info("Manual grading run requested (%s)", role)
    try:
        summary = run_grading_job(payload.start_date, payload.end_date)
    except Exception as exc:
        logger.error("Manual grading run failed: %s", exc, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Grading job failed: {exc}")
    return {"message": "Grading job completed", "summary": summary}


@app.post("/api/grading/game/{game_id}", response_model=GameGradingResponse)
def trigger_game_grading(
    game_id: str,
    role: str = Depends(verify_admin_api_key),
):
    """Grade picks for one finished game (admin only)."""
    try:
        results = grade_game_picks(game_id)
    except Exception as exc:
        logger.error("Grading game %s failed: %s", game_id, exc, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Grading failed: {exc}")
    return {"message": f"Graded picks for game {game_id}", "results": results}


@app.get("/api/ledger/{pick_id}/verify")
def verify_pick_ledger(
    pick_id: int,
    role: str = Depends(verify_admin_api_key),
    db: Session = Depends(get_db),
):
    """Re-check the hash chain for one pick (admin only)."""
    return verify_chain(db, pick_id)
