"""
Pydantic request/response schemas for the grading API.

Using explicit schemas instead of raw dicts keeps the OpenAPI docs
accurate and stops the job summary shape from drifting silently.
"""

from __future__ import annotations

from typing import Literal, Optional
from datetime import datetime

from pydantic import BaseModel, Field, model_validator


# ---------------------------------------------------------------------------
# Grading run
# ---------------------------------------------------------------------------

class GradingRunRequest(BaseModel):
    """
    Payload for POST /api/grading/run.

    Both bounds are optional; the job defaults to the last 24 hours.
    """

    start_date: Optional[datetime] = Field(None, description="Window start (UTC)")
    end_date: Optional[datetime] = Field(None, description="Window end (UTC)")

    @model_validator(mode="after")
    def validate_window(self) -> "GradingRunRequest":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self

    model_config = {
        "json_schema_extra": {
            "example": {
                "start_date": "2025-01-04T00:00:00",
                "end_date": "2025-01-05T00:00:00",
            }
        }
    }


class GradingSummary(BaseModel):
    """Run summary returned by run_grading_job()."""
    games_processed: int
    picks_graded: int
    wins: int
    losses: int
    pushes: int
    voids: int
    deferred: int
    skipped: int
    errors: int
    error_details: list[str]
    timestamp: str


class GradingRunResponse(BaseModel):
    message: str
    summary: GradingSummary


# ---------------------------------------------------------------------------
# Single-game grading
# ---------------------------------------------------------------------------

class ParlayLegResult(BaseModel):
    selection: str
    result: Literal["pending", "win", "loss", "push", "void"]


class GradedPickResult(BaseModel):
    """One per-pick record from grade_game_picks().  Errors carry only pick_id + error."""
    pick_id: int
    result: Optional[Literal["win", "loss", "push", "void"]] = None
    reason: Optional[str] = None
    profit_units: Optional[float] = None
    profit_amount: Optional[int] = None
    clv_score: Optional[float] = None
    clv_grade: Optional[str] = None
    is_verified: Optional[bool] = None
    is_parlay: Optional[bool] = None
    parlay_legs: Optional[list[ParlayLegResult]] = None
    deferred: Optional[bool] = None
    skipped: Optional[bool] = None
    error: Optional[str] = None


class GameGradingResponse(BaseModel):
    message: str
    results: list[GradedPickResult]
