"""
Database models for the pick settlement engine
SQLAlchemy ORM with PostgreSQL
"""

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Float,
    DateTime,
    Boolean,
    JSON,
    Text,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship
from datetime import datetime
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://postgres@127.0.0.1:5432/pick_settlement")

# pool_pre_ping=True keeps long-lived scheduler connections healthy
engine = create_engine(DATABASE_URL, pool_pre_ping=True, echo=False)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

PICK_STATUSES = ("pending", "locked", "graded", "disputed")
PICK_RESULTS = ("pending", "win", "loss", "push", "void")
BET_TYPES = ("moneyline", "spread", "total", "prop", "other")
GAME_STATUSES = ("scheduled", "in_progress", "final")

# Statuses the grading job is allowed to transition out of
GRADABLE_STATUSES = ("pending", "locked")


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class Game(Base):
    """Sporting event snapshot owned by the ingestion feed"""

    __tablename__ = "games"

    id = Column(Integer, primary_key=True, index=True)
    game_id = Column(String, unique=True, index=True, nullable=False)  # Canonical id
    provider = Column(String)  # "theoddsapi", "sportradar", ...
    provider_game_id = Column(String)
    sport = Column(String)
    league = Column(String)

    home_team = Column(String)
    home_abbr = Column(String)
    away_team = Column(String)
    away_abbr = Column(String)

    start_time = Column(DateTime, index=True)
    status = Column(String, default="scheduled", nullable=False, index=True)

    # Final score (filled by ingestion)
    home_score = Column(Integer)
    away_score = Column(Integer)

    # {"moneyline": {"home", "away"}, "spread": {"home", "away", "line"},
    #  "total": {"over", "under", "line"}, "updated_at"}
    closing_lines = Column(JSON)
    raw_provider_data = Column(JSON)

    picks = relationship("Pick", back_populates="game")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Pick(Base):
    """A creator's posted wager recommendation"""

    __tablename__ = "picks"

    id = Column(Integer, primary_key=True, index=True)
    creator_id = Column(String, index=True)
    game_id = Column(String, ForeignKey("games.game_id"), index=True)
    sport = Column(String)

    # Wager
    selection = Column(String, nullable=False)  # "Lakers -5.5", "Over 225.5"
    bet_type = Column(String, nullable=False)  # moneyline | spread | total | prop | other
    odds_american = Column(Integer)
    odds_decimal = Column(Float)
    is_parlay = Column(Boolean, default=False, nullable=False)

    # Stake; unit_value_at_post is a snapshot, never recomputed
    units_risked = Column(Float, nullable=False)
    amount_risked = Column(Integer, nullable=False)  # cents
    unit_value_at_post = Column(Integer, nullable=False)  # cents per unit

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    game_start_time = Column(DateTime, index=True)

    # Lifecycle
    status = Column(String, default="pending", nullable=False, index=True)
    result = Column(String, default="pending", nullable=False, index=True)
    resolved_at = Column(DateTime)
    profit_units = Column(Float, default=0.0)
    profit_amount = Column(Integer, default=0)  # cents, signed

    # Verification
    is_verified = Column(Boolean, default=False, index=True)
    verification_source = Column(String, default="system")  # manual | system | api
    verification_evidence = Column(JSON)

    # NULL clv_score means "not computable", not zero edge
    closing_odds = Column(JSON)
    clv_score = Column(Float)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    game = relationship("Game", back_populates="picks")
    parlay_legs = relationship(
        "ParlayLeg",
        back_populates="pick",
        order_by="ParlayLeg.position",
        cascade="all, delete-orphan",
    )


class ParlayLeg(Base):
    """One leg of a parlay pick"""

    __tablename__ = "parlay_legs"

    id = Column(Integer, primary_key=True, index=True)
    pick_id = Column(Integer, ForeignKey("picks.id"), nullable=False, index=True)
    position = Column(Integer, default=0, nullable=False)

    game_id = Column(String, index=True)  # NULL = same game as the parent pick
    sport = Column(String)
    selection = Column(String, nullable=False)
    bet_type = Column(String, nullable=False)
    odds_american = Column(Integer)
    odds_decimal = Column(Float)
    game_start_time = Column(DateTime)

    result = Column(String, default="pending", nullable=False)

    pick = relationship("Pick", back_populates="parlay_legs")


class LedgerEntry(Base):
    """Append-only, hash-chained record of pick lifecycle events"""

    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, index=True)
    resource_type = Column(String, default="Pick", nullable=False)
    pick_id = Column(Integer, ForeignKey("picks.id"), nullable=False, index=True)
    action = Column(String, nullable=False)  # create | edit | grade

    hash = Column(String(64), unique=True, nullable=False, index=True)
    previous_hash = Column(String(64), index=True)
    sequence = Column(Integer, nullable=False)

    data = Column(JSON, nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    creator_id = Column(String, index=True)

    __table_args__ = (UniqueConstraint("pick_id", "action", name="_ledger_pick_action_uc"),)


class DataFetch(Base):
    """Track collaborator fetches for monitoring feed health"""

    __tablename__ = "data_fetches"

    id = Column(Integer, primary_key=True, index=True)
    fetch_time = Column(DateTime, default=datetime.utcnow, index=True)
    data_source = Column(String, nullable=False, index=True)  # "finished_games", "closing_lines"
    success = Column(Boolean, nullable=False)
    records_fetched = Column(Integer)
    error_message = Column(Text)
    response_time_ms = Column(Integer)

    created_at = Column(DateTime, default=datetime.utcnow)


# Create all tables
def init_db():
    """Initialize database tables"""
    Base.metadata.create_all(bind=engine)
    print("✅ Database tables created")


if __name__ == "__main__":
    init_db()
