"""Shared fixtures: an in-memory SQLite store and row builders."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["GRADING_API_KEYS"] = "test-admin-key:admin,test-mod-key:moderator,test-user-key:viewer"

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from settlement.models import Base, Game, ParlayLeg, Pick

GAME_START = datetime(2025, 1, 4, 19, 0)
NOW = datetime(2025, 1, 4, 23, 30)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def add_game(db, game_id="g1", home="Lakers", away="Celtics", home_score=110,
             away_score=104, status="final", start_time=GAME_START, **kwargs):
    game = Game(
        game_id=game_id,
        provider="theoddsapi",
        home_team=home,
        away_team=away,
        home_score=home_score,
        away_score=away_score,
        status=status,
        start_time=start_time,
        **kwargs,
    )
    db.add(game)
    db.commit()
    return game


def add_pick(db, game_id="g1", selection="Lakers -5.5", bet_type="spread",
             odds_american=-110, odds_decimal=1.9091, units=1.0, amount=1000,
             status="pending", created_at=GAME_START - timedelta(hours=3),
             legs=None, **kwargs):
    pick = Pick(
        creator_id="creator-1",
        game_id=game_id,
        sport="basketball",
        selection=selection,
        bet_type=bet_type,
        odds_american=odds_american,
        odds_decimal=odds_decimal,
        units_risked=units,
        amount_risked=amount,
        unit_value_at_post=1000,
        status=status,
        created_at=created_at,
        game_start_time=GAME_START,
        **kwargs,
    )
    for position, leg in enumerate(legs or []):
        pick.parlay_legs.append(ParlayLeg(position=position, **leg))
    db.add(pick)
    db.commit()
    return pick
