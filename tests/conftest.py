from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from loyalty_rewards.config import Settings
from loyalty_rewards.db import Base, build_engine, build_session_factory, utcnow
from loyalty_rewards.main import create_app
from loyalty_rewards.models.campaign import Campaign
from loyalty_rewards.models.loyalty_program import LoyaltyProgram
from loyalty_rewards.models.reward_points import RewardPoints
from loyalty_rewards.models.user_loyalty_status import UserLoyaltyStatus


TIER_BENEFITS = {
    "bronze": ["1% cashback", "Birthday voucher"],
    "silver": ["Free shipping", "3% cashback"],
    "gold": ["Priority support", "6% cashback"],
}
TIER_REQUIREMENTS = {"bronze": 0, "silver": 1000, "gold": 5000}


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        log_level="WARNING",
        rate_limit_enabled=False,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(client):
    session = client.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session():
    """Standalone session for service level tests."""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    db = build_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


def make_program(db, **overrides) -> LoyaltyProgram:
    values = dict(
        name="Everyday Rewards",
        description="Spend based tiers",
        tier_type="SPENDING",
        benefits=TIER_BENEFITS,
        requirements=TIER_REQUIREMENTS,
        min_spending=0,
        max_spending=None,
        is_active=True,
        created_at=utcnow(),
    )
    values.update(overrides)
    program = LoyaltyProgram(**values)
    db.add(program)
    db.commit()
    return program


def make_status(db, program, user_id="user-1", tier="bronze", spending=0) -> UserLoyaltyStatus:
    now = utcnow()
    status = UserLoyaltyStatus(
        user_id=user_id,
        loyalty_program_id=program.id,
        current_tier=tier,
        total_spending=spending,
        tier_progress=spending,
        tier_achieved_date=now,
        tier_expiry_date=now + timedelta(days=365),
        last_updated=now,
    )
    db.add(status)
    db.commit()
    return status


def make_lot(db, user_id="user-1", available=100, created_at=None, expiry_date=None, earned=None) -> RewardPoints:
    created_at = created_at or utcnow()
    lot = RewardPoints(
        user_id=user_id,
        points_earned=earned if earned is not None else available,
        points_available=available,
        points_redeemed=0,
        points_expired=0,
        expiry_date=expiry_date or created_at + timedelta(days=365),
        created_at=created_at,
    )
    db.add(lot)
    db.commit()
    return lot


def make_campaign(db, **overrides) -> Campaign:
    now = utcnow()
    values = dict(
        name="Double travel cashback",
        description="2x on travel",
        is_active=True,
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=1),
        min_transaction=None,
        max_cashback=None,
        rules={"category": "travel", "multiplier": 2},
        rewards={},
        created_at=now,
    )
    values.update(overrides)
    campaign = Campaign(**values)
    db.add(campaign)
    db.commit()
    return campaign


def days_ago(days: int) -> datetime:
    return utcnow() - timedelta(days=days)
