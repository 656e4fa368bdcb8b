from loyalty_rewards.db import Base, build_engine, build_session_factory
from loyalty_rewards.jobs.expire_points import run_once
from loyalty_rewards.models.reward_history import RewardHistory
from loyalty_rewards.models.reward_points import RewardPoints

from conftest import days_ago, make_lot


def test_run_once_expires_stale_lots():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session_factory = build_session_factory(engine)

    db = session_factory()
    try:
        make_lot(db, available=40, created_at=days_ago(400), expiry_date=days_ago(35))
        make_lot(db, available=60)

        assert run_once(session_factory) == 1

        db.expire_all()
        assert sorted(lot.points_available for lot in db.query(RewardPoints)) == [0, 60]
        history = db.query(RewardHistory).one()
        assert history.action_type == "POINTS_EXPIRED"
        assert history.points_change == -40

        assert run_once(session_factory) == 0
    finally:
        db.close()
        engine.dispose()
