from __future__ import annotations

import logging

from loyalty_rewards.config import Settings
from loyalty_rewards.db import build_engine, build_session_factory, unit_of_work, utcnow
from loyalty_rewards.logging_config import configure_logging
from loyalty_rewards.models.reward_history import RewardHistory  # noqa: F401
from loyalty_rewards.models.reward_points import RewardPoints  # noqa: F401
from loyalty_rewards.services.points_ledger import expire_points


logger = logging.getLogger(__name__)


def run_once(session_factory) -> int:
    now = utcnow()
    db = session_factory()
    try:
        with unit_of_work(db):
            expired = expire_points(db, now=now)
    except Exception:
        logger.exception("point expiry failed", extra={"now": now.isoformat()})
        raise
    finally:
        db.close()

    logger.info("point expiry finished", extra={"expired_lots": expired, "now": now.isoformat()})
    return expired


def main():
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    engine = build_engine(settings.database_url)
    try:
        run_once(build_session_factory(engine))
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
