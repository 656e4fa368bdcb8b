import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from loyalty_rewards.config import Settings
from loyalty_rewards.db import Base, build_engine, build_session_factory
from loyalty_rewards.errors import register_exception_handlers
from loyalty_rewards.logging_config import configure_logging
from loyalty_rewards.middleware.rate_limit import FixedWindowRateLimiter, RateLimitMiddleware

from loyalty_rewards.models.loyalty_program import LoyaltyProgram
from loyalty_rewards.models.user_loyalty_status import UserLoyaltyStatus
from loyalty_rewards.models.campaign import Campaign
from loyalty_rewards.models.user_campaign import UserCampaign
from loyalty_rewards.models.cashback_transaction import CashbackTransaction
from loyalty_rewards.models.reward_points import RewardPoints
from loyalty_rewards.models.reward_redemption import RewardRedemption
from loyalty_rewards.models.reward_history import RewardHistory

from loyalty_rewards.routes.rewards import router as rewards_router
from loyalty_rewards.routes.cashback import router as cashback_router
from loyalty_rewards.routes.loyalty import router as loyalty_router


logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="Loyalty Rewards")
    app.state.settings = settings

    # ─── CORS ─────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.rate_limit_enabled:
        app.add_middleware(
            RateLimitMiddleware,
            limiter=FixedWindowRateLimiter(
                limit=settings.rate_limit_requests,
                window=settings.rate_limit_window_seconds,
            ),
            exempt_paths={"/"},
        )

    register_exception_handlers(app)

    @app.on_event("startup")
    def open_store():
        engine = build_engine(settings.database_url)
        if settings.db_create_all:
            Base.metadata.create_all(bind=engine)
        app.state.engine = engine
        app.state.session_factory = build_session_factory(engine)
        logger.info("ledger store opened", extra={"dialect": engine.dialect.name})

    @app.on_event("shutdown")
    def close_store():
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            engine.dispose()
            logger.info("ledger store closed")

    app.include_router(rewards_router)
    app.include_router(cashback_router)
    app.include_router(loyalty_router)

    @app.get("/")
    def read_root():
        return {"message": "Loyalty rewards service is running"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=3009)
