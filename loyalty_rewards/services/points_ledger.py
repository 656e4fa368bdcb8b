"""
Reward point lots: earning, FIFO redemption and expiry.

Functions here only add and flush; callers wrap them in ``unit_of_work`` so
the lot updates, the redemption row and the history entry commit together.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from loyalty_rewards.db import utcnow
from loyalty_rewards.errors import InsufficientPointsError, ValidationError
from loyalty_rewards.models.reward_points import RewardPoints
from loyalty_rewards.models.reward_redemption import RewardRedemption
from loyalty_rewards.services.cashback_resolver import round_money
from loyalty_rewards.services.history_service import record_history


logger = logging.getLogger(__name__)

POINTS_PER_CURRENCY_UNIT = 100


def cash_value_for(points: int, points_per_unit: int = POINTS_PER_CURRENCY_UNIT) -> float:
    return round_money(points / points_per_unit)


def earn_points(
    db: Session,
    user_id: str,
    points: int,
    *,
    description: Optional[str] = None,
    expiry_days: int = 365,
    now: Optional[datetime] = None,
) -> RewardPoints:
    if not isinstance(points, int) or isinstance(points, bool) or points <= 0:
        raise ValidationError("points must be a positive integer")

    now = now or utcnow()
    lot = RewardPoints(
        user_id=user_id,
        points_earned=points,
        points_available=points,
        points_redeemed=0,
        points_expired=0,
        expiry_date=now + timedelta(days=expiry_days),
        created_at=now,
    )
    db.add(lot)
    db.flush()

    record_history(
        db,
        user_id=user_id,
        action_type="POINTS_EARNED",
        points_change=points,
        description=description or f"Earned {points} points",
        metadata={"lot_id": str(lot.id), "expiry_date": lot.expiry_date.isoformat()},
        now=now,
    )
    db.flush()

    logger.info("points earned", extra={"user_id": user_id, "points": points, "lot_id": str(lot.id)})
    return lot


def _lots_for_update(db: Session, user_id: str) -> list[RewardPoints]:
    return (
        db.query(RewardPoints)
        .filter(RewardPoints.user_id == user_id)
        .filter(RewardPoints.points_available > 0)
        .order_by(RewardPoints.created_at.asc(), RewardPoints.id.asc())
        .with_for_update()
        .all()
    )


def redeem_points(
    db: Session,
    user_id: str,
    points_to_redeem: int,
    redemption_type: str,
    redemption_details: Optional[dict] = None,
    *,
    points_per_unit: int = POINTS_PER_CURRENCY_UNIT,
    now: Optional[datetime] = None,
) -> RewardRedemption:
    """
    Redeem points across the user's lots, oldest lot first.

    Nothing is written when the user's available balance is short.
    """
    if not points_to_redeem or not redemption_type:
        raise ValidationError("Missing required fields: pointsToRedeem, redemptionType")
    if not isinstance(points_to_redeem, int) or isinstance(points_to_redeem, bool) or points_to_redeem <= 0:
        raise ValidationError("pointsToRedeem must be a positive integer")

    now = now or utcnow()
    lots = _lots_for_update(db, user_id)
    balance = sum(lot.points_available for lot in lots)

    if balance < points_to_redeem:
        logger.warning(
            "redemption rejected: insufficient points",
            extra={"user_id": user_id, "available": balance, "requested": points_to_redeem},
        )
        raise InsufficientPointsError(available=balance, requested=points_to_redeem)

    details = redemption_details or {}
    redemption = RewardRedemption(
        user_id=user_id,
        points_used=points_to_redeem,
        redemption_type=redemption_type,
        redemption_details=details,
        cash_value=cash_value_for(points_to_redeem, points_per_unit),
        status="COMPLETED",
        processed_at=now,
        created_at=now,
    )
    db.add(redemption)
    db.flush()

    remaining = points_to_redeem
    for lot in lots:
        if remaining <= 0:
            break
        to_deduct = min(lot.points_available, remaining)
        lot.points_available -= to_deduct
        lot.points_redeemed = (lot.points_redeemed or 0) + to_deduct
        remaining -= to_deduct

    record_history(
        db,
        user_id=user_id,
        action_type="POINTS_REDEEMED",
        points_change=-points_to_redeem,
        description=f"Points redeemed for {redemption_type}",
        metadata={"redemption_id": str(redemption.id), "redemption_details": details},
        now=now,
    )
    db.flush()

    logger.info(
        "points redeemed",
        extra={
            "user_id": user_id,
            "points": points_to_redeem,
            "redemption_id": str(redemption.id),
            "lots_touched": len(lots),
        },
    )
    return redemption


def expire_points(db: Session, now: Optional[datetime] = None) -> int:
    """Move the unused balance of every lot past its expiry date to expired."""
    now = now or utcnow()

    lots = (
        db.query(RewardPoints)
        .filter(RewardPoints.expiry_date.isnot(None))
        .filter(RewardPoints.expiry_date < now)
        .filter(RewardPoints.points_available > 0)
        .order_by(RewardPoints.created_at.asc())
        .with_for_update()
        .all()
    )

    for lot in lots:
        expiring = lot.points_available
        lot.points_expired = (lot.points_expired or 0) + expiring
        lot.points_available = 0
        record_history(
            db,
            user_id=lot.user_id,
            action_type="POINTS_EXPIRED",
            points_change=-expiring,
            description=f"{expiring} points expired",
            metadata={"lot_id": str(lot.id), "expiry_date": lot.expiry_date.isoformat()},
            now=now,
        )

    db.flush()
    return len(lots)
