from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from loyalty_rewards.db import utcnow
from loyalty_rewards.models.reward_history import RewardHistory
from loyalty_rewards.models.reward_points import RewardPoints
from loyalty_rewards.services.loyalty_service import find_active_status


def rewards_summary(
    db: Session,
    user_id: str,
    *,
    expiring_soon_days: int = 30,
    now: Optional[datetime] = None,
) -> dict:
    now = now or utcnow()

    earned, available, redeemed, expired = (
        db.query(
            func.coalesce(func.sum(RewardPoints.points_earned), 0),
            func.coalesce(func.sum(RewardPoints.points_available), 0),
            func.coalesce(func.sum(RewardPoints.points_redeemed), 0),
            func.coalesce(func.sum(RewardPoints.points_expired), 0),
        )
        .filter(RewardPoints.user_id == user_id)
        .one()
    )

    expiring_soon = (
        db.query(func.count(RewardPoints.id))
        .filter(RewardPoints.user_id == user_id)
        .filter(RewardPoints.points_available > 0)
        .filter(RewardPoints.expiry_date >= now)
        .filter(RewardPoints.expiry_date <= now + timedelta(days=expiring_soon_days))
        .scalar()
    )

    status = find_active_status(db, user_id)

    return {
        "userId": user_id,
        "points": {
            "totalEarned": int(earned or 0),
            "available": int(available or 0),
            "totalRedeemed": int(redeemed or 0),
            "expired": int(expired or 0),
            "expiringSoon": int(expiring_soon or 0),
        },
        "loyaltyStatus": (
            {
                "currentTier": status.current_tier,
                "tierProgress": status.tier_progress,
                "tierExpiryDate": status.tier_expiry_date,
                "programName": status.loyalty_program.name if status.loyalty_program else None,
            }
            if status
            else None
        ),
    }


def serialize_history(entry: RewardHistory) -> dict:
    return {
        "id": entry.id,
        "actionType": entry.action_type,
        "pointsChange": entry.points_change,
        "cashbackChange": entry.cashback_change,
        "description": entry.description,
        "metadata": entry.meta,
        "createdAt": entry.created_at,
    }
