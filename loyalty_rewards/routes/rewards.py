from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from loyalty_rewards.config import Settings
from loyalty_rewards.db import get_db, unit_of_work
from loyalty_rewards.deps.settings import get_settings
from loyalty_rewards.deps.user import get_current_user_id, resolve_user_id
from loyalty_rewards.schemas.common import api_response
from loyalty_rewards.schemas.reward import EarnPointsRequest, RedeemPointsRequest
from loyalty_rewards.services.history_service import list_history
from loyalty_rewards.services.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from loyalty_rewards.services.points_ledger import earn_points, redeem_points
from loyalty_rewards.services.reward_service import rewards_summary, serialize_history


router = APIRouter(prefix="/api/v1/rewards", tags=["rewards"])


@router.post("/redeem")
def redeem(
    payload: RedeemPointsRequest,
    current_user_id: str | None = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    user_id = resolve_user_id(payload.userId, current_user_id)

    with unit_of_work(db):
        redemption = redeem_points(
            db,
            user_id,
            payload.pointsToRedeem,
            payload.redemptionType,
            payload.redemptionDetails,
            points_per_unit=settings.points_per_currency_unit,
        )

    return api_response(
        {
            "redemptionId": redemption.id,
            "status": "success",
            "pointsRedeemed": redemption.points_used,
            "cashValue": redemption.cash_value,
            "redemptionType": redemption.redemption_type,
            "processedAt": redemption.processed_at,
        },
        status_code=201,
        message="Points redeemed",
    )


@router.post("/earn")
def earn(
    payload: EarnPointsRequest,
    current_user_id: str | None = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    user_id = resolve_user_id(payload.userId, current_user_id)

    with unit_of_work(db):
        lot = earn_points(
            db,
            user_id,
            payload.points,
            description=payload.description,
            expiry_days=payload.expiryDays if payload.expiryDays is not None else settings.points_validity_days,
        )

    return api_response(
        {
            "lotId": lot.id,
            "userId": user_id,
            "pointsEarned": lot.points_earned,
            "expiryDate": lot.expiry_date,
        },
        status_code=201,
        message="Points earned",
    )


@router.get("/{user_id}")
def get_summary(
    user_id: str,
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    summary = rewards_summary(db, user_id, expiring_soon_days=settings.expiring_soon_days)
    return api_response(summary)


@router.get("/{user_id}/history")
def get_history(
    user_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    action_type: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
):
    entries, meta = list_history(
        db,
        user_id,
        page=page,
        limit=limit,
        action_type=action_type,
        start_date=start_date,
        end_date=end_date,
    )
    return api_response(
        {
            "transactions": [serialize_history(e) for e in entries],
            "pagination": meta.as_dict(),
        }
    )
