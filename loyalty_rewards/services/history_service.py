from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from loyalty_rewards.db import utcnow
from loyalty_rewards.models.reward_history import RewardHistory
from loyalty_rewards.services.pagination import paginate


def record_history(
    db: Session,
    *,
    user_id: str,
    action_type: str,
    description: str,
    points_change: int = 0,
    cashback_change: float = 0,
    metadata: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> RewardHistory:
    entry = RewardHistory(
        user_id=user_id,
        action_type=action_type,
        points_change=points_change,
        cashback_change=cashback_change,
        description=description,
        meta=metadata or {},
        created_at=now or utcnow(),
    )
    db.add(entry)
    return entry


def list_history(
    db: Session,
    user_id: str,
    *,
    page: int,
    limit: int,
    action_type: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
):
    q = db.query(RewardHistory).filter(RewardHistory.user_id == user_id)
    if action_type:
        q = q.filter(RewardHistory.action_type == action_type)
    if start_date:
        q = q.filter(RewardHistory.created_at >= start_date)
    if end_date:
        q = q.filter(RewardHistory.created_at <= end_date)

    q = q.order_by(RewardHistory.created_at.desc(), RewardHistory.id.desc())
    return paginate(q, page, limit)
