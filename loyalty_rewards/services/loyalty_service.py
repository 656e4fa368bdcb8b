import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from loyalty_rewards.db import utcnow
from loyalty_rewards.errors import ConflictError, NotFoundError, ValidationError
from loyalty_rewards.models.loyalty_program import LoyaltyProgram
from loyalty_rewards.models.user_loyalty_status import UserLoyaltyStatus
from loyalty_rewards.services.history_service import record_history
from loyalty_rewards.services.tier_engine import (
    lowest_tier,
    next_tier_after,
    progress_percentage,
    resolve_tier,
)


logger = logging.getLogger(__name__)


def list_active_programs(db: Session) -> list[LoyaltyProgram]:
    return (
        db.query(LoyaltyProgram)
        .filter(LoyaltyProgram.is_active.is_(True))
        .order_by(LoyaltyProgram.created_at.desc())
        .all()
    )


def get_active_program(db: Session, program_id) -> LoyaltyProgram:
    program = (
        db.query(LoyaltyProgram)
        .filter(LoyaltyProgram.id == program_id)
        .filter(LoyaltyProgram.is_active.is_(True))
        .first()
    )
    if not program:
        raise NotFoundError("Loyalty program not found")
    return program


def get_active_status(db: Session, user_id: str, *, for_update: bool = False) -> UserLoyaltyStatus:
    q = (
        db.query(UserLoyaltyStatus)
        .join(LoyaltyProgram, UserLoyaltyStatus.loyalty_program_id == LoyaltyProgram.id)
        .filter(UserLoyaltyStatus.user_id == user_id)
        .filter(LoyaltyProgram.is_active.is_(True))
        .order_by(UserLoyaltyStatus.tier_achieved_date.desc())
    )
    if for_update:
        q = q.with_for_update(of=UserLoyaltyStatus)

    status = q.first()
    if not status:
        raise NotFoundError("User not enrolled in any active loyalty program")
    return status


def find_active_status(db: Session, user_id: str) -> Optional[UserLoyaltyStatus]:
    try:
        return get_active_status(db, user_id)
    except NotFoundError:
        return None


def build_status_view(status: UserLoyaltyStatus) -> dict:
    program = status.loyalty_program
    requirements = program.requirements or {}
    spending = float(status.tier_progress or 0)

    next_tier, next_requirement = next_tier_after(requirements, status.current_tier, spending)

    return {
        "userId": status.user_id,
        "program": {
            "id": program.id,
            "name": program.name,
            "description": program.description,
            "tierType": program.tier_type,
        },
        "currentTier": {
            "name": status.current_tier,
            "benefits": (program.benefits or {}).get(status.current_tier, []),
            "achievedDate": status.tier_achieved_date,
            "expiryDate": status.tier_expiry_date,
        },
        "progress": {
            "totalSpending": status.total_spending,
            "tierProgress": status.tier_progress,
            "nextTier": next_tier,
            "nextTierRequirement": next_requirement,
            "progressPercentage": progress_percentage(spending, next_requirement),
        },
        "lastUpdated": status.last_updated,
    }


def upgrade_tier(
    db: Session,
    user_id: str,
    total_spending: float,
    *,
    tier_validity_days: int = 365,
    now: Optional[datetime] = None,
) -> dict:
    if not total_spending:
        raise ValidationError("Total spending amount required")
    if total_spending < 0:
        raise ValidationError("totalSpending must not be negative")

    now = now or utcnow()
    status = get_active_status(db, user_id, for_update=True)
    current_tier = status.current_tier
    requirements = status.loyalty_program.requirements or {}

    resolution = resolve_tier(requirements, current_tier, total_spending)

    if not resolution.changed_from(current_tier):
        return {
            "upgraded": False,
            "currentTier": current_tier,
            "totalSpending": float(total_spending),
            "message": "No tier upgrade available",
        }

    new_tier = resolution.tier
    status.current_tier = new_tier
    status.total_spending = total_spending
    status.tier_progress = total_spending
    status.tier_achieved_date = now
    status.tier_expiry_date = now + timedelta(days=tier_validity_days)
    status.last_updated = now

    record_history(
        db,
        user_id=user_id,
        action_type="TIER_UPGRADE",
        description=f"Upgraded from {current_tier} to {new_tier} tier",
        metadata={
            "previous_tier": current_tier,
            "new_tier": new_tier,
            "spending_amount": float(total_spending),
        },
        now=now,
    )
    db.flush()

    logger.info(
        "loyalty tier changed",
        extra={"user_id": user_id, "previous_tier": current_tier, "new_tier": new_tier},
    )

    return {
        "upgraded": True,
        "previousTier": current_tier,
        "newTier": new_tier,
        "totalSpending": float(total_spending),
        "tierExpiryDate": status.tier_expiry_date,
        "message": f"User upgraded from {current_tier} to {new_tier}",
    }


def enroll_user(
    db: Session,
    user_id: str,
    program_id,
    total_spending: float = 0,
    *,
    tier_validity_days: int = 365,
    now: Optional[datetime] = None,
) -> UserLoyaltyStatus:
    if total_spending is None:
        total_spending = 0
    if total_spending < 0:
        raise ValidationError("totalSpending must not be negative")

    program = get_active_program(db, program_id)
    requirements = program.requirements or {}
    entry_tier = lowest_tier(requirements)
    if entry_tier is None:
        raise ValidationError("Loyalty program has no tiers configured")

    existing = (
        db.query(UserLoyaltyStatus.id)
        .filter(UserLoyaltyStatus.user_id == user_id)
        .filter(UserLoyaltyStatus.loyalty_program_id == program.id)
        .first()
    )
    if existing:
        raise ConflictError("User already enrolled in this loyalty program")

    now = now or utcnow()
    tier = resolve_tier(requirements, entry_tier, total_spending).tier

    status = UserLoyaltyStatus(
        user_id=user_id,
        loyalty_program_id=program.id,
        current_tier=tier,
        total_spending=total_spending,
        tier_progress=total_spending,
        tier_achieved_date=now,
        tier_expiry_date=now + timedelta(days=tier_validity_days),
        last_updated=now,
    )
    db.add(status)
    db.flush()

    record_history(
        db,
        user_id=user_id,
        action_type="PROGRAM_ENROLLED",
        description=f"Enrolled in {program.name} at {tier} tier",
        metadata={"loyalty_program_id": str(program.id), "tier": tier},
        now=now,
    )
    db.flush()

    logger.info("user enrolled", extra={"user_id": user_id, "program_id": str(program.id), "tier": tier})
    return status
