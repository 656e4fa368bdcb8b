from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from loyalty_rewards.config import Settings
from loyalty_rewards.db import get_db, unit_of_work
from loyalty_rewards.deps.settings import get_settings
from loyalty_rewards.deps.user import get_current_user_id, resolve_user_id
from loyalty_rewards.schemas.common import api_response
from loyalty_rewards.schemas.loyalty import EnrollRequest, UpgradeTierRequest, serialize_program
from loyalty_rewards.services.loyalty_service import (
    build_status_view,
    enroll_user,
    get_active_program,
    get_active_status,
    list_active_programs,
    upgrade_tier,
)


router = APIRouter(prefix="/api/v1/loyalty", tags=["loyalty"])


@router.get("/programs")
def list_programs(db: Session = Depends(get_db)):
    return api_response([serialize_program(p) for p in list_active_programs(db)])


@router.get("/programs/{program_id}")
def get_program(program_id: UUID, db: Session = Depends(get_db)):
    return api_response(serialize_program(get_active_program(db, program_id)))


@router.post("/enroll")
def enroll(
    payload: EnrollRequest,
    current_user_id: str | None = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    user_id = resolve_user_id(payload.userId, current_user_id)

    with unit_of_work(db):
        status = enroll_user(
            db,
            user_id,
            payload.loyaltyProgramId,
            payload.totalSpending,
            tier_validity_days=settings.tier_validity_days,
        )
        view = build_status_view(status)

    return api_response(view, status_code=201, message="User enrolled")


@router.get("/{user_id}/status")
def get_status(user_id: str, db: Session = Depends(get_db)):
    return api_response(build_status_view(get_active_status(db, user_id)))


@router.put("/{user_id}/upgrade")
def upgrade(
    user_id: str,
    payload: UpgradeTierRequest,
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        result = upgrade_tier(
            db,
            user_id,
            payload.totalSpending,
            tier_validity_days=settings.tier_validity_days,
        )

    return api_response(result, message=result["message"])
