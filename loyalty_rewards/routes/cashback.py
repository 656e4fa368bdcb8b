from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from loyalty_rewards.config import Settings
from loyalty_rewards.db import get_db, unit_of_work
from loyalty_rewards.deps.settings import get_settings
from loyalty_rewards.deps.user import get_current_user_id, resolve_user_id
from loyalty_rewards.schemas.cashback import CashbackRequest
from loyalty_rewards.schemas.common import api_response
from loyalty_rewards.services.cashback_service import (
    build_quote_view,
    cashback_summary,
    complete_cashback,
    grant_cashback,
    list_cashback_transactions,
    quote_cashback,
    serialize_cashback_transaction,
)
from loyalty_rewards.services.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


router = APIRouter(prefix="/api/v1/cashback", tags=["cashback"])


@router.post("/calculate")
def calculate(
    payload: CashbackRequest,
    current_user_id: str | None = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    user_id = resolve_user_id(payload.userId, current_user_id)

    tier, quote = quote_cashback(
        db,
        user_id,
        payload.transactionAmount,
        payload.category,
        base_rate_fallback=settings.default_cashback_rate,
    )
    return api_response(build_quote_view(user_id, payload.transactionId, payload.transactionAmount, tier, quote))


@router.post("/grant")
def grant(
    payload: CashbackRequest,
    current_user_id: str | None = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    user_id = resolve_user_id(payload.userId, current_user_id)

    with unit_of_work(db):
        row, tier, quote = grant_cashback(
            db,
            user_id,
            payload.transactionId,
            payload.transactionAmount,
            payload.category,
            base_rate_fallback=settings.default_cashback_rate,
        )

    data = build_quote_view(user_id, payload.transactionId, payload.transactionAmount, tier, quote)
    data["cashbackTransactionId"] = row.id
    data["status"] = row.status
    return api_response(data, status_code=201, message="Cashback granted")


@router.post("/transactions/{cashback_id}/complete")
def complete(
    cashback_id: UUID,
    current_user_id: str | None = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    user_id = resolve_user_id(None, current_user_id)

    with unit_of_work(db):
        row = complete_cashback(db, user_id, cashback_id)

    return api_response(serialize_cashback_transaction(row), message="Cashback completed")


@router.get("/{user_id}/summary")
def summary(user_id: str, db: Session = Depends(get_db)):
    return api_response(cashback_summary(db, user_id))


@router.get("/{user_id}/transactions")
def transactions(
    user_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    status: str | None = None,
    campaign_id: UUID | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
):
    rows, meta = list_cashback_transactions(
        db,
        user_id,
        page=page,
        limit=limit,
        status=status,
        campaign_id=campaign_id,
        start_date=start_date,
        end_date=end_date,
    )
    return api_response(
        {
            "transactions": [serialize_cashback_transaction(t) for t in rows],
            "pagination": meta.as_dict(),
        }
    )
