import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from loyalty_rewards.db import utcnow
from loyalty_rewards.errors import ConflictError, NotFoundError, ValidationError
from loyalty_rewards.models.campaign import Campaign
from loyalty_rewards.models.cashback_transaction import CashbackTransaction
from loyalty_rewards.models.user_campaign import UserCampaign
from loyalty_rewards.models.user_loyalty_status import UserLoyaltyStatus
from loyalty_rewards.services.cashback_resolver import (
    DEFAULT_CASHBACK_RATE,
    CampaignOffer,
    CashbackQuote,
    resolve_cashback,
    round_money,
)
from loyalty_rewards.services.history_service import record_history
from loyalty_rewards.services.loyalty_service import get_active_status
from loyalty_rewards.services.pagination import paginate


logger = logging.getLogger(__name__)


def _active_campaign_offers(db: Session, user_id: str, transaction_amount: float, now: datetime) -> list[CampaignOffer]:
    campaigns = (
        db.query(Campaign)
        .filter(
            Campaign.is_active.is_(True),
            Campaign.start_date <= now,
            Campaign.end_date >= now,
            or_(Campaign.min_transaction.is_(None), Campaign.min_transaction <= transaction_amount),
        )
        .all()
    )
    if not campaigns:
        return []

    earned = dict(
        db.query(UserCampaign.campaign_id, UserCampaign.total_earned)
        .filter(UserCampaign.user_id == user_id)
        .filter(UserCampaign.campaign_id.in_([c.id for c in campaigns]))
        .all()
    )
    return [CampaignOffer.from_campaign(c, earned.get(c.id, 0)) for c in campaigns]


def _validate_amount(transaction_amount) -> float:
    if not transaction_amount:
        raise ValidationError("Missing required field: transactionAmount")
    if transaction_amount < 0:
        raise ValidationError("transactionAmount must be positive")
    return float(transaction_amount)


def quote_cashback(
    db: Session,
    user_id: str,
    transaction_amount: float,
    category: Optional[str] = None,
    *,
    base_rate_fallback: float = DEFAULT_CASHBACK_RATE,
    now: Optional[datetime] = None,
) -> tuple[str, CashbackQuote]:
    """Returns the user's current tier with the cashback quote for the transaction."""
    amount = _validate_amount(transaction_amount)
    status = get_active_status(db, user_id)
    return status.current_tier, _quote_for_status(db, status, amount, category, base_rate_fallback, now or utcnow())


def _quote_for_status(
    db: Session,
    status: UserLoyaltyStatus,
    amount: float,
    category: Optional[str],
    base_rate_fallback: float,
    now: datetime,
) -> CashbackQuote:
    tier_benefits = (status.loyalty_program.benefits or {}).get(status.current_tier)
    return resolve_cashback(
        amount,
        category,
        tier_benefits,
        _active_campaign_offers(db, status.user_id, amount, now),
        now,
        base_rate_fallback=base_rate_fallback,
    )


def build_quote_view(
    user_id: str,
    transaction_id: Optional[str],
    transaction_amount: float,
    tier: str,
    quote: CashbackQuote,
) -> dict:
    return {
        "userId": user_id,
        "transactionId": transaction_id,
        "transactionAmount": float(transaction_amount),
        "cashback": {
            "rate": quote.rate,
            "amount": quote.amount,
            "tier": tier,
            "campaignId": quote.campaign.id if quote.campaign else None,
            "campaignName": quote.campaign.name if quote.campaign else None,
        },
        "calculation": {
            "baseTierRate": quote.base_rate,
            "finalRate": quote.rate,
            "rawAmount": quote.raw_amount,
            "cappedAmount": quote.amount,
        },
    }


def grant_cashback(
    db: Session,
    user_id: str,
    transaction_id: str,
    transaction_amount: float,
    category: Optional[str] = None,
    *,
    base_rate_fallback: float = DEFAULT_CASHBACK_RATE,
    now: Optional[datetime] = None,
) -> tuple[CashbackTransaction, str, CashbackQuote]:
    if not transaction_id:
        raise ValidationError("Missing required field: transactionId")
    amount = _validate_amount(transaction_amount)

    now = now or utcnow()
    # Grants for one user run one at a time; campaign totals are read under this lock.
    status = get_active_status(db, user_id, for_update=True)

    existing = (
        db.query(CashbackTransaction.id)
        .filter(CashbackTransaction.user_id == user_id)
        .filter(CashbackTransaction.transaction_id == transaction_id)
        .first()
    )
    if existing:
        raise ConflictError("Cashback already granted for this transaction")

    tier = status.current_tier
    quote = _quote_for_status(db, status, amount, category, base_rate_fallback, now)
    campaign_id = quote.campaign.id if quote.campaign else None

    row = CashbackTransaction(
        user_id=user_id,
        transaction_id=transaction_id,
        transaction_amount=float(transaction_amount),
        cashback_percentage=quote.rate,
        cashback_amount=quote.amount,
        cashback_type="CAMPAIGN" if campaign_id else "TIER",
        status="PENDING",
        campaign_id=campaign_id,
        created_at=now,
    )
    db.add(row)
    try:
        db.flush()
    except IntegrityError as exc:
        logger.warning(
            "cashback grant lost a race on transaction id",
            extra={"user_id": user_id, "transaction_id": transaction_id},
        )
        raise ConflictError("Cashback already granted for this transaction") from exc

    if campaign_id is not None:
        user_campaign = (
            db.query(UserCampaign)
            .filter(UserCampaign.campaign_id == campaign_id)
            .filter(UserCampaign.user_id == user_id)
            .with_for_update()
            .first()
        )
        if user_campaign is None:
            user_campaign = UserCampaign(campaign_id=campaign_id, user_id=user_id, total_earned=0)
            db.add(user_campaign)
        user_campaign.total_earned = round_money(float(user_campaign.total_earned or 0) + quote.amount)

    db.flush()

    record_history(
        db,
        user_id=user_id,
        action_type="CASHBACK_EARNED",
        cashback_change=quote.amount,
        description=f"Cashback earned on transaction {transaction_id}",
        metadata={
            "cashback_transaction_id": str(row.id),
            "transaction_id": transaction_id,
            "campaign_id": str(campaign_id) if campaign_id else None,
            "rate": quote.rate,
        },
        now=now,
    )
    db.flush()

    logger.info(
        "cashback granted",
        extra={
            "user_id": user_id,
            "transaction_id": transaction_id,
            "cashback_amount": quote.amount,
            "campaign_id": str(campaign_id) if campaign_id else None,
        },
    )
    return row, tier, quote


def complete_cashback(db: Session, user_id: str, cashback_id, now: Optional[datetime] = None) -> CashbackTransaction:
    row = (
        db.query(CashbackTransaction)
        .filter(CashbackTransaction.id == cashback_id)
        .filter(CashbackTransaction.user_id == user_id)
        .with_for_update()
        .first()
    )
    if not row:
        raise NotFoundError("Cashback transaction not found")
    if row.status != "PENDING":
        raise ConflictError(f"Cashback transaction is {row.status}, expected PENDING")

    row.status = "COMPLETED"
    row.processed_at = now or utcnow()
    db.flush()
    return row


def cashback_summary(db: Session, user_id: str, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    count, total, avg_rate = (
        db.query(
            func.count(CashbackTransaction.id),
            func.coalesce(func.sum(CashbackTransaction.cashback_amount), 0),
            func.avg(CashbackTransaction.cashback_percentage),
        )
        .filter(CashbackTransaction.user_id == user_id)
        .one()
    )

    by_status = dict(
        db.query(CashbackTransaction.status, func.sum(CashbackTransaction.cashback_amount))
        .filter(CashbackTransaction.user_id == user_id)
        .group_by(CashbackTransaction.status)
        .all()
    )

    current_month = (
        db.query(func.coalesce(func.sum(CashbackTransaction.cashback_amount), 0))
        .filter(CashbackTransaction.user_id == user_id)
        .filter(CashbackTransaction.created_at >= month_start)
        .scalar()
    )

    campaigns_used = (
        db.query(func.count(func.distinct(CashbackTransaction.campaign_id)))
        .filter(CashbackTransaction.user_id == user_id)
        .filter(CashbackTransaction.campaign_id.isnot(None))
        .scalar()
    )

    last_cashback = (
        db.query(func.max(CashbackTransaction.created_at))
        .filter(CashbackTransaction.user_id == user_id)
        .scalar()
    )

    return {
        "userId": user_id,
        "summary": {
            "totalTransactions": int(count or 0),
            "totalEarned": round_money(total or 0),
            "received": round_money(by_status.get("COMPLETED") or 0),
            "pending": round_money(by_status.get("PENDING") or 0),
            "averageRate": float(avg_rate or 0),
            "currentMonthEarned": round_money(current_month or 0),
            "campaignsUsed": int(campaigns_used or 0),
            "lastCashbackDate": last_cashback,
        },
    }


def list_cashback_transactions(
    db: Session,
    user_id: str,
    *,
    page: int,
    limit: int,
    status: Optional[str] = None,
    campaign_id=None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
):
    q = db.query(CashbackTransaction).filter(CashbackTransaction.user_id == user_id)
    if status:
        q = q.filter(CashbackTransaction.status == status)
    if campaign_id:
        q = q.filter(CashbackTransaction.campaign_id == campaign_id)
    if start_date:
        q = q.filter(CashbackTransaction.created_at >= start_date)
    if end_date:
        q = q.filter(CashbackTransaction.created_at <= end_date)

    q = q.order_by(CashbackTransaction.created_at.desc(), CashbackTransaction.id.desc())
    return paginate(q, page, limit)


def serialize_cashback_transaction(t: CashbackTransaction) -> dict:
    return {
        "id": t.id,
        "transactionId": t.transaction_id,
        "transactionAmount": t.transaction_amount,
        "cashbackPercentage": t.cashback_percentage,
        "cashbackAmount": t.cashback_amount,
        "cashbackType": t.cashback_type,
        "status": t.status,
        "campaign": (
            {"id": t.campaign.id, "name": t.campaign.name, "description": t.campaign.description}
            if t.campaign
            else None
        ),
        "processedAt": t.processed_at,
        "createdAt": t.created_at,
    }
