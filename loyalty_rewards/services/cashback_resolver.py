"""
Cashback rate resolution.

Pure functions: the caller loads the user's tier benefits and the campaigns
active for the transaction, this module picks the effective rate and the
amount after any campaign cap.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional, Sequence


DEFAULT_CASHBACK_RATE = 0.05

_PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*%")


@dataclass(frozen=True)
class CampaignOffer:
    id: Any
    name: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool = True
    category: Optional[str] = None
    multiplier: Optional[float] = None
    cashback_rate: Optional[float] = None
    min_transaction: Optional[float] = None
    max_cashback: Optional[float] = None
    user_earned: float = 0.0

    @classmethod
    def from_campaign(cls, campaign, user_earned: float = 0.0) -> "CampaignOffer":
        rules = campaign.rules or {}
        rewards = campaign.rewards or {}
        return cls(
            id=campaign.id,
            name=campaign.name,
            start_date=campaign.start_date,
            end_date=campaign.end_date,
            is_active=bool(campaign.is_active),
            category=rules.get("category"),
            multiplier=rules.get("multiplier"),
            cashback_rate=rewards.get("cashback_rate"),
            min_transaction=campaign.min_transaction,
            max_cashback=campaign.max_cashback,
            user_earned=float(user_earned or 0),
        )


@dataclass(frozen=True)
class CashbackQuote:
    base_rate: float
    rate: float
    raw_amount: float
    amount: float
    campaign: Optional[CampaignOffer] = None


def round_money(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def base_rate_from_benefits(
    tier_benefits: Optional[Sequence[str]],
    fallback: float = DEFAULT_CASHBACK_RATE,
) -> float:
    """Parse "<n>% cashback" out of the tier's benefit list."""
    for benefit in tier_benefits or []:
        if not isinstance(benefit, str) or "cashback" not in benefit.lower():
            continue
        match = _PERCENT_RE.search(benefit)
        if match:
            return float(match.group(1)) / 100
        return fallback
    return fallback


def effective_rate(offer: CampaignOffer, base_rate: float) -> float:
    rate = offer.cashback_rate if offer.cashback_rate else base_rate
    multiplier = offer.multiplier if offer.multiplier else 1
    return float(rate) * float(multiplier)


def is_eligible(offer: CampaignOffer, transaction_amount: float, category: Optional[str], now: datetime) -> bool:
    if not offer.is_active:
        return False
    if offer.start_date is not None and offer.start_date > now:
        return False
    if offer.end_date is not None and offer.end_date < now:
        return False
    if offer.min_transaction is not None and float(transaction_amount) < float(offer.min_transaction):
        return False
    if offer.category and offer.category != "all" and offer.category != category:
        return False
    # Capped out once the user has earned the campaign's maximum.
    if offer.max_cashback and offer.user_earned >= float(offer.max_cashback):
        return False
    return True


def select_campaign(
    offers: Iterable[CampaignOffer],
    base_rate: float,
    transaction_amount: float,
    category: Optional[str],
    now: datetime,
) -> tuple[float, Optional[CampaignOffer]]:
    """
    Best campaign strictly above the base rate.

    Highest effective rate wins; equal rates go to the lowest campaign id.
    """
    candidates = [
        (effective_rate(offer, base_rate), offer)
        for offer in offers
        if is_eligible(offer, transaction_amount, category, now)
    ]
    candidates.sort(key=lambda item: (-item[0], str(item[1].id)))

    if candidates and candidates[0][0] > base_rate:
        return candidates[0]
    return base_rate, None


def resolve_cashback(
    transaction_amount: float,
    category: Optional[str],
    tier_benefits: Optional[Sequence[str]],
    active_campaigns: Iterable[CampaignOffer],
    now: datetime,
    base_rate_fallback: float = DEFAULT_CASHBACK_RATE,
) -> CashbackQuote:
    base_rate = base_rate_from_benefits(tier_benefits, base_rate_fallback)
    rate, campaign = select_campaign(active_campaigns, base_rate, transaction_amount, category, now)

    raw_amount = float(transaction_amount) * rate
    amount = raw_amount
    if campaign is not None and campaign.max_cashback:
        remaining_cap = float(campaign.max_cashback) - campaign.user_earned
        amount = min(raw_amount, remaining_cap)

    return CashbackQuote(
        base_rate=base_rate,
        rate=rate,
        raw_amount=round_money(raw_amount),
        amount=round_money(amount),
        campaign=campaign,
    )
