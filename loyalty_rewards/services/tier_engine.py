"""
Tier resolution for spending based loyalty programs.

A program's requirement table maps tier name -> minimum cumulative spend and
carries no explicit ordering. Rank is always derived from the requirement
values (ascending), ties falling back to declaration order.
"""

from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass(frozen=True)
class TierResolution:
    tier: str
    next_tier: Optional[str]
    next_requirement: Optional[float]
    progress_percentage: float

    def changed_from(self, current_tier: str) -> bool:
        return self.tier != current_tier


def rank_tiers(requirements: Mapping[str, float]) -> list[tuple[str, float]]:
    """Tiers ordered lowest rank first."""
    indexed = [(index, name, float(value)) for index, (name, value) in enumerate((requirements or {}).items())]
    indexed.sort(key=lambda item: (item[2], item[0]))
    return [(name, value) for _, name, value in indexed]


def lowest_tier(requirements: Mapping[str, float]) -> Optional[str]:
    ladder = rank_tiers(requirements)
    return ladder[0][0] if ladder else None


def qualifying_tier(requirements: Mapping[str, float], spending: float) -> Optional[str]:
    # Descending scan: highest requirement first, earlier declaration first on ties.
    indexed = [(index, name, float(value)) for index, (name, value) in enumerate((requirements or {}).items())]
    indexed.sort(key=lambda item: (-item[2], item[0]))
    for _, name, value in indexed:
        if float(spending) >= value:
            return name
    return None


def next_tier_after(
    requirements: Mapping[str, float],
    tier: Optional[str],
    spending: float,
) -> tuple[Optional[str], Optional[float]]:
    ladder = rank_tiers(requirements)
    names = [name for name, _ in ladder]

    if tier in names:
        position = names.index(tier)
        if position + 1 < len(ladder):
            return ladder[position + 1]
        return None, None

    for name, value in ladder:
        if value > float(spending):
            return name, value
    return None, None


def progress_percentage(spending: float, next_requirement: Optional[float]) -> float:
    if not next_requirement:
        return 100.0
    return min(float(spending) / float(next_requirement) * 100, 100.0)


def resolve_tier(requirements: Mapping[str, float], current_tier: str, spending: float) -> TierResolution:
    """
    Resolve the tier a spending figure earns.

    The new tier is the highest ranked tier whose requirement is <= spending.
    When no tier qualifies the current tier is kept.
    """
    tier = qualifying_tier(requirements, spending) or current_tier
    next_tier, next_requirement = next_tier_after(requirements, tier, spending)

    return TierResolution(
        tier=tier,
        next_tier=next_tier,
        next_requirement=next_requirement,
        progress_percentage=progress_percentage(spending, next_requirement),
    )
