from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class RedeemPointsRequest(BaseModel):
    userId: Optional[str] = None
    pointsToRedeem: Optional[int] = None
    redemptionType: Optional[str] = None
    redemptionDetails: Optional[Dict[str, Any]] = None


class EarnPointsRequest(BaseModel):
    userId: Optional[str] = None
    points: int
    description: Optional[str] = None
    expiryDays: Optional[int] = Field(default=None, gt=0)
