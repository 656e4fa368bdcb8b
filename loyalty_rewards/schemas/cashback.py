from typing import Optional

from pydantic import BaseModel


class CashbackRequest(BaseModel):
    userId: Optional[str] = None
    transactionAmount: Optional[float] = None
    transactionId: Optional[str] = None
    category: Optional[str] = None
