from typing import Optional

from uuid import UUID

from pydantic import BaseModel


class UpgradeTierRequest(BaseModel):
    totalSpending: Optional[float] = None


class EnrollRequest(BaseModel):
    userId: Optional[str] = None
    loyaltyProgramId: UUID
    totalSpending: Optional[float] = 0


def serialize_program(program) -> dict:
    return {
        "id": program.id,
        "name": program.name,
        "description": program.description,
        "tierType": program.tier_type,
        "benefits": program.benefits,
        "requirements": program.requirements,
        "spendingRange": {
            "min": program.min_spending or 0,
            "max": program.max_spending,
        },
        "createdAt": program.created_at,
    }
