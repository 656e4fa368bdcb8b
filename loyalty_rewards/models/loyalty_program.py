import uuid
from sqlalchemy import Column, String, Boolean, Numeric, TIMESTAMP, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from loyalty_rewards.db import Base


class LoyaltyProgram(Base):
    __tablename__ = "loyalty_programs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name = Column(String(100), nullable=False)
    description = Column(String(255))

    tier_type = Column(String(50), nullable=False, default="SPENDING")

    # {"bronze": ["1% cashback", ...], "silver": [...]}
    benefits = Column(JSON, nullable=False, default=dict)
    # {"bronze": 0, "silver": 1000, "gold": 5000}
    requirements = Column(JSON, nullable=False, default=dict)

    min_spending = Column(Numeric(12, 2, asdecimal=False))
    max_spending = Column(Numeric(12, 2, asdecimal=False))

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(TIMESTAMP, server_default=func.now())
