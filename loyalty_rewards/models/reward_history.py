import uuid
from sqlalchemy import Column, Integer, String, Numeric, TIMESTAMP, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from loyalty_rewards.db import Base


class RewardHistory(Base):
    __tablename__ = "reward_history"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id = Column(String(100), nullable=False, index=True)

    action_type = Column(String(30), nullable=False)
    # PROGRAM_ENROLLED | TIER_UPGRADE | POINTS_EARNED | POINTS_REDEEMED | POINTS_EXPIRED | CASHBACK_EARNED

    points_change = Column(Integer, nullable=False, default=0)
    cashback_change = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)

    description = Column(String(255))
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, default=dict)

    created_at = Column(TIMESTAMP, server_default=func.now())
