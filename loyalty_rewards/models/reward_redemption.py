import uuid
from sqlalchemy import Column, Integer, String, Numeric, TIMESTAMP, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from loyalty_rewards.db import Base


class RewardRedemption(Base):
    __tablename__ = "reward_redemptions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id = Column(String(100), nullable=False, index=True)

    points_used = Column(Integer, nullable=False)
    redemption_type = Column(String(50), nullable=False)
    redemption_details = Column(JSON, default=dict)

    cash_value = Column(Numeric(12, 2, asdecimal=False), nullable=False)

    status = Column(String(20), nullable=False, default="COMPLETED")

    processed_at = Column(TIMESTAMP)
    created_at = Column(TIMESTAMP, server_default=func.now())
