import uuid
from sqlalchemy import CheckConstraint, Column, Index, Integer, String, TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from loyalty_rewards.db import Base


class RewardPoints(Base):
    """
    One lot of points. Lots are consumed oldest first.

    points_available + points_redeemed + points_expired <= points_earned
    """

    __tablename__ = "reward_points"

    __table_args__ = (
        CheckConstraint(
            "points_available + points_redeemed + points_expired <= points_earned",
            name="ck_reward_points_balance",
        ),
        Index("ix_reward_points_user_id_created_at", "user_id", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id = Column(String(100), nullable=False)

    points_earned = Column(Integer, nullable=False)
    points_available = Column(Integer, nullable=False)
    points_redeemed = Column(Integer, nullable=False, default=0)
    points_expired = Column(Integer, nullable=False, default=0)

    expiry_date = Column(TIMESTAMP, nullable=True)

    created_at = Column(TIMESTAMP, server_default=func.now())
