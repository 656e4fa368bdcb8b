import uuid
from sqlalchemy import Column, String, Numeric, TIMESTAMP, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from loyalty_rewards.db import Base


class UserCampaign(Base):
    __tablename__ = "user_campaigns"

    __table_args__ = (UniqueConstraint("campaign_id", "user_id", name="uq_user_campaigns_campaign_user"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    campaign_id = Column(UUID(as_uuid=True), ForeignKey("campaigns.id"), nullable=False)
    user_id = Column(String(100), nullable=False, index=True)

    total_earned = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)

    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())
