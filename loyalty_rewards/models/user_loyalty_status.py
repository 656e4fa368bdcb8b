import uuid
from sqlalchemy import Column, String, Numeric, TIMESTAMP, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from loyalty_rewards.db import Base


class UserLoyaltyStatus(Base):
    __tablename__ = "user_loyalty_status"

    __table_args__ = (
        UniqueConstraint("user_id", "loyalty_program_id", name="uq_user_loyalty_status_user_program"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id = Column(String(100), nullable=False, index=True)
    loyalty_program_id = Column(UUID(as_uuid=True), ForeignKey("loyalty_programs.id"), nullable=False)

    current_tier = Column(String(50), nullable=False)
    total_spending = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    tier_progress = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)

    tier_achieved_date = Column(TIMESTAMP)
    tier_expiry_date = Column(TIMESTAMP)

    last_updated = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    loyalty_program = relationship("LoyaltyProgram", lazy="joined")
