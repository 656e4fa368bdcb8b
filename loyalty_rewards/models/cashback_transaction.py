import uuid
from sqlalchemy import Column, String, Numeric, TIMESTAMP, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from loyalty_rewards.db import Base


class CashbackTransaction(Base):
    __tablename__ = "cashback_transactions"

    __table_args__ = (
        UniqueConstraint("user_id", "transaction_id", name="uq_cashback_transactions_user_transaction"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id = Column(String(100), nullable=False, index=True)
    transaction_id = Column(String(100), nullable=False)

    transaction_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    cashback_percentage = Column(Numeric(8, 4, asdecimal=False), nullable=False)
    cashback_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)

    cashback_type = Column(String(20), nullable=False, default="TIER")  # TIER / CAMPAIGN
    status = Column(String(20), nullable=False, default="PENDING")
    # PENDING | COMPLETED | CANCELLED

    campaign_id = Column(UUID(as_uuid=True), ForeignKey("campaigns.id"), nullable=True)

    processed_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, server_default=func.now())

    campaign = relationship("Campaign")
