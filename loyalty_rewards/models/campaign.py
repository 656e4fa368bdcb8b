import uuid
from sqlalchemy import Column, String, Boolean, Numeric, TIMESTAMP, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from loyalty_rewards.db import Base


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name = Column(String(100), nullable=False)
    description = Column(String(255))

    is_active = Column(Boolean, nullable=False, default=True)

    start_date = Column(TIMESTAMP, nullable=False)
    end_date = Column(TIMESTAMP, nullable=False)

    min_transaction = Column(Numeric(12, 2, asdecimal=False), nullable=True)
    max_cashback = Column(Numeric(12, 2, asdecimal=False), nullable=True)

    rules = Column(JSON, default=dict)
    # ex: {"category": "travel", "multiplier": 2}

    rewards = Column(JSON, default=dict)
    # ex: {"cashback_rate": 0.08}

    created_at = Column(TIMESTAMP, server_default=func.now())
