"""
SQLAlchemy database models for persistent storage.
"""
from sqlalchemy import Boolean, Column, DateTime, Enum, Index, Integer, String

from celebstyle_gateway.database import Base
from celebstyle_gateway.plans import FREE_USAGE_LIMIT, Plan
from celebstyle_gateway.quota import QuotaState
from celebstyle_gateway.timeutils import as_utc, utcnow


class ApiKeyRecord(Base):
    """One issued API key with its plan and usage counters."""
    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(128), unique=True, nullable=False)
    key_hash = Column(String(64), unique=True, index=True, nullable=False)
    owner_email = Column(String(320), index=True, nullable=False)
    usage = Column(Integer, default=0, nullable=False)
    usage_limit = Column(Integer, default=FREE_USAGE_LIMIT, nullable=False)
    last_reset = Column(DateTime(timezone=True), default=utcnow, nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    plan = Column(
        Enum(
            Plan,
            name="api_key_plan",
            native_enum=False,
            length=8,
            values_callable=lambda plans: [p.value for p in plans],
        ),
        default=Plan.FREE,
        nullable=False,
    )
    price_paid = Column(Integer, default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_api_keys_hash_active", "key_hash", "active"),
        Index("idx_api_keys_owner_active", "owner_email", "active"),
    )

    def quota_state(self) -> QuotaState:
        return QuotaState(
            plan=Plan(self.plan),
            usage=self.usage,
            usage_limit=self.usage_limit,
            last_reset=as_utc(self.last_reset),
            valid_until=as_utc(self.valid_until),
            price_paid=self.price_paid,
        )

    def apply_quota_state(self, state: QuotaState) -> None:
        self.plan = state.plan
        self.usage = state.usage
        self.usage_limit = state.usage_limit
        self.last_reset = state.last_reset
        self.valid_until = state.valid_until
        self.price_paid = state.price_paid

    @property
    def remaining(self) -> int:
        return self.usage_limit - self.usage

    def __repr__(self) -> str:
        return f"<ApiKeyRecord id={self.id} owner={self.owner_email!r} plan={self.plan}>"
