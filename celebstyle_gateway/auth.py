"""
Authentication module with API key management
Provides API key issuance, plan upgrades and the per-request quota gate
"""
import hashlib
import hmac
import secrets
from datetime import datetime
from typing import Optional, Tuple

from email_validator import EmailNotValidError, validate_email
from fastapi import Depends, Header, Request, Security
from fastapi.security import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.orm import Session

from celebstyle_gateway.config import settings
from celebstyle_gateway.database import get_db
from celebstyle_gateway.db_models import ApiKeyRecord
from celebstyle_gateway.errors import (
    CredentialMissing,
    GatewayError,
    InvalidInput,
    InvalidOrInactiveKey,
    InvalidPlan,
    KeyNotFound,
    PlanExpired,
    QuotaExceeded,
)
from celebstyle_gateway.health import metrics
from celebstyle_gateway.logging_config import (
    get_logger,
    log_key_issued,
    log_plan_expired,
    log_plan_upgraded,
    log_quota_rejected,
)
from celebstyle_gateway.plans import (
    FREE_USAGE_LIMIT,
    PAID_PLAN_DURATION,
    Plan,
    parse_paid_plan,
    plan_terms,
)
from celebstyle_gateway.quota import Decision, apply_daily_reset, evaluate
from celebstyle_gateway.timeutils import utcnow

# API key header scheme
API_KEY_HEADER_NAME = "api_key"
api_key_header = APIKeyHeader(name=API_KEY_HEADER_NAME, auto_error=False)

logger = get_logger(__name__)


class APIKeyManager:
    """Manage API key issuance, plan changes and request admission"""

    def __init__(self, db: Session, salt: Optional[str] = None, key_prefix: Optional[str] = None):
        """
        Initialize API key manager

        Args:
            db: Database session the manager reads and writes through
            salt: Secret salt for key hashing (from environment)
            key_prefix: Prefix prepended to generated keys
        """
        self.db = db
        self.salt = settings.api_key_salt if salt is None else salt
        self.key_prefix = settings.api_key_prefix if key_prefix is None else key_prefix

    def _generate_raw_key(self) -> str:
        return f"{self.key_prefix}{secrets.token_urlsafe(32)}"

    def _hash_api_key(self, raw_key: str) -> str:
        """Hash API key with salt"""
        salted = f"{raw_key}{self.salt}".encode()
        return hashlib.sha256(salted).hexdigest()

    @staticmethod
    def _require_email(owner_email: Optional[str]) -> str:
        if not owner_email or not owner_email.strip():
            raise InvalidInput("Email required")
        owner_email = owner_email.strip()
        try:
            validate_email(owner_email, check_deliverability=False)
        except EmailNotValidError:
            raise InvalidInput("Invalid email address")
        return owner_email

    def _find_active_by_hash(self, raw_key: str) -> Optional[ApiKeyRecord]:
        key_hash = self._hash_api_key(raw_key)
        stmt = select(ApiKeyRecord).where(
            ApiKeyRecord.key_hash == key_hash,
            ApiKeyRecord.active.is_(True),
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def _find_active_by_owner(self, owner_email: str) -> Optional[ApiKeyRecord]:
        stmt = (
            select(ApiKeyRecord)
            .where(ApiKeyRecord.owner_email == owner_email, ApiKeyRecord.active.is_(True))
            .order_by(ApiKeyRecord.id)
            .limit(1)
        )
        return self.db.execute(stmt).scalars().first()

    def validate_api_key(self, raw_key: Optional[str], now: Optional[datetime] = None) -> ApiKeyRecord:
        """
        Validate API key against its plan and count the request

        Args:
            raw_key: The raw API key from request
            now: Evaluation time (defaults to current UTC time)

        Returns:
            The admitted key record, with usage already incremented

        Raises:
            CredentialMissing: No key presented
            InvalidOrInactiveKey: Unknown or deactivated key
            PlanExpired: Paid plan lapsed; the key has been reverted to free
            QuotaExceeded: Usage limit reached for the current period
        """
        if not raw_key:
            raise CredentialMissing()

        record = self._find_active_by_hash(raw_key)
        if record is None:
            raise InvalidOrInactiveKey()

        now = now or utcnow()
        previous = record.quota_state()
        evaluation = evaluate(previous, now)

        if evaluation.changed:
            record.apply_quota_state(evaluation.state)
            self.db.commit()

        if evaluation.decision is Decision.PLAN_EXPIRED:
            log_plan_expired(raw_key, previous.plan.value, previous.valid_until, key_id=record.id)
            raise PlanExpired()
        if evaluation.decision is Decision.QUOTA_EXCEEDED_DAILY:
            log_quota_rejected(raw_key, record.plan.value, record.usage_limit, record.usage, key_id=record.id)
            raise QuotaExceeded.daily()
        if evaluation.decision is Decision.QUOTA_EXCEEDED_MONTHLY:
            log_quota_rejected(raw_key, record.plan.value, record.usage_limit, record.usage, key_id=record.id)
            raise QuotaExceeded.monthly()

        return record

    def register(self, owner_email: Optional[str], now: Optional[datetime] = None) -> Tuple[str, ApiKeyRecord]:
        """
        Issue a new free-plan key for an owner

        Returns:
            Tuple of (raw_key, record); the raw key is shown to the owner once
        """
        owner_email = self._require_email(owner_email)
        now = now or utcnow()

        raw_key = self._generate_raw_key()
        record = ApiKeyRecord(
            key=raw_key,
            key_hash=self._hash_api_key(raw_key),
            owner_email=owner_email,
            usage=0,
            usage_limit=FREE_USAGE_LIMIT,
            last_reset=now,
            valid_until=None,
            plan=Plan.FREE,
            price_paid=0,
            active=True,
        )
        self.db.add(record)
        self.db.commit()

        log_key_issued(owner_email, raw_key, "register", key_id=record.id)
        return raw_key, record

    def lookup_by_owner(self, owner_email: Optional[str]) -> ApiKeyRecord:
        """Return the owner's active key record for the dashboard"""
        if not owner_email or not owner_email.strip():
            raise InvalidInput("Email required")
        record = self._find_active_by_owner(owner_email.strip())
        if record is None:
            raise KeyNotFound("API key not found for this email")
        return record

    def regenerate(self, owner_email: Optional[str], now: Optional[datetime] = None) -> Tuple[str, ApiKeyRecord]:
        """
        Replace the owner's key with a fresh one

        Usage counters restart; plan, limit, expiry and price are kept.
        """
        record = self.lookup_by_owner(owner_email)
        now = now or utcnow()

        raw_key = self._generate_raw_key()
        record.key = raw_key
        record.key_hash = self._hash_api_key(raw_key)
        record.usage = 0
        record.last_reset = now
        self.db.commit()

        log_key_issued(record.owner_email, raw_key, "regenerate", key_id=record.id)
        return raw_key, record

    def upgrade(self, raw_key: Optional[str], plan: Optional[str], now: Optional[datetime] = None) -> ApiKeyRecord:
        """
        Move a key onto a paid plan for the next 30 days

        Also used to renew a lapsed or current paid plan.

        Raises:
            InvalidInput: Key or plan missing
            InvalidPlan: Plan is not a purchasable tier
            KeyNotFound: No active key matches
        """
        if not raw_key or not plan:
            raise InvalidInput("API key and plan required")

        target = parse_paid_plan(plan)
        if target is None:
            raise InvalidPlan()

        record = self._find_active_by_hash(raw_key)
        if record is None:
            raise KeyNotFound()

        now = now or utcnow()
        terms = plan_terms(target)
        record.plan = target
        record.usage_limit = terms.usage_limit
        record.usage = 0
        record.last_reset = now
        record.valid_until = now + PAID_PLAN_DURATION
        record.price_paid = terms.price
        self.db.commit()

        log_plan_upgraded(raw_key, target.value, terms.price, key_id=record.id)
        return record

    def usage_report(self, raw_key: Optional[str], now: Optional[datetime] = None) -> ApiKeyRecord:
        """
        Current usage of a key without counting a request

        Rolls a free key over to the new day when needed; expiry of paid
        plans is left to the gateway.
        """
        if not raw_key:
            raise InvalidInput("API key required in header")

        record = self._find_active_by_hash(raw_key)
        if record is None:
            raise KeyNotFound()

        now = now or utcnow()
        current = record.quota_state()
        rolled = apply_daily_reset(current, now)
        if rolled != current:
            record.apply_quota_state(rolled)
            self.db.commit()
        return record

    def deactivate(self, owner_email: Optional[str]) -> int:
        """
        Deactivate every active key of an owner

        Returns:
            Number of keys deactivated
        """
        if not owner_email or not owner_email.strip():
            raise InvalidInput("Email required")
        stmt = select(ApiKeyRecord).where(
            ApiKeyRecord.owner_email == owner_email.strip(),
            ApiKeyRecord.active.is_(True),
        )
        records = self.db.execute(stmt).scalars().all()
        if not records:
            raise KeyNotFound("API key not found for this email")
        for record in records:
            record.active = False
        self.db.commit()
        logger.info("api_keys_deactivated", count=len(records), key_ids=[r.id for r in records])
        return len(records)


def get_api_key_manager(db: Session = Depends(get_db)) -> APIKeyManager:
    """FastAPI dependency providing a manager bound to the request's session"""
    return APIKeyManager(db)


# FastAPI dependency
def require_api_key(
    request: Request,
    api_key: Optional[str] = Security(api_key_header),
    manager: APIKeyManager = Depends(get_api_key_manager),
) -> ApiKeyRecord:
    """
    FastAPI dependency to gate an endpoint behind a metered API key

    Usage:
        @router.get("/endpoint")
        def endpoint(api_key: ApiKeyRecord = Depends(require_api_key)):
            ...
    """
    try:
        record = manager.validate_api_key(api_key)
    except GatewayError as exc:
        metrics.increment_gateway(admitted=False, reason=type(exc).__name__)
        raise
    metrics.increment_gateway(admitted=True)
    request.state.api_key = record
    return record


def verify_admin_password(password: Optional[str]) -> bool:
    """Verify admin password"""
    if not password:
        return False
    return hmac.compare_digest(password.encode(), settings.admin_password.encode())


def require_admin(x_admin_password: Optional[str] = Header(default=None)) -> None:
    """FastAPI dependency for administrative endpoints"""
    if not verify_admin_password(x_admin_password):
        raise CredentialMissing("Admin credentials required")
