"""
Unit tests for authentication module
Tests key issuance, gateway admission, plan upgrades, expiry and regeneration
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from celebstyle_gateway.auth import APIKeyManager, verify_admin_password
from celebstyle_gateway.db_models import ApiKeyRecord
from celebstyle_gateway.errors import (
    CredentialMissing,
    InvalidInput,
    InvalidOrInactiveKey,
    InvalidPlan,
    KeyNotFound,
    PlanExpired,
    QuotaExceeded,
)
from celebstyle_gateway.plans import Plan
from celebstyle_gateway.timeutils import as_utc

NOW = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)
EMAIL = "stylist@example.com"


class TestRegister:
    """Key issuance"""

    def test_generate_api_key_format(self, manager):
        raw_key, record = manager.register(EMAIL, now=NOW)

        assert raw_key.startswith("csk_")
        assert len(raw_key) > 40
        assert record.id is not None

    def test_register_stores_free_defaults(self, manager):
        raw_key, record = manager.register(EMAIL, now=NOW)

        assert record.owner_email == EMAIL
        assert record.plan == Plan.FREE
        assert record.usage == 0
        assert record.usage_limit == 100
        assert record.price_paid == 0
        assert record.active is True
        assert record.valid_until is None
        assert as_utc(record.last_reset) == NOW

    def test_register_stores_hash_of_key(self, manager):
        raw_key, record = manager.register(EMAIL, now=NOW)

        assert record.key_hash == manager._hash_api_key(raw_key)
        assert record.key_hash != raw_key
        assert len(record.key_hash) == 64

    def test_register_missing_email(self, manager):
        with pytest.raises(InvalidInput) as exc_info:
            manager.register(None)
        assert exc_info.value.message == "Email required"

    def test_register_blank_email(self, manager):
        with pytest.raises(InvalidInput):
            manager.register("   ")

    def test_register_malformed_email(self, manager):
        with pytest.raises(InvalidInput) as exc_info:
            manager.register("not-an-email")
        assert "Invalid email" in exc_info.value.message

    def test_register_twice_for_same_owner_creates_two_keys(self, manager, db_session):
        """No dedup check on registration"""
        first, _ = manager.register(EMAIL, now=NOW)
        second, _ = manager.register(EMAIL, now=NOW)

        assert first != second
        records = db_session.execute(
            select(ApiKeyRecord).where(ApiKeyRecord.owner_email == EMAIL)
        ).scalars().all()
        assert len(records) == 2

    def test_keys_are_unique(self, manager):
        keys = {manager.register(f"user{i}@example.com", now=NOW)[0] for i in range(10)}
        assert len(keys) == 10


class TestValidateApiKey:
    """The per-request gate"""

    def test_missing_key(self, manager):
        with pytest.raises(CredentialMissing) as exc_info:
            manager.validate_api_key(None)
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "API key required in header"

    def test_empty_key(self, manager):
        with pytest.raises(CredentialMissing):
            manager.validate_api_key("")

    def test_unknown_key(self, manager):
        with pytest.raises(InvalidOrInactiveKey) as exc_info:
            manager.validate_api_key("csk_not_a_real_key", now=NOW)
        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Invalid or inactive API key"

    def test_admit_increments_usage(self, manager):
        raw_key, _ = manager.register(EMAIL, now=NOW)

        for expected in range(1, 6):
            record = manager.validate_api_key(raw_key, now=NOW)
            assert record.usage == expected

    def test_usage_persisted(self, manager, session_factory):
        raw_key, record = manager.register(EMAIL, now=NOW)
        manager.validate_api_key(raw_key, now=NOW)
        manager.validate_api_key(raw_key, now=NOW)

        with session_factory() as other:
            assert other.get(ApiKeyRecord, record.id).usage == 2

    def test_scenario_a_last_free_request(self, manager, db_session):
        raw_key, record = manager.register(EMAIL, now=NOW)
        record.usage = 99
        db_session.commit()

        admitted = manager.validate_api_key(raw_key, now=NOW)
        assert admitted.usage == 100

        with pytest.raises(QuotaExceeded) as exc_info:
            manager.validate_api_key(raw_key, now=NOW + timedelta(hours=1))
        assert exc_info.value.status_code == 429
        assert exc_info.value.message == "API usage limit reached. Please wait for daily reset."
        assert record.usage == 100

    def test_daily_reset_on_next_utc_date(self, manager, db_session):
        raw_key, record = manager.register(EMAIL, now=NOW)
        record.usage = 100
        db_session.commit()

        tomorrow = NOW + timedelta(days=1)
        admitted = manager.validate_api_key(raw_key, now=tomorrow)

        assert admitted.usage == 1
        assert as_utc(admitted.last_reset) == tomorrow

    def test_inactive_key_rejected_regardless_of_state(self, manager, db_session):
        raw_key, record = manager.register(EMAIL, now=NOW)
        manager.upgrade(raw_key, "1m", now=NOW)
        record.active = False
        db_session.commit()

        with pytest.raises(InvalidOrInactiveKey):
            manager.validate_api_key(raw_key, now=NOW)
        # Even once the plan would have expired, nothing changes for it.
        with pytest.raises(InvalidOrInactiveKey):
            manager.validate_api_key(raw_key, now=NOW + timedelta(days=60))
        assert record.plan == Plan.P1M

    def test_scenario_b_expired_paid_plan(self, manager, db_session):
        raw_key, record = manager.register(EMAIL, now=NOW)
        manager.upgrade(raw_key, "100k", now=NOW - timedelta(days=30, seconds=1))
        record.usage = 5
        db_session.commit()

        with pytest.raises(PlanExpired) as exc_info:
            manager.validate_api_key(raw_key, now=NOW)

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Plan expired. Please renew."
        db_session.expire_all()
        stored = db_session.get(ApiKeyRecord, record.id)
        assert stored.plan == Plan.FREE
        assert stored.usage_limit == 100
        assert stored.usage == 0
        assert stored.valid_until is None
        assert stored.price_paid == 0

    def test_request_after_expiry_evaluated_as_free(self, manager):
        raw_key, _ = manager.register(EMAIL, now=NOW)
        manager.upgrade(raw_key, "10m", now=NOW - timedelta(days=31))

        with pytest.raises(PlanExpired):
            manager.validate_api_key(raw_key, now=NOW)

        record = manager.validate_api_key(raw_key, now=NOW)
        assert record.plan == Plan.FREE
        assert record.usage == 1

    def test_paid_quota_exhausted(self, manager, db_session):
        raw_key, record = manager.register(EMAIL, now=NOW)
        manager.upgrade(raw_key, "100k", now=NOW)
        record.usage = 100_000
        db_session.commit()

        with pytest.raises(QuotaExceeded) as exc_info:
            manager.validate_api_key(raw_key, now=NOW + timedelta(days=2))
        assert exc_info.value.message == "API usage limit reached for this month. Please renew."

    def test_paid_plan_ignores_date_change(self, manager):
        raw_key, _ = manager.register(EMAIL, now=NOW)
        manager.upgrade(raw_key, "100k", now=NOW)
        manager.validate_api_key(raw_key, now=NOW)

        record = manager.validate_api_key(raw_key, now=NOW + timedelta(days=3))
        assert record.usage == 2


class TestUpgrade:

    def test_upgrade_sets_window(self, manager):
        raw_key, _ = manager.register(EMAIL, now=NOW)
        manager.validate_api_key(raw_key, now=NOW)

        record = manager.upgrade(raw_key, "100k", now=NOW)

        assert record.plan == Plan.P100K
        assert record.usage_limit == 100_000
        assert record.usage == 0
        assert as_utc(record.last_reset) == NOW
        assert as_utc(record.valid_until) == NOW + timedelta(days=30)
        assert record.price_paid == 300

    @pytest.mark.parametrize("plan,limit,price", [
        ("1m", 1_000_000, 1000),
        ("10m", 10_000_000, 5000),
    ])
    def test_upgrade_catalog(self, manager, plan, limit, price):
        raw_key, _ = manager.register(EMAIL, now=NOW)

        record = manager.upgrade(raw_key, plan, now=NOW)

        assert record.usage_limit == limit
        assert record.price_paid == price

    def test_upgrade_renews_paid_plan(self, manager):
        raw_key, _ = manager.register(EMAIL, now=NOW)
        manager.upgrade(raw_key, "100k", now=NOW - timedelta(days=20))

        record = manager.upgrade(raw_key, "1m", now=NOW)

        assert record.plan == Plan.P1M
        assert as_utc(record.valid_until) == NOW + timedelta(days=30)

    @pytest.mark.parametrize("plan", ["free", "5k", "1M", "premium"])
    def test_upgrade_invalid_plan(self, manager, plan):
        raw_key, _ = manager.register(EMAIL, now=NOW)

        with pytest.raises(InvalidPlan) as exc_info:
            manager.upgrade(raw_key, plan, now=NOW)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid plan"

    def test_upgrade_unknown_key(self, manager):
        with pytest.raises(KeyNotFound) as exc_info:
            manager.upgrade("csk_unknown", "100k", now=NOW)
        assert exc_info.value.status_code == 404

    def test_plan_checked_before_key(self, manager):
        with pytest.raises(InvalidPlan):
            manager.upgrade("csk_unknown", "gold", now=NOW)

    @pytest.mark.parametrize("raw_key,plan", [(None, "100k"), ("csk_x", None), ("", "")])
    def test_upgrade_missing_input(self, manager, raw_key, plan):
        with pytest.raises(InvalidInput) as exc_info:
            manager.upgrade(raw_key, plan)
        assert exc_info.value.message == "API key and plan required"

    def test_upgrade_inactive_key(self, manager, db_session):
        raw_key, record = manager.register(EMAIL, now=NOW)
        record.active = False
        db_session.commit()

        with pytest.raises(KeyNotFound):
            manager.upgrade(raw_key, "100k", now=NOW)


class TestLookupAndRegenerate:

    def test_lookup_returns_plaintext_key(self, manager):
        """Scenario C: the dashboard shows the same key that was issued"""
        raw_key, _ = manager.register("a@x.com", now=NOW)

        record = manager.lookup_by_owner("a@x.com")

        assert record.key == raw_key
        assert record.remaining == 100

    def test_lookup_unknown_owner(self, manager):
        with pytest.raises(KeyNotFound) as exc_info:
            manager.lookup_by_owner("nobody@example.com")
        assert exc_info.value.message == "API key not found for this email"

    def test_lookup_missing_email(self, manager):
        with pytest.raises(InvalidInput):
            manager.lookup_by_owner("")

    def test_lookup_returns_oldest_active_key(self, manager, db_session):
        first, first_record = manager.register(EMAIL, now=NOW)
        second, _ = manager.register(EMAIL, now=NOW)

        assert manager.lookup_by_owner(EMAIL).key == first

        first_record.active = False
        db_session.commit()
        assert manager.lookup_by_owner(EMAIL).key == second

    def test_regenerate_preserves_plan(self, manager):
        raw_key, _ = manager.register(EMAIL, now=NOW)
        upgraded = manager.upgrade(raw_key, "1m", now=NOW)
        valid_until = as_utc(upgraded.valid_until)
        manager.validate_api_key(raw_key, now=NOW)
        old_hash = upgraded.key_hash

        later = NOW + timedelta(days=2)
        new_key, record = manager.regenerate(EMAIL, now=later)

        assert new_key != raw_key
        assert record.key == new_key
        assert record.key_hash != old_hash
        assert record.key_hash == manager._hash_api_key(new_key)
        assert record.usage == 0
        assert as_utc(record.last_reset) == later
        assert record.plan == Plan.P1M
        assert record.usage_limit == 1_000_000
        assert as_utc(record.valid_until) == valid_until
        assert record.price_paid == 1000

    def test_regenerate_invalidates_old_key(self, manager):
        raw_key, _ = manager.register(EMAIL, now=NOW)
        new_key, _ = manager.regenerate(EMAIL, now=NOW)

        with pytest.raises(InvalidOrInactiveKey):
            manager.validate_api_key(raw_key, now=NOW)
        assert manager.validate_api_key(new_key, now=NOW).usage == 1

    def test_regenerate_unknown_owner(self, manager):
        with pytest.raises(KeyNotFound):
            manager.regenerate("nobody@example.com")


class TestUsageReport:

    def test_report_does_not_count(self, manager):
        raw_key, _ = manager.register(EMAIL, now=NOW)
        manager.validate_api_key(raw_key, now=NOW)

        record = manager.usage_report(raw_key, now=NOW)
        record = manager.usage_report(raw_key, now=NOW)

        assert record.usage == 1

    def test_report_rolls_free_key_to_new_day(self, manager, db_session):
        raw_key, record = manager.register(EMAIL, now=NOW)
        record.usage = 42
        db_session.commit()

        report = manager.usage_report(raw_key, now=NOW + timedelta(days=1))

        assert report.usage == 0
        assert report.remaining == 100

    def test_report_leaves_expired_plan_for_gateway(self, manager):
        raw_key, _ = manager.register(EMAIL, now=NOW)
        manager.upgrade(raw_key, "100k", now=NOW - timedelta(days=40))

        report = manager.usage_report(raw_key, now=NOW)

        assert report.plan == Plan.P100K

    def test_report_missing_key(self, manager):
        with pytest.raises(InvalidInput):
            manager.usage_report(None)

    def test_report_unknown_key(self, manager):
        with pytest.raises(KeyNotFound):
            manager.usage_report("csk_unknown", now=NOW)


class TestDeactivate:

    def test_deactivate_all_owner_keys(self, manager):
        first, _ = manager.register(EMAIL, now=NOW)
        second, _ = manager.register(EMAIL, now=NOW)

        assert manager.deactivate(EMAIL) == 2

        for raw_key in (first, second):
            with pytest.raises(InvalidOrInactiveKey):
                manager.validate_api_key(raw_key, now=NOW)

    def test_deactivate_unknown_owner(self, manager):
        with pytest.raises(KeyNotFound):
            manager.deactivate("nobody@example.com")

    def test_deactivated_owner_has_no_dashboard(self, manager):
        manager.register(EMAIL, now=NOW)
        manager.deactivate(EMAIL)

        with pytest.raises(KeyNotFound):
            manager.lookup_by_owner(EMAIL)


class TestHashing:

    def test_hash_api_key_consistency(self, manager):
        assert manager._hash_api_key("csk_test_key_123") == manager._hash_api_key("csk_test_key_123")

    def test_hash_api_key_different_keys(self, manager):
        assert manager._hash_api_key("csk_key1") != manager._hash_api_key("csk_key2")

    def test_hash_api_key_uses_salt(self, db_session):
        manager1 = APIKeyManager(db_session, salt="salt1")
        manager2 = APIKeyManager(db_session, salt="salt2")

        assert manager1._hash_api_key("csk_test") != manager2._hash_api_key("csk_test")

    def test_unsalted_hash_is_plain_sha256(self, db_session):
        manager = APIKeyManager(db_session, salt="")
        assert manager._hash_api_key("abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_key_from_other_salt_rejected(self, manager, db_session):
        raw_key, _ = manager.register(EMAIL, now=NOW)
        other = APIKeyManager(db_session, salt="different-salt")

        with pytest.raises(InvalidOrInactiveKey):
            other.validate_api_key(raw_key, now=NOW)


class TestAdminPassword:

    def test_correct_password(self, test_admin_password):
        assert verify_admin_password(test_admin_password) is True

    @pytest.mark.parametrize("password", [None, "", "wrong"])
    def test_wrong_password(self, password):
        assert verify_admin_password(password) is False


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--cov=celebstyle_gateway.auth", "--cov-report=term-missing"])
