# backend/tests/services/test_ledger_store.py
"""
Tests for the Ledger, User and Instrument stores.

Test Coverage:
- Reward append: validation before any write, unknown instrument
- Half-open range queries and ordering
- Share totals per instrument
- User registration (duplicate email)
- Instrument lookup by normalized symbol
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.models import RewardEntry, User
from app.services.exceptions import (
    InstrumentNotFoundError,
    StoreError,
    UserExistsError,
    ValidationError,
)
from app.services.stores import InstrumentStore, LedgerStore, UserStore, normalize_symbol, validate_shares
from tests.conftest import create_instrument, create_reward, create_user, utc


def _count_rewards(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(RewardEntry))


# =============================================================================
# SHARE VALIDATION
# =============================================================================

class TestValidateShares:

    @pytest.mark.parametrize("raw, expected", [
        ("1", Decimal("1")),
        (2.5, Decimal("2.5")),
        (Decimal("0.00000001"), Decimal("0.00000001")),
    ])
    def test_accepts_positive_numbers(self, raw, expected):
        assert validate_shares(raw) == expected

    @pytest.mark.parametrize("raw", [None, 0, "0", "-1", "abc", "NaN", "Infinity"])
    def test_rejects_missing_or_non_positive(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            validate_shares(raw)
        assert exc_info.value.field == "shares"

    @pytest.mark.parametrize("raw", ["0.000000001", "1.123456789", Decimal("1E-9")])
    def test_rejects_more_than_eight_decimal_places(self, raw):
        with pytest.raises(ValidationError, match="decimal places") as exc_info:
            validate_shares(raw)
        assert exc_info.value.field == "shares"

    @pytest.mark.parametrize("raw", ["10000000000", "12345678901.5", "1E+12"])
    def test_rejects_more_than_ten_integer_digits(self, raw):
        with pytest.raises(ValidationError, match="integer digits") as exc_info:
            validate_shares(raw)
        assert exc_info.value.field == "shares"

    @pytest.mark.parametrize("raw, expected", [
        ("9999999999.99999999", Decimal("9999999999.99999999")),
        ("1.000000000", Decimal("1")),
        ("1E+3", Decimal("1000")),
    ])
    def test_accepts_values_the_column_holds_exactly(self, raw, expected):
        assert validate_shares(raw) == expected


# =============================================================================
# APPEND
# =============================================================================

class TestLedgerAppend:

    def test_append_persists_entry(self, db: Session, sample_user, sample_instrument):
        entry = LedgerStore(db).append(sample_user.id, sample_instrument.id, "2.5", utc(2024, 1, 1, 9))

        assert entry.id is not None
        assert entry.shares == Decimal("2.5")
        assert entry.rewarded_at == utc(2024, 1, 1, 9)
        assert entry.instrument.symbol == "RELIANCE"

    def test_zero_shares_writes_nothing(self, db: Session, sample_user, sample_instrument):
        with pytest.raises(ValidationError):
            LedgerStore(db).append(sample_user.id, sample_instrument.id, 0)

        assert _count_rewards(db) == 0

    def test_unknown_instrument_raises_not_found(self, db: Session, sample_user):
        with pytest.raises(InstrumentNotFoundError) as exc_info:
            LedgerStore(db).append(sample_user.id, 999, "1")

        assert exc_info.value.resource_id == 999
        assert _count_rewards(db) == 0

    def test_validation_happens_before_instrument_lookup(self, sample_user):
        db = MagicMock(spec=Session)

        with pytest.raises(ValidationError):
            LedgerStore(db).append(sample_user.id, 1, "-3")

        db.get.assert_not_called()
        db.add.assert_not_called()


# =============================================================================
# RANGE QUERIES
# =============================================================================

class TestLedgerRanges:

    @pytest.fixture
    def entries(self, db: Session, sample_user, sample_instrument):
        return [
            create_reward(db, sample_user, sample_instrument, "1", utc(2024, 1, 1, 23, 59)),
            create_reward(db, sample_user, sample_instrument, "2", utc(2024, 1, 2)),
            create_reward(db, sample_user, sample_instrument, "3", utc(2024, 1, 2, 12)),
            create_reward(db, sample_user, sample_instrument, "4", utc(2024, 1, 3)),
        ]

    def test_range_is_half_open(self, db: Session, sample_user, entries):
        found = LedgerStore(db).find_by_user_in_range(sample_user.id, utc(2024, 1, 2), utc(2024, 1, 3))
        assert [e.id for e in found] == [entries[1].id, entries[2].id]

    def test_open_lower_bound(self, db: Session, sample_user, entries):
        found = LedgerStore(db).find_by_user_in_range(sample_user.id, None, utc(2024, 1, 2))
        assert [e.id for e in found] == [entries[0].id]

    def test_adjacent_ranges_partition_the_ledger(self, db: Session, sample_user, entries):
        store = LedgerStore(db)
        boundary = utc(2024, 1, 2)
        before = store.find_by_user_in_range(sample_user.id, None, boundary)
        after = store.find_by_user_in_range(sample_user.id, boundary, None)

        assert sorted(e.id for e in before + after) == sorted(e.id for e in entries)
        assert not {e.id for e in before} & {e.id for e in after}

    def test_sorted_by_time_then_id(self, db: Session, sample_user, sample_instrument):
        stamp = utc(2024, 1, 5)
        second = create_reward(db, sample_user, sample_instrument, "1", stamp)
        first = create_reward(db, sample_user, sample_instrument, "1", utc(2024, 1, 4))
        third = create_reward(db, sample_user, sample_instrument, "1", stamp)

        found = LedgerStore(db).find_by_user_all(sample_user.id)
        assert [e.id for e in found] == [first.id, second.id, third.id]

    def test_other_users_are_excluded(self, db: Session, sample_user, sample_instrument, entries):
        other = create_user(db, email="other@example.com")
        create_reward(db, other, sample_instrument, "9", utc(2024, 1, 2))

        found = LedgerStore(db).find_by_user_all(sample_user.id)
        assert len(found) == len(entries)

    def test_shares_by_instrument(self, db: Session, sample_user, sample_instrument, entries):
        tcs = create_instrument(db, "TCS")
        create_reward(db, sample_user, tcs, "0.5", utc(2024, 1, 2, 6))

        totals = LedgerStore(db).shares_by_instrument(sample_user.id, utc(2024, 1, 2), utc(2024, 1, 3))

        assert [(t.symbol, t.total_shares) for t in totals] == [
            ("RELIANCE", Decimal("5")),
            ("TCS", Decimal("0.5")),
        ]

    def test_read_failure_becomes_store_error(self):
        db = MagicMock(spec=Session)
        db.scalars.side_effect = OperationalError("SELECT", {}, Exception("timeout"))

        with pytest.raises(StoreError):
            LedgerStore(db).find_by_user_all(1)


# =============================================================================
# USERS AND INSTRUMENTS
# =============================================================================

class TestUserStore:

    def test_create_and_get(self, db: Session):
        store = UserStore(db)
        user = store.create(name="Ravi", email="ravi@example.com")

        assert store.get(user.id).email == "ravi@example.com"
        assert user.created_at is not None

    def test_duplicate_email_raises(self, db: Session, sample_user):
        with pytest.raises(UserExistsError):
            UserStore(db).create(name="Copy", email=sample_user.email)

        # Session is still usable after the rollback
        assert db.scalar(select(func.count()).select_from(User)) == 1

    def test_get_unknown_is_none(self, db: Session):
        assert UserStore(db).get(42) is None


class TestInstrumentStore:

    def test_normalize_symbol(self):
        assert normalize_symbol("  reliance ") == "RELIANCE"

    def test_lookup_is_case_insensitive(self, db: Session, sample_instrument):
        assert InstrumentStore(db).get_by_symbol(" reliance").id == sample_instrument.id

    def test_unknown_symbol_is_none(self, db: Session):
        assert InstrumentStore(db).get_by_symbol("NOPE") is None

    def test_list_all_ordered_by_id(self, db: Session):
        created = [create_instrument(db, s) for s in ("TCS", "INFY", "HDFCBANK")]
        assert [i.symbol for i in InstrumentStore(db).list_all()] == [i.symbol for i in created]
