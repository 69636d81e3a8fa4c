from decimal import Decimal
from unittest.mock import patch

import pytest

from dkpapi.core.exceptions import (
    AccountNotFoundError,
    NoActiveSystemError,
    StoreUnavailableError,
)
from dkpapi.models import DKPTransaction, LedgerEntryType
from dkpapi.services.decay_service import DecayService, compute_decay_amount
from dkpapi.services.point_service import PointService


@pytest.fixture
def point_service(db):
    return PointService(db)


@pytest.fixture
def decay_service(db, point_service):
    return DecayService(db, point_service=point_service)


class TestComputeDecayAmount:
    @pytest.mark.parametrize(
        "current, rate, expected",
        [
            (100, Decimal("10"), 10),
            (95, Decimal("10"), 9),
            (5, Decimal("10"), 0),
            (200, Decimal("2.5"), 5),
        ],
    )
    def test_floor_of_percentage(self, current, rate, expected):
        assert compute_decay_amount(current, rate) == expected


class TestDecayAccount:
    """단일 계정 감쇠 테스트"""

    def test_decay_reduces_balance_without_touching_spent(
        self, db, make_system, point_service, decay_service
    ):
        # Given
        system = make_system(decay_enabled=True, decay_rate=Decimal("10"))
        point_service.award(system.id, "char-1", 100, "Raid")

        # When
        account = decay_service.decay_account(system.id, "char-1")

        # Then
        assert account.current_points == 90
        assert account.spent_total == 0
        assert account.earned_total == 100
        assert account.last_decay_at is not None

        entry = db.query(DKPTransaction).order_by(DKPTransaction.id.desc()).first()
        assert entry.amount == -10
        assert entry.reason == "decay"
        assert entry.entry_type == LedgerEntryType.DECAY

    def test_decay_stops_at_minimum(self, make_system, point_service, decay_service):
        """감쇠 결과가 하한 미만이면 하한으로 고정"""
        system = make_system(decay_enabled=True, decay_rate=Decimal("50"), decay_minimum=80)
        point_service.award(system.id, "char-1", 100, "Raid")

        account = decay_service.decay_account(system.id, "char-1")

        assert account.current_points == 80

    def test_balance_at_or_below_minimum_is_skipped(
        self, db, make_system, point_service, decay_service
    ):
        system = make_system(decay_enabled=True, decay_rate=Decimal("10"), decay_minimum=50)
        point_service.award(system.id, "char-1", 40, "Raid")

        assert decay_service.decay_account(system.id, "char-1") is None
        assert db.query(DKPTransaction).count() == 1

    def test_zero_amount_is_skipped(self, make_system, point_service, decay_service):
        system = make_system(decay_enabled=True, decay_rate=Decimal("10"))
        point_service.award(system.id, "char-1", 5, "Raid")

        assert decay_service.decay_account(system.id, "char-1") is None

    def test_missing_account(self, make_system, decay_service):
        system = make_system(decay_enabled=True, decay_rate=Decimal("10"))

        with pytest.raises(AccountNotFoundError):
            decay_service.decay_account(system.id, "ghost")


class TestApplyDecay:
    """시스템 전체 감쇠 테스트"""

    def test_disabled_decay_is_noop(self, db, make_system, point_service, decay_service):
        system = make_system(decay_enabled=False, decay_rate=Decimal("10"))
        point_service.award(system.id, "char-1", 100, "Raid")

        result = decay_service.apply_decay(system.id)

        assert result.decay_enabled is False
        assert result.accounts_processed == 0
        assert point_service.get_account(system.id, "char-1").current_points == 100

    def test_apply_decay_to_all_accounts(self, make_system, point_service, decay_service):
        system = make_system(decay_enabled=True, decay_rate=Decimal("10"), decay_minimum=10)
        point_service.award(system.id, "rich", 200, "Raid")
        point_service.award(system.id, "mid", 50, "Raid")
        point_service.award(system.id, "poor", 10, "Raid")

        result = decay_service.apply_decay(system.id)

        assert result.accounts_processed == 3
        assert result.accounts_decayed == 2
        assert result.total_decay_requested == 25
        assert point_service.get_account(system.id, "rich").current_points == 180
        assert point_service.get_account(system.id, "mid").current_points == 45
        assert point_service.get_account(system.id, "poor").current_points == 10

    def test_failing_account_does_not_stop_run(self, make_system, point_service, decay_service):
        """한 계정의 감쇠가 실패해도 나머지 계정은 처리되고 실패 수가 집계된다"""
        # Given
        system = make_system(decay_enabled=True, decay_rate=Decimal("10"), decay_minimum=10)
        point_service.award(system.id, "rich", 200, "Raid")
        point_service.award(system.id, "mid", 50, "Raid")
        original_decay = point_service.decay

        def flaky_decay(system_id, character_id, amount, **kwargs):
            if character_id == "rich":
                raise StoreUnavailableError("Store unavailable while trying to decay")
            return original_decay(system_id, character_id, amount, **kwargs)

        # When
        with patch.object(point_service, "decay", side_effect=flaky_decay):
            result = decay_service.apply_decay(system.id)

        # Then
        assert result.accounts_processed == 2
        assert result.accounts_decayed == 1
        assert result.accounts_failed == 1
        assert result.failed_character_ids == ["rich"]
        assert result.total_decay_requested == 5
        assert point_service.get_account(system.id, "rich").current_points == 200
        assert point_service.get_account(system.id, "mid").current_points == 45

    def test_inactive_system(self, make_system, decay_service):
        system = make_system(is_active=False, decay_enabled=True)

        with pytest.raises(NoActiveSystemError):
            decay_service.apply_decay(system.id)
