"""
원장 엔진 (Ledger Engine)

계정 잔액을 바꾸는 모든 도메인 작업(지급, 차감, 일괄 지급, 활동 지급, 감쇠)은
이 서비스를 거쳐 PointsRepository.apply_delta 한 번으로 수행됩니다.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from dkpapi.config import settings
from dkpapi.core.exceptions import (
    AccountNotFoundError,
    InvalidAmountError,
    NoActiveSystemError,
    NotFoundError,
)
from dkpapi.database.session import store_operation
from dkpapi.models.points import LedgerEntryType
from dkpapi.repositories.loot_system_repository import LootSystemRepository
from dkpapi.repositories.points_repository import PointsRepository
from dkpapi.schemas.loot_system import LootSystemResponse
from dkpapi.schemas.points import (
    MAX_POINT_AMOUNT,
    ActivityType,
    LedgerPageResponse,
    PointAccountResponse,
    PointsIntegrityCheckResponse,
)
from dkpapi.utils.date_utils import utcnow

logger = logging.getLogger(__name__)

ACTIVITY_LABELS = {
    ActivityType.RAID_ATTENDANCE: "Raid attendance",
    ActivityType.SIEGE_ATTENDANCE: "Siege attendance",
    ActivityType.BOSS_KILL: "Boss kill",
}


class PointService:
    """DKP 지급/차감 비즈니스 로직을 담당하는 서비스"""

    def __init__(self, db: Session):
        self.db = db
        self.points_repo = PointsRepository(db)
        self.system_repo = LootSystemRepository(db)

    @staticmethod
    def _validate_amount(amount: int) -> None:
        if amount is None or amount <= 0:
            raise InvalidAmountError(
                f"Amount must be a positive integer, got {amount}",
                details={"amount": amount},
            )
        if amount > MAX_POINT_AMOUNT:
            raise InvalidAmountError(
                f"Amount must not exceed {MAX_POINT_AMOUNT}, got {amount}",
                details={"amount": amount, "max_amount": MAX_POINT_AMOUNT},
            )

    def require_active_system(self, system_id: int) -> LootSystemResponse:
        """변경 작업 대상 시스템 확인. 없거나 비활성이면 NoActiveSystemError"""
        system = self.system_repo.get_by_id(system_id)
        if system is None or not system.is_active:
            raise NoActiveSystemError(
                f"Loot system {system_id} is missing or inactive",
                details={"loot_system_id": system_id},
            )
        return system

    def get_system(self, system_id: int) -> LootSystemResponse:
        """조회 작업용 (비활성 시스템도 허용)"""
        system = self.system_repo.get_by_id(system_id)
        if system is None:
            raise NotFoundError(f"Loot system {system_id} not found")
        return system

    def award(
        self,
        system_id: int,
        character_id: str,
        amount: int,
        reason: str,
        *,
        commit: bool = True,
    ) -> PointAccountResponse:
        """포인트 지급

        계정이 없으면 starting_points + amount 로 생성된다.

        Raises:
            InvalidAmountError: amount <= 0
            NoActiveSystemError: 시스템이 없거나 비활성
        """
        self._validate_amount(amount)

        with store_operation(self.db, "award points"):
            system = self.require_active_system(system_id)
            account, entry = self.points_repo.apply_delta(
                system_id,
                character_id,
                amount,
                reason,
                starting_points=system.starting_points,
                entry_type=LedgerEntryType.AWARD,
                commit=commit,
            )

        logger.info(
            f"Awarded {amount} points to {character_id} in system {system_id} "
            f"(balance {account.current_points}, entry {entry.id})"
        )
        return account

    def deduct(
        self,
        system_id: int,
        character_id: str,
        amount: int,
        reason: str,
        *,
        commit: bool = True,
    ) -> PointAccountResponse:
        """포인트 차감

        잔액보다 큰 금액은 오류 없이 잔액 0 으로 고정되며, 원장에는 요청 금액(-amount)이 남는다.

        Raises:
            InvalidAmountError: amount <= 0
            AccountNotFoundError: 계정이 없음 (획득 전 사용 불가)
            NoActiveSystemError: 시스템이 없거나 비활성
        """
        self._validate_amount(amount)

        with store_operation(self.db, "deduct points"):
            self.require_active_system(system_id)
            account, entry = self.points_repo.apply_delta(
                system_id,
                character_id,
                -amount,
                reason,
                floor=0,
                entry_type=LedgerEntryType.DEDUCT,
                commit=commit,
            )

        logger.info(
            f"Deducted {amount} points from {character_id} in system {system_id} "
            f"(balance {account.current_points}, entry {entry.id})"
        )
        return account

    def award_bulk(
        self, system_id: int, character_ids: List[str], amount: int, reason: str
    ) -> List[PointAccountResponse]:
        """여러 캐릭터에게 지급

        캐릭터마다 독립된 트랜잭션이다. 중간에 실패하면 앞선 지급은 유지되고 예외가 전파된다.
        중복 ID 는 한 번만 지급한다.
        """
        self._validate_amount(amount)

        accounts: List[PointAccountResponse] = []
        for character_id in dict.fromkeys(character_ids):
            accounts.append(self.award(system_id, character_id, amount, reason))

        logger.info(
            f"Bulk awarded {amount} points to {len(accounts)} characters in system {system_id}"
        )
        return accounts

    def award_activity(
        self,
        system_id: int,
        character_ids: List[str],
        activity: ActivityType,
        reason: Optional[str] = None,
    ) -> List[PointAccountResponse]:
        """시스템에 설정된 활동 포인트(레이드/공성 참여, 보스 처치)를 일괄 지급"""
        with store_operation(self.db, "load activity points"):
            system = self.require_active_system(system_id)

        amount = getattr(system, f"{activity.value}_points")
        if amount <= 0:
            raise InvalidAmountError(
                f"Loot system {system_id} awards no points for {activity.value}",
                details={"activity": activity.value, "configured_points": amount},
            )

        return self.award_bulk(
            system_id, character_ids, amount, reason or ACTIVITY_LABELS[activity]
        )

    def decay(
        self,
        system_id: int,
        character_id: str,
        amount: int,
        floor: int,
        *,
        commit: bool = True,
    ) -> PointAccountResponse:
        """감쇠 적용 (하한 floor). spent_total 은 변하지 않는다."""
        self._validate_amount(amount)

        with store_operation(self.db, "decay points"):
            account, _ = self.points_repo.apply_delta(
                system_id,
                character_id,
                -amount,
                settings.DECAY_REASON,
                floor=floor,
                entry_type=LedgerEntryType.DECAY,
                commit=commit,
            )
        return account

    def get_account(self, system_id: int, character_id: str) -> PointAccountResponse:
        with store_operation(self.db, "get point account"):
            account = self.points_repo.get_account(system_id, character_id)
        if account is None:
            raise AccountNotFoundError(
                f"Character {character_id} has no DKP record in system {system_id}",
                details={"loot_system_id": system_id, "character_id": character_id},
            )
        return account

    def get_account_ledger(
        self, system_id: int, character_id: str, limit: int = 50, offset: int = 0
    ) -> LedgerPageResponse:
        """계정 원장 조회 (최신순, 최대 LEDGER_MAX_PAGE_SIZE 건)"""
        limit = min(limit, settings.LEDGER_MAX_PAGE_SIZE)

        account = self.get_account(system_id, character_id)
        with store_operation(self.db, "get account ledger"):
            entries, total_count = self.points_repo.get_account_ledger(
                account.id, limit=limit, offset=offset
            )

        return LedgerPageResponse(
            account=account,
            entries=entries,
            total_count=total_count,
            has_next=offset + limit < total_count,
        )

    def verify_account_integrity(
        self, system_id: int, character_id: str
    ) -> PointsIntegrityCheckResponse:
        """
        계정 정합성 검증

        검증 방식:
        1. 지급 원장 합계 == earned_total
        2. 차감 원장 합계(절대값) == spent_total
        3. 최신 원장 항목의 balance_after == current_points
        """
        account = self.get_account(system_id, character_id)
        with store_operation(self.db, "verify account integrity"):
            totals = self.points_repo.get_ledger_totals(account.id)
            latest = self.points_repo.get_latest_entry(account.id)

        ledger_earned = totals.get(LedgerEntryType.AWARD, (0, 0))[0]
        ledger_spent = -totals.get(LedgerEntryType.DEDUCT, (0, 0))[0]
        entry_count = sum(count for _, count in totals.values())
        latest_balance = latest.balance_after if latest else None

        ok = (
            ledger_earned == account.earned_total
            and ledger_spent == account.spent_total
            and (latest_balance is None or latest_balance == account.current_points)
        )
        status = "OK" if ok else "MISMATCH"

        if status == "MISMATCH":
            logger.warning(
                f"Points integrity mismatch for {character_id} in system {system_id}"
            )
        else:
            logger.info(f"Points integrity verified for {character_id} in system {system_id}")

        return PointsIntegrityCheckResponse(
            status=status,
            account_id=account.id,
            character_id=character_id,
            earned_total=account.earned_total,
            ledger_earned=ledger_earned,
            spent_total=account.spent_total,
            ledger_spent=ledger_spent,
            current_points=account.current_points,
            latest_balance_after=latest_balance,
            entry_count=entry_count,
            verified_at=utcnow(),
        )
