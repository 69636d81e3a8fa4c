"""
포인트 감쇠 (Decay)

주기적 실행은 외부 타이머가 POST /loot-systems/{id}/decay 를 호출하는 방식이며,
이 서비스는 한 번의 실행만 담당합니다. 계정 단위로 원자적이고 계정 간에는 독립적입니다.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from dkpapi.core.exceptions import BaseAPIException
from dkpapi.database.session import store_operation
from dkpapi.schemas.loot_system import LootSystemResponse
from dkpapi.schemas.points import DecayRunResponse, PointAccountResponse
from dkpapi.services.point_service import PointService
from dkpapi.utils.date_utils import utcnow

logger = logging.getLogger(__name__)


def compute_decay_amount(current_points: int, decay_rate: Decimal) -> int:
    """floor(current_points * decay_rate / 100)"""
    return int(current_points * Decimal(decay_rate) // 100)


class DecayService:
    def __init__(self, db: Session, point_service: Optional[PointService] = None):
        self.db = db
        self.point_service = point_service or PointService(db)

    @staticmethod
    def _decay_amount(system: LootSystemResponse, account: PointAccountResponse) -> int:
        # 이미 하한 이하인 잔액은 감쇠 대상이 아님
        if account.current_points <= system.decay_minimum:
            return 0
        return compute_decay_amount(account.current_points, system.decay_rate)

    def decay_account(
        self, system_id: int, character_id: str
    ) -> Optional[PointAccountResponse]:
        """
        단일 계정 감쇠

        Returns:
            감쇠된 계정, 감쇠 대상이 아니면 None
            (감쇠량 0, 잔액이 이미 decay_minimum 이하)

        Raises:
            NoActiveSystemError: 시스템이 없거나 비활성
            AccountNotFoundError: 계정이 없음
        """
        with store_operation(self.db, "load decay policy"):
            system = self.point_service.require_active_system(system_id)
        account = self.point_service.get_account(system_id, character_id)

        amount = self._decay_amount(system, account)
        if amount <= 0:
            return None
        return self.point_service.decay(
            system_id, character_id, amount, floor=system.decay_minimum
        )

    def apply_decay(self, system_id: int) -> DecayRunResponse:
        """시스템 내 전체 계정 감쇠. decay_enabled 가 꺼져 있으면 아무 것도 하지 않는다."""
        with store_operation(self.db, "load decay targets"):
            system = self.point_service.require_active_system(system_id)
            accounts = (
                self.point_service.points_repo.list_accounts(system_id)
                if system.decay_enabled
                else []
            )

        if not system.decay_enabled:
            logger.info(f"Decay disabled for loot system {system_id}, skipping")
            return DecayRunResponse(
                loot_system_id=system_id, decay_enabled=False, ran_at=utcnow()
            )

        decayed = 0
        total_requested = 0
        failed: List[str] = []
        for account in accounts:
            amount = self._decay_amount(system, account)
            if amount <= 0:
                continue
            # 계정 단위 트랜잭션: 실패한 계정만 롤백되고 나머지는 계속 처리
            try:
                self.point_service.decay(
                    system_id, account.character_id, amount, floor=system.decay_minimum
                )
            except BaseAPIException as e:
                logger.error(
                    f"Decay failed for {account.character_id} in system {system_id}: {str(e)}"
                )
                failed.append(account.character_id)
                continue
            decayed += 1
            total_requested += amount

        logger.info(
            f"Decay run for system {system_id}: {decayed}/{len(accounts)} accounts, "
            f"{len(failed)} failed, "
            f"{total_requested} points requested at {system.decay_rate}%"
        )
        return DecayRunResponse(
            loot_system_id=system_id,
            decay_enabled=True,
            accounts_processed=len(accounts),
            accounts_decayed=decayed,
            total_decay_requested=total_requested,
            accounts_failed=len(failed),
            failed_character_ids=failed,
            ran_at=utcnow(),
        )
