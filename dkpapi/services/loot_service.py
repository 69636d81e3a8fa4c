"""
루트 분배 엔진

아이템 드랍 기록, 분배(비용 차감), 분배 취소(환불)를 처리합니다.
루트 기록 변경과 포인트 차감/환불은 항상 하나의 트랜잭션으로 커밋됩니다.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from dkpapi.config import settings
from dkpapi.core.exceptions import (
    InvalidAmountError,
    LootAlreadyDistributedError,
    LootNotDistributedError,
    LootNotFoundError,
    NotFoundError,
)
from dkpapi.database.session import store_operation
from dkpapi.models.loot import ItemRarity
from dkpapi.repositories.loot_repository import LootRepository
from dkpapi.schemas.loot import (
    LootAward,
    LootHistoryResponse,
    LootItem,
    LootRecordResponse,
)
from dkpapi.schemas.points import MAX_POINT_AMOUNT
from dkpapi.services.point_service import PointService
from dkpapi.utils.date_utils import utcnow

logger = logging.getLogger(__name__)


class LootService:
    def __init__(self, db: Session, point_service: Optional[PointService] = None):
        self.db = db
        self.loot_repo = LootRepository(db)
        self.point_service = point_service or PointService(db)

    @staticmethod
    def _validate_cost(cost: int) -> None:
        if cost is None or cost < 0 or cost > MAX_POINT_AMOUNT:
            raise InvalidAmountError(
                f"Loot cost must be between 0 and {MAX_POINT_AMOUNT}, got {cost}",
                details={"cost": cost},
            )

    @staticmethod
    def _loot_reason(item_name: str) -> str:
        return f"{settings.LOOT_REASON_PREFIX}: {item_name}"

    @staticmethod
    def _refund_reason(item_name: str) -> str:
        return f"{settings.REFUND_REASON_PREFIX}: {item_name}"

    def _get_record(self, loot_id: int) -> LootRecordResponse:
        record = self.loot_repo.get_by_id(loot_id)
        if record is None:
            raise LootNotFoundError(
                f"Loot record {loot_id} not found", details={"loot_id": loot_id}
            )
        return record

    def record_drop(
        self,
        system_id: int,
        item: LootItem,
        award: Optional[LootAward] = None,
        awarded_by: Optional[str] = None,
    ) -> LootRecordResponse:
        """드랍 기록 (선택적으로 즉시 분배)

        award 가 있으면 분배 정보까지 기록하고 cost > 0 이면 같은 트랜잭션에서 차감한다.
        차감이 실패하면(예: AccountNotFoundError) 루트 기록도 남지 않는다.
        """
        if award is not None:
            self._validate_cost(award.cost)

        now = utcnow()
        fields = item.model_dump()
        if award is not None:
            fields.update(
                awarded_to=award.character_id,
                awarded_by=awarded_by,
                dkp_cost=award.cost,
                distributed_at=now,
            )

        with store_operation(self.db, "record loot drop"):
            self.point_service.require_active_system(system_id)
            record = self.loot_repo.create_record(
                commit=False, loot_system_id=system_id, dropped_at=now, **fields
            )
            if award is not None and award.cost > 0:
                self.point_service.deduct(
                    system_id,
                    award.character_id,
                    award.cost,
                    self._loot_reason(item.item_name),
                    commit=False,
                )
            self.db.commit()

        if award is not None:
            logger.info(
                f"Recorded {item.item_name} in system {system_id} and awarded to "
                f"{award.character_id} for {award.cost} points (loot {record.id})"
            )
        else:
            logger.info(f"Recorded {item.item_name} drop in system {system_id} (loot {record.id})")
        return record

    def distribute(
        self,
        loot_id: int,
        character_id: str,
        cost: int,
        awarded_by: Optional[str] = None,
    ) -> LootRecordResponse:
        """
        미분배 아이템 분배

        Raises:
            LootNotFoundError: 존재하지 않는 루트 기록
            LootAlreadyDistributedError: 이미 분배됨 (먼저 undistribute 필요)
            AccountNotFoundError: cost > 0 인데 캐릭터 계정이 없음
        """
        self._validate_cost(cost)

        with store_operation(self.db, "distribute loot"):
            record = self._get_record(loot_id)
            if record.is_distributed:
                raise LootAlreadyDistributedError(
                    f"Loot {loot_id} is already awarded to {record.awarded_to}",
                    details={"loot_id": loot_id, "awarded_to": record.awarded_to},
                )
            self.point_service.require_active_system(record.loot_system_id)

            updated = self.loot_repo.mark_distributed(
                loot_id,
                character_id=character_id,
                awarded_by=awarded_by,
                cost=cost,
                distributed_at=utcnow(),
                commit=False,
            )
            # 조회 이후 다른 요청이 먼저 분배한 경우
            if updated is None:
                raise LootAlreadyDistributedError(
                    f"Loot {loot_id} was distributed concurrently",
                    details={"loot_id": loot_id},
                )

            if cost > 0:
                self.point_service.deduct(
                    record.loot_system_id,
                    character_id,
                    cost,
                    self._loot_reason(record.item_name),
                    commit=False,
                )
            self.db.commit()

        logger.info(
            f"Distributed loot {loot_id} ({record.item_name}) to {character_id} for {cost} points"
        )
        return updated

    def undistribute(self, loot_id: int, reason: Optional[str] = None) -> LootRecordResponse:
        """
        분배 취소

        청구된 비용은 지급(award)으로 환불되며 원장에는 "Refund: <아이템>" 으로 남는다.
        원장은 수정되지 않으므로 환불은 earned_total 에도 더해진다.
        """
        with store_operation(self.db, "undistribute loot"):
            record = self._get_record(loot_id)
            if not record.is_distributed:
                raise LootNotDistributedError(
                    f"Loot {loot_id} has not been distributed", details={"loot_id": loot_id}
                )
            self.point_service.require_active_system(record.loot_system_id)

            cleared = self.loot_repo.clear_distribution(
                loot_id,
                expected_awarded_to=record.awarded_to,
                expected_cost=record.dkp_cost,
                cleared_at=utcnow(),
                commit=False,
            )
            if cleared is None:
                raise LootNotDistributedError(
                    f"Loot {loot_id} distribution changed concurrently",
                    details={"loot_id": loot_id},
                )

            if record.dkp_cost > 0 and record.awarded_to:
                self.point_service.award(
                    record.loot_system_id,
                    record.awarded_to,
                    record.dkp_cost,
                    self._refund_reason(record.item_name),
                    commit=False,
                )
            self.db.commit()

        logger.info(
            f"Undistributed loot {loot_id} from {record.awarded_to} "
            f"(refunded {record.dkp_cost}, reason: {reason or '-'})"
        )
        return cleared

    def history(
        self,
        system_id: int,
        limit: Optional[int] = None,
        offset: int = 0,
        rarity: Optional[ItemRarity] = None,
        search: Optional[str] = None,
    ) -> LootHistoryResponse:
        """루트 기록 조회 (드랍 시각 최신순)"""
        limit = min(limit or settings.LOOT_HISTORY_DEFAULT_LIMIT, settings.LOOT_HISTORY_MAX_LIMIT)

        with store_operation(self.db, "load loot history"):
            if self.point_service.system_repo.get_by_id(system_id) is None:
                raise NotFoundError(f"Loot system {system_id} not found")
            records, total_count = self.loot_repo.get_history(
                system_id, limit=limit, offset=offset, rarity=rarity, search=search
            )

        return LootHistoryResponse(
            loot_system_id=system_id,
            records=records,
            total_count=total_count,
            has_next=offset + limit < total_count,
        )

    def get_loot(self, loot_id: int) -> LootRecordResponse:
        with store_operation(self.db, "get loot"):
            return self._get_record(loot_id)
