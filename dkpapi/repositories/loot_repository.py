"""
루트 기록 리포지토리

분배 상태 전환은 조건부 UPDATE (compare-and-set) 로 수행하여
같은 아이템이 동시에 두 번 분배되지 않도록 합니다.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from dkpapi.models.loot import ItemRarity
from dkpapi.models.loot import LootHistory as LootHistoryModel
from dkpapi.repositories.base import BaseRepository
from dkpapi.schemas.loot import LootRecordResponse


class LootRepository(BaseRepository[LootHistoryModel, LootRecordResponse]):
    def __init__(self, db: Session):
        super().__init__(LootHistoryModel, LootRecordResponse, db)

    def create_record(self, commit: bool = True, **fields) -> LootRecordResponse:
        return self.create(commit=commit, **fields)

    def mark_distributed(
        self,
        loot_id: int,
        character_id: str,
        awarded_by: Optional[str],
        cost: int,
        distributed_at: datetime,
        commit: bool = True,
    ) -> Optional[LootRecordResponse]:
        """미분배 상태일 때만 분배 처리. 이미 분배된 경우 None"""
        self._ensure_clean_session()
        stmt = (
            update(self.model_class)
            .where(
                self.model_class.id == loot_id,
                self.model_class.distributed_at.is_(None),
            )
            .values(
                awarded_to=character_id,
                awarded_by=awarded_by,
                dkp_cost=cost,
                distributed_at=distributed_at,
                updated_at=distributed_at,
            )
            .returning(self.model_class)
        )
        instance = self.db.scalars(
            stmt, execution_options={"populate_existing": True}
        ).one_or_none()
        if instance is None:
            return None
        result = self._to_schema(instance)
        self._finish(commit)
        return result

    def clear_distribution(
        self,
        loot_id: int,
        expected_awarded_to: Optional[str],
        expected_cost: int,
        cleared_at: datetime,
        commit: bool = True,
    ) -> Optional[LootRecordResponse]:
        """읽은 시점의 분배 정보가 그대로일 때만 분배 취소. 변경되었으면 None"""
        self._ensure_clean_session()
        conditions = [
            self.model_class.id == loot_id,
            self.model_class.distributed_at.is_not(None),
            self.model_class.dkp_cost == expected_cost,
        ]
        if expected_awarded_to is None:
            conditions.append(self.model_class.awarded_to.is_(None))
        else:
            conditions.append(self.model_class.awarded_to == expected_awarded_to)

        stmt = (
            update(self.model_class)
            .where(*conditions)
            .values(
                awarded_to=None,
                awarded_by=None,
                dkp_cost=0,
                distributed_at=None,
                updated_at=cleared_at,
            )
            .returning(self.model_class)
        )
        instance = self.db.scalars(
            stmt, execution_options={"populate_existing": True}
        ).one_or_none()
        if instance is None:
            return None
        result = self._to_schema(instance)
        self._finish(commit)
        return result

    def get_history(
        self,
        system_id: int,
        limit: int = 50,
        offset: int = 0,
        rarity: Optional[ItemRarity] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[LootRecordResponse], int]:
        """드랍 시각 최신순 루트 기록 + 전체 건수"""
        self._ensure_clean_session()
        query = self.db.query(self.model_class).filter(
            self.model_class.loot_system_id == system_id
        )
        if rarity is not None:
            query = query.filter(self.model_class.item_rarity == rarity)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    self.model_class.item_name.ilike(pattern),
                    self.model_class.source_name.ilike(pattern),
                    self.model_class.awarded_to.ilike(pattern),
                )
            )

        total_count = query.count()
        instances = (
            query.order_by(self.model_class.dropped_at.desc(), self.model_class.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return self._to_schemas(instances), total_count
