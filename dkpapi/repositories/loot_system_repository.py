"""
루트 시스템 리포지토리

그룹당 활성 시스템 1개 규칙:
- DB 부분 유니크 인덱스 (group_id WHERE is_active)
- 활성화 전환은 "기존 활성 해제 -> 대상 활성화" 를 같은 트랜잭션에서 수행
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from dkpapi.models.loot_system import LootSystem as LootSystemModel
from dkpapi.repositories.base import BaseRepository
from dkpapi.schemas.loot_system import LootSystemResponse


class LootSystemRepository(BaseRepository[LootSystemModel, LootSystemResponse]):
    def __init__(self, db: Session):
        super().__init__(LootSystemModel, LootSystemResponse, db)

    def get_active_for_group(self, group_id: str) -> Optional[LootSystemResponse]:
        """그룹의 활성 시스템 조회"""
        self._ensure_clean_session()
        instance = (
            self.db.query(self.model_class)
            .filter(
                self.model_class.group_id == group_id,
                self.model_class.is_active.is_(True),
            )
            .first()
        )
        return self._to_schema(instance)

    def list_for_group(self, group_id: str) -> List[LootSystemResponse]:
        self._ensure_clean_session()
        instances = (
            self.db.query(self.model_class)
            .filter(self.model_class.group_id == group_id)
            .order_by(self.model_class.id.desc())
            .all()
        )
        return self._to_schemas(instances)

    def _deactivate_group(self, group_id: str, exclude_id: Optional[int] = None) -> int:
        query = self.db.query(self.model_class).filter(
            self.model_class.group_id == group_id,
            self.model_class.is_active.is_(True),
        )
        if exclude_id is not None:
            query = query.filter(self.model_class.id != exclude_id)
        # 새 활성 행보다 먼저 반영되어야 부분 유니크 인덱스에 걸리지 않는다
        return query.update({"is_active": False}, synchronize_session="fetch")

    def create_active(self, group_id: str, commit: bool = True, **fields) -> LootSystemResponse:
        """그룹의 기존 활성 시스템을 해제하고 새 활성 시스템 생성"""
        self._ensure_clean_session()
        self._deactivate_group(group_id)
        return self.create(commit=commit, group_id=group_id, is_active=True, **fields)

    def set_active(self, system_id: int, commit: bool = True) -> Optional[LootSystemResponse]:
        """대상 시스템을 활성화 (같은 그룹의 다른 활성 시스템은 해제)"""
        self._ensure_clean_session()
        instance = self.db.get(self.model_class, system_id)
        if instance is None:
            return None

        self._deactivate_group(instance.group_id, exclude_id=instance.id)
        instance.is_active = True
        self.db.flush()
        self.db.refresh(instance)
        self._finish(commit)
        return self._to_schema(instance)

    def set_inactive(self, system_id: int, commit: bool = True) -> Optional[LootSystemResponse]:
        return self.update(system_id, commit=commit, is_active=False)
