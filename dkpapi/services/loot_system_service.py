import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dkpapi.core.exceptions import ConflictError, NoActiveSystemError, NotFoundError
from dkpapi.database.session import store_operation
from dkpapi.repositories.loot_system_repository import LootSystemRepository
from dkpapi.schemas.loot_system import (
    LootSystemCreate,
    LootSystemResponse,
    LootSystemUpdate,
)

logger = logging.getLogger(__name__)


class LootSystemService:
    """그룹별 포인트 경제(루트 시스템) 설정 관리"""

    def __init__(self, db: Session):
        self.db = db
        self.system_repo = LootSystemRepository(db)

    def create_system(self, group_id: str, config: LootSystemCreate) -> LootSystemResponse:
        """루트 시스템 생성

        새 시스템은 활성 상태로 생성되며, 그룹의 기존 활성 시스템은 같은 트랜잭션에서 비활성화된다.

        Raises:
            ConflictError: 동시에 다른 활성 시스템이 생성된 경우
        """
        try:
            with store_operation(self.db, "create loot system"):
                system = self.system_repo.create_active(
                    group_id, commit=True, **config.model_dump()
                )
        except IntegrityError as e:
            logger.warning(f"Active loot system conflict for group {group_id}: {str(e)}")
            raise ConflictError(
                "Another active loot system was created for this group",
                details={"group_id": group_id},
            )

        logger.info(
            f"Created loot system {system.id} ({system.system_type.value}) for group {group_id}"
        )
        return system

    def update_system(self, system_id: int, update: LootSystemUpdate) -> LootSystemResponse:
        """부분 설정 수정 (None 필드는 그대로 유지)"""
        changes = update.model_dump(exclude_none=True)
        with store_operation(self.db, "update loot system"):
            if not changes:
                return self.get_system(system_id)
            system = self.system_repo.update(system_id, commit=True, **changes)

        if system is None:
            raise NotFoundError(f"Loot system {system_id} not found")

        logger.info(f"Updated loot system {system_id}: {sorted(changes)}")
        return system

    def get_system(self, system_id: int) -> LootSystemResponse:
        with store_operation(self.db, "get loot system"):
            system = self.system_repo.get_by_id(system_id)
        if system is None:
            raise NotFoundError(f"Loot system {system_id} not found")
        return system

    def get_active_system(self, group_id: str) -> LootSystemResponse:
        """그룹의 활성 시스템. 없으면 NoActiveSystemError"""
        with store_operation(self.db, "get active loot system"):
            system = self.system_repo.get_active_for_group(group_id)
        if system is None:
            raise NoActiveSystemError(
                f"Group {group_id} has no active loot system",
                details={"group_id": group_id},
            )
        return system

    def list_systems(self, group_id: str) -> List[LootSystemResponse]:
        with store_operation(self.db, "list loot systems"):
            return self.system_repo.list_for_group(group_id)

    def activate_system(self, system_id: int) -> LootSystemResponse:
        """대상 시스템 활성화 (같은 그룹의 기존 활성 시스템은 비활성화)"""
        try:
            with store_operation(self.db, "activate loot system"):
                system = self.system_repo.set_active(system_id, commit=True)
        except IntegrityError:
            raise ConflictError(
                "Active loot system changed concurrently",
                details={"loot_system_id": system_id},
            )

        if system is None:
            raise NotFoundError(f"Loot system {system_id} not found")

        logger.info(f"Activated loot system {system_id} for group {system.group_id}")
        return system

    def deactivate_system(self, system_id: int) -> LootSystemResponse:
        with store_operation(self.db, "deactivate loot system"):
            system = self.system_repo.set_inactive(system_id, commit=True)
        if system is None:
            raise NotFoundError(f"Loot system {system_id} not found")

        logger.info(f"Deactivated loot system {system_id}")
        return system
