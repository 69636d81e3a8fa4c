import logging
from typing import Optional

from sqlalchemy.orm import Session

from dkpapi.core.exceptions import NotFoundError
from dkpapi.database.session import store_operation
from dkpapi.repositories.loot_system_repository import LootSystemRepository
from dkpapi.repositories.points_repository import PointsRepository
from dkpapi.schemas.points import LeaderboardResponse, RankedAccount
from dkpapi.utils.priority import compute_priority_ratio

logger = logging.getLogger(__name__)


class RankingService:
    """시스템 내 캐릭터 순위 (리더보드)"""

    def __init__(self, db: Session):
        self.db = db
        self.points_repo = PointsRepository(db)
        self.system_repo = LootSystemRepository(db)

    def leaderboard(
        self, system_id: int, limit: Optional[int] = None
    ) -> LeaderboardResponse:
        """
        현재 포인트 내림차순 순위

        - 동점은 계정 생성 순서(id)로 정렬하며 순위를 압축하지 않는다 (1, 2, 3, 4)
        - priority_ratio 는 저장값이 아닌 누적 합계에서 다시 계산한다
        - 분배 취소 환불은 지급으로 기록되어 earned_total 에 더해지고 spent_total 은 줄지 않는다.
          따라서 환불 받은 캐릭터의 비율은 올라간다 (획득 100, 사용 50, 50 환불 -> 150/50 = 3.0)
        - participants / total_points 는 limit 과 무관하게 전체 계정 기준

        Raises:
            NotFoundError: 시스템이 존재하지 않음
        """
        with store_operation(self.db, "load leaderboard"):
            if self.system_repo.get_by_id(system_id) is None:
                raise NotFoundError(f"Loot system {system_id} not found")
            accounts = self.points_repo.list_accounts(system_id)

        entries = [
            RankedAccount(
                rank=position,
                account=account,
                priority_ratio=compute_priority_ratio(
                    account.earned_total, account.spent_total
                ),
            )
            for position, account in enumerate(accounts, start=1)
        ]
        if limit:
            entries = entries[:limit]

        logger.debug(f"Leaderboard for system {system_id}: {len(entries)}/{len(accounts)} entries")
        return LeaderboardResponse(
            loot_system_id=system_id,
            entries=entries,
            participants=len(accounts),
            total_points=sum(account.current_points for account in accounts),
        )
