"""
포인트 리포지토리 - 계정 잔액과 원장의 유일한 변경 경로

핵심 특징:
- apply_delta 는 잔액 변경을 DB 측 단일 문장으로 수행합니다
  (지급: INSERT ... ON CONFLICT DO UPDATE, 차감/감쇠: 조건부 UPDATE ... RETURNING).
  애플리케이션에서 잔액을 읽고 계산해서 다시 쓰지 않으므로 동시 요청 간 갱신 손실이 없습니다.
- 같은 트랜잭션 안에서 원장 항목을 정확히 1건 추가합니다.
- 원장 amount 는 요청 금액이며, 잔액은 하한(floor)에서 고정될 수 있습니다.
"""

from typing import Dict, List, Optional, Tuple

from sqlalchemy import case, func, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from dkpapi.core.exceptions import AccountNotFoundError, InvalidAmountError
from dkpapi.models.points import DKPPoints as DKPPointsModel
from dkpapi.models.points import DKPTransaction as DKPTransactionModel
from dkpapi.models.points import LedgerEntryType
from dkpapi.repositories.base import BaseRepository
from dkpapi.schemas.points import LedgerEntryResponse, PointAccountResponse
from dkpapi.utils.date_utils import utcnow
from dkpapi.utils.priority import compute_priority_ratio

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PointsRepository(BaseRepository[DKPPointsModel, PointAccountResponse]):
    """
    포인트 리포지토리

    주요 기능:
    1. 원자적 잔액 변경 (apply_delta)
    2. 추가 전용 원장 기록
    3. 리더보드용 계정 목록 조회
    4. 계정별 원장 조회 및 합계
    """

    def __init__(self, db: Session):
        super().__init__(DKPPointsModel, PointAccountResponse, db)

    def get_account(self, system_id: int, character_id: str) -> Optional[PointAccountResponse]:
        self._ensure_clean_session()
        instance = (
            self.db.query(self.model_class)
            .filter(
                self.model_class.loot_system_id == system_id,
                self.model_class.character_id == character_id,
            )
            .first()
        )
        return self._to_schema(instance)

    def list_accounts(
        self, system_id: int, limit: Optional[int] = None
    ) -> List[PointAccountResponse]:
        """현재 포인트 내림차순, 동점은 생성 순서(id) 유지"""
        self._ensure_clean_session()
        query = (
            self.db.query(self.model_class)
            .filter(self.model_class.loot_system_id == system_id)
            .order_by(self.model_class.current_points.desc(), self.model_class.id.asc())
        )
        if limit:
            query = query.limit(limit)
        return self._to_schemas(query.all())

    def apply_delta(
        self,
        system_id: int,
        character_id: str,
        delta: int,
        reason: str,
        *,
        starting_points: int = 0,
        floor: int = 0,
        entry_type: Optional[LedgerEntryType] = None,
        commit: bool = True,
    ) -> Tuple[PointAccountResponse, LedgerEntryResponse]:
        """
        잔액 변경의 유일한 진입점

        Args:
            delta: 양수 = 지급(계정이 없으면 starting_points + delta 로 생성),
                   음수 = 차감/감쇠(계정이 없으면 AccountNotFoundError)
            floor: 음수 delta 적용 시 잔액 하한 (차감 0, 감쇠 decay_minimum)
            entry_type: 원장 유형 (기본: 부호로 결정)
            commit: False 면 flush 만 하고 호출자의 트랜잭션에 합류

        Returns:
            (갱신된 계정, 추가된 원장 항목)
        """
        if delta == 0:
            raise InvalidAmountError("Delta must be non-zero")

        self._ensure_clean_session()
        if entry_type is None:
            entry_type = LedgerEntryType.AWARD if delta > 0 else LedgerEntryType.DEDUCT

        if delta > 0:
            account = self._increment(system_id, character_id, delta, starting_points)
        else:
            account = self._decrement(system_id, character_id, -delta, floor, entry_type)
            if account is None:
                raise AccountNotFoundError(
                    f"Character {character_id} has no DKP record in system {system_id}",
                    details={"loot_system_id": system_id, "character_id": character_id},
                )

        # 앞선 쓰기로 행이 잠겨 있으므로 같은 트랜잭션 안에서 비율을 갱신해도 안전
        ratio = compute_priority_ratio(account.earned_total, account.spent_total)
        if account.priority_ratio != ratio:
            account.priority_ratio = ratio

        entry = DKPTransactionModel(
            dkp_points_id=account.id,
            amount=delta,
            reason=reason,
            entry_type=entry_type,
            balance_after=account.current_points,
        )
        self.db.add(entry)
        self.db.flush()
        self.db.refresh(entry)
        self.db.refresh(account)

        result = (self._to_schema(account), LedgerEntryResponse.model_validate(entry))
        self._finish(commit)
        return result

    def _increment(
        self, system_id: int, character_id: str, amount: int, starting_points: int
    ) -> DKPPointsModel:
        """INSERT ... ON CONFLICT DO UPDATE 로 생성 또는 증가"""
        insert = _UPSERT_INSERTS.get(self.db.get_bind().dialect.name)
        if insert is None:
            raise NotImplementedError(
                f"Atomic upsert not supported for dialect {self.db.get_bind().dialect.name}"
            )

        now = utcnow()
        table = self.model_class.__table__
        stmt = insert(self.model_class).values(
            loot_system_id=system_id,
            character_id=character_id,
            current_points=starting_points + amount,
            earned_total=amount,
            spent_total=0,
            last_earned_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["loot_system_id", "character_id"],
            set_={
                "current_points": table.c.current_points + amount,
                "earned_total": table.c.earned_total + amount,
                "last_earned_at": now,
                "updated_at": now,
            },
        ).returning(self.model_class)

        return self.db.scalars(
            stmt, execution_options={"populate_existing": True}
        ).one()

    def _decrement(
        self,
        system_id: int,
        character_id: str,
        amount: int,
        floor: int,
        entry_type: LedgerEntryType,
    ) -> Optional[DKPPointsModel]:
        """조건부 UPDATE ... RETURNING 으로 하한을 지키며 감소"""
        now = utcnow()
        table = self.model_class.__table__
        proposed = table.c.current_points - amount
        values = {
            # 이미 하한 이하인 잔액은 올리지 않는다
            "current_points": case(
                (table.c.current_points <= floor, table.c.current_points),
                (proposed < floor, floor),
                else_=proposed,
            ),
            "updated_at": now,
        }
        if entry_type == LedgerEntryType.DECAY:
            values["last_decay_at"] = now
        else:
            values["spent_total"] = table.c.spent_total + amount
            values["last_spent_at"] = now

        stmt = (
            update(self.model_class)
            .where(
                self.model_class.loot_system_id == system_id,
                self.model_class.character_id == character_id,
            )
            .values(**values)
            .returning(self.model_class)
        )
        return self.db.scalars(
            stmt, execution_options={"populate_existing": True}
        ).one_or_none()

    def count_entries(self, account_id: int) -> int:
        self._ensure_clean_session()
        return (
            self.db.query(DKPTransactionModel)
            .filter(DKPTransactionModel.dkp_points_id == account_id)
            .count()
        )

    def get_account_ledger(
        self, account_id: int, limit: int = 50, offset: int = 0
    ) -> Tuple[List[LedgerEntryResponse], int]:
        """계정 원장 조회 (최신순) + 전체 건수"""
        self._ensure_clean_session()
        query = self.db.query(DKPTransactionModel).filter(
            DKPTransactionModel.dkp_points_id == account_id
        )
        total_count = self.count_entries(account_id)
        instances = (
            query.order_by(DKPTransactionModel.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [LedgerEntryResponse.model_validate(i) for i in instances], total_count

    def get_ledger_totals(self, account_id: int) -> Dict[LedgerEntryType, Tuple[int, int]]:
        """유형별 (amount 합계, 건수)"""
        self._ensure_clean_session()
        rows = (
            self.db.query(
                DKPTransactionModel.entry_type,
                func.coalesce(func.sum(DKPTransactionModel.amount), 0),
                func.count(DKPTransactionModel.id),
            )
            .filter(DKPTransactionModel.dkp_points_id == account_id)
            .group_by(DKPTransactionModel.entry_type)
            .all()
        )
        return {LedgerEntryType(row[0]): (int(row[1]), int(row[2])) for row in rows}

    def get_latest_entry(self, account_id: int) -> Optional[LedgerEntryResponse]:
        self._ensure_clean_session()
        instance = (
            self.db.query(DKPTransactionModel)
            .filter(DKPTransactionModel.dkp_points_id == account_id)
            .order_by(DKPTransactionModel.id.desc())
            .first()
        )
        return LedgerEntryResponse.model_validate(instance) if instance else None
