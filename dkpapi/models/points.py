"""
DKP 포인트 데이터 모델

- DKPPoints: 캐릭터별 잔액 + 누적 획득/사용 포인트 (시스템당 캐릭터 1행)
- DKPTransaction: 잔액 변동마다 1건씩 쌓이는 추가 전용(append-only) 원장

원장의 amount 는 요청된 값(부호 포함)을 그대로 기록합니다.
차감으로 잔액이 0 미만이 되면 잔액은 0 으로 고정되지만 원장은 요청 금액을 남기므로,
원장 합계와 잔액이 다를 수 있습니다. balance_after 로 실제 반영된 잔액을 추적합니다.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from dkpapi.models.base import BaseModel, IdType


class LedgerEntryType(str, enum.Enum):
    AWARD = "award"
    DEDUCT = "deduct"
    DECAY = "decay"


class DKPPoints(BaseModel):
    """캐릭터 포인트 계정 (PointAccount)"""

    __tablename__ = "dkp_points"
    __table_args__ = (
        UniqueConstraint(
            "loot_system_id", "character_id", name="uq_dkp_points_system_character"
        ),
        CheckConstraint("current_points >= 0", name="ck_dkp_points_non_negative"),
        CheckConstraint("earned_total >= 0", name="ck_dkp_points_earned"),
        CheckConstraint("spent_total >= 0", name="ck_dkp_points_spent"),
        Index("ix_dkp_points_leaderboard", "loot_system_id", "current_points"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    loot_system_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("loot_systems.id"), nullable=False
    )
    # 캐릭터 디렉터리의 ID (소프트 참조, 존재 여부는 검증하지 않음)
    character_id: Mapped[str] = mapped_column(String(64), nullable=False)

    current_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    earned_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    spent_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # NULL = 사용 내역 없음 (uncapped)
    priority_ratio: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    last_earned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_spent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_decay_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class DKPTransaction(BaseModel):
    """포인트 원장 (LedgerEntry) - 생성 후 수정/삭제 없음"""

    __tablename__ = "dkp_transactions"
    __table_args__ = (
        CheckConstraint("amount <> 0", name="ck_dkp_transactions_amount_nonzero"),
        Index("ix_dkp_transactions_account", "dkp_points_id", "id"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    dkp_points_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("dkp_points.id"), nullable=False
    )
    # 양수 = 획득, 음수 = 사용/감쇠 (요청 금액 그대로)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    entry_type: Mapped[LedgerEntryType] = mapped_column(
        Enum(LedgerEntryType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    # 이 거래 반영 직후의 계정 잔액
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
