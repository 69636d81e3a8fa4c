"""
루트 시스템(PointSystem) 데이터 모델

길드(그룹)별 포인트 경제 정책을 정의합니다.
그룹당 활성(is_active) 시스템은 최대 1개이며, 부분 유니크 인덱스로 강제합니다.
"""

import enum
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Enum,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from dkpapi.models.base import BaseModel, IdType


class LootSystemType(str, enum.Enum):
    DKP = "dkp"
    EPGP = "epgp"
    SUICIDE_KINGS = "suicide_kings"
    LOOT_COUNCIL = "loot_council"


class LootSystem(BaseModel):
    __tablename__ = "loot_systems"
    __table_args__ = (
        Index(
            "uq_loot_systems_group_active",
            "group_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
        CheckConstraint("starting_points >= 0", name="ck_loot_systems_starting_points"),
        CheckConstraint(
            "decay_rate >= 0 AND decay_rate <= 100", name="ck_loot_systems_decay_rate"
        ),
        CheckConstraint("decay_minimum >= 0", name="ck_loot_systems_decay_minimum"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    group_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    system_type: Mapped[LootSystemType] = mapped_column(
        Enum(LootSystemType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=LootSystemType.DKP,
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # 첫 지급 시 캐릭터에게 부여되는 기본 포인트
    starting_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # 감쇠 정책 (decay_rate 는 % 단위)
    decay_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    decay_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), default=Decimal("0"), nullable=False
    )
    decay_minimum: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # 활동별 지급 포인트
    raid_attendance_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    siege_attendance_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    boss_kill_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
