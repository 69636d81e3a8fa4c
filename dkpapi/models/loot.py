"""
루트 기록 데이터 모델

드랍된 아이템과 (선택적으로) 분배 대상/비용을 저장합니다.
distributed_at 이 설정되면 분배 완료 상태이며, 재분배는 먼저 분배 취소가 필요합니다.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dkpapi.models.base import BaseModel, IdType


class ItemRarity(str, enum.Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    HEROIC = "heroic"
    EPIC = "epic"
    LEGENDARY = "legendary"


class LootHistory(BaseModel):
    __tablename__ = "loot_history"
    __table_args__ = (
        CheckConstraint("dkp_cost >= 0", name="ck_loot_history_cost"),
        Index("ix_loot_history_system_dropped", "loot_system_id", "dropped_at"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    loot_system_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("loot_systems.id"), nullable=False
    )

    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    item_rarity: Mapped[ItemRarity] = mapped_column(
        Enum(ItemRarity, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    item_slot: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    item_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # boss_drop, siege, chest ...
    source_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    event_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    siege_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    awarded_to: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    awarded_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    dkp_cost: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    dropped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    distributed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
