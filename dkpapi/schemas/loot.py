from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from dkpapi.models.loot import ItemRarity
from dkpapi.schemas.points import MAX_POINT_AMOUNT


class LootItem(BaseModel):
    """드랍 아이템 정보"""

    item_name: str = Field(..., min_length=1, max_length=200, description="아이템 이름")
    item_rarity: ItemRarity = Field(..., description="등급")
    item_slot: Optional[str] = Field(None, max_length=50)
    item_description: Optional[str] = None
    source_type: Optional[str] = Field(None, max_length=50, description="드랍 출처 유형")
    source_name: Optional[str] = Field(None, max_length=200, description="드랍 출처 이름")
    event_id: Optional[str] = Field(None, max_length=64)
    siege_id: Optional[str] = Field(None, max_length=64)
    notes: Optional[str] = None


class LootAward(BaseModel):
    """분배 대상과 비용"""

    character_id: str = Field(..., min_length=1, max_length=64, description="캐릭터 ID")
    cost: int = Field(0, ge=0, le=MAX_POINT_AMOUNT, description="DKP 비용 (0 = 무료 분배)")


class RecordDropRequest(BaseModel):
    item: LootItem
    award: Optional[LootAward] = Field(None, description="드랍과 동시에 분배할 경우")


class DistributeRequest(LootAward):
    pass


class UndistributeRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=255, description="분배 취소 사유")


class LootRecordResponse(BaseModel):
    id: int
    loot_system_id: int
    item_name: str
    item_rarity: ItemRarity
    item_slot: Optional[str] = None
    item_description: Optional[str] = None
    source_type: Optional[str] = None
    source_name: Optional[str] = None
    event_id: Optional[str] = None
    siege_id: Optional[str] = None
    notes: Optional[str] = None
    awarded_to: Optional[str] = None
    awarded_by: Optional[str] = None
    dkp_cost: int = 0
    dropped_at: datetime
    distributed_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def is_distributed(self) -> bool:
        return self.distributed_at is not None


class LootHistoryResponse(BaseModel):
    loot_system_id: int
    records: List[LootRecordResponse]
    total_count: int
    has_next: bool
