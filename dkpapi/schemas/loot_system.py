from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from dkpapi.models.loot_system import LootSystemType
from dkpapi.schemas.points import MAX_POINT_AMOUNT


class LootSystemCreate(BaseModel):
    """루트 시스템 생성 요청"""

    name: str = Field(..., min_length=1, max_length=100, description="시스템 이름")
    system_type: LootSystemType = Field(LootSystemType.DKP, description="시스템 유형")
    description: Optional[str] = Field(None, description="설명")
    starting_points: int = Field(0, ge=0, le=MAX_POINT_AMOUNT, description="첫 지급 시 기본 포인트")
    decay_enabled: bool = Field(False, description="감쇠 사용 여부")
    decay_rate: Decimal = Field(
        Decimal("0"), ge=0, le=100, max_digits=5, decimal_places=2, description="감쇠율 (%)"
    )
    decay_minimum: int = Field(0, ge=0, le=MAX_POINT_AMOUNT, description="감쇠 하한")
    raid_attendance_points: int = Field(0, ge=0, le=MAX_POINT_AMOUNT, description="레이드 참여 포인트")
    siege_attendance_points: int = Field(0, ge=0, le=MAX_POINT_AMOUNT, description="공성 참여 포인트")
    boss_kill_points: int = Field(0, ge=0, le=MAX_POINT_AMOUNT, description="보스 처치 포인트")


class LootSystemUpdate(BaseModel):
    """루트 시스템 부분 수정 요청 (None 필드는 변경하지 않음)"""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    system_type: Optional[LootSystemType] = None
    description: Optional[str] = None
    starting_points: Optional[int] = Field(None, ge=0, le=MAX_POINT_AMOUNT)
    decay_enabled: Optional[bool] = None
    decay_rate: Optional[Decimal] = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)
    decay_minimum: Optional[int] = Field(None, ge=0, le=MAX_POINT_AMOUNT)
    raid_attendance_points: Optional[int] = Field(None, ge=0, le=MAX_POINT_AMOUNT)
    siege_attendance_points: Optional[int] = Field(None, ge=0, le=MAX_POINT_AMOUNT)
    boss_kill_points: Optional[int] = Field(None, ge=0, le=MAX_POINT_AMOUNT)


class LootSystemResponse(BaseModel):
    id: int
    group_id: str
    name: str
    system_type: LootSystemType
    description: Optional[str] = None
    is_active: bool
    starting_points: int
    decay_enabled: bool
    decay_rate: Decimal
    decay_minimum: int
    raid_attendance_points: int
    siege_attendance_points: int
    boss_kill_points: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
