from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from dkpapi.models.points import LedgerEntryType

# 포인트 컬럼은 PostgreSQL INTEGER (32bit)
MAX_POINT_AMOUNT = 2**31 - 1


class PointAccountResponse(BaseModel):
    """캐릭터 포인트 계정"""

    id: int = Field(..., description="계정 ID")
    loot_system_id: int = Field(..., description="루트 시스템 ID")
    character_id: str = Field(..., description="캐릭터 ID")
    current_points: int = Field(..., description="현재 잔액 (0 이상)")
    earned_total: int = Field(..., description="누적 획득 포인트")
    spent_total: int = Field(..., description="누적 사용 포인트")
    priority_ratio: Optional[float] = Field(None, description="획득/사용 비율 (None = 사용 내역 없음)")
    last_earned_at: Optional[datetime] = None
    last_spent_at: Optional[datetime] = None
    last_decay_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LedgerEntryResponse(BaseModel):
    """포인트 원장 항목"""

    id: int = Field(..., description="원장 항목 ID")
    dkp_points_id: int = Field(..., description="계정 ID")
    amount: int = Field(..., description="요청된 변동량 (양수: 획득, 음수: 사용/감쇠)")
    reason: str = Field(..., description="사유")
    entry_type: LedgerEntryType = Field(..., description="거래 유형")
    balance_after: int = Field(..., description="반영 후 잔액")
    created_at: Optional[datetime] = Field(None, description="생성 시간")

    class Config:
        from_attributes = True


class LedgerPageResponse(BaseModel):
    """계정 원장 조회 응답"""

    account: PointAccountResponse
    entries: List[LedgerEntryResponse] = Field(..., description="원장 항목 목록 (최신순)")
    total_count: int = Field(..., description="전체 항목 수")
    has_next: bool = Field(..., description="다음 페이지 존재 여부")


class PointsAdjustmentRequest(BaseModel):
    """포인트 지급/차감 요청"""

    character_id: str = Field(..., min_length=1, max_length=64, description="캐릭터 ID")
    amount: int = Field(..., gt=0, le=MAX_POINT_AMOUNT, description="포인트 금액")
    reason: str = Field(..., min_length=1, max_length=255, description="사유")


class BulkAwardRequest(BaseModel):
    """여러 캐릭터에게 동일 포인트 지급"""

    character_ids: List[str] = Field(..., min_length=1, description="캐릭터 ID 목록")
    amount: int = Field(..., gt=0, le=MAX_POINT_AMOUNT, description="포인트 금액")
    reason: str = Field(..., min_length=1, max_length=255, description="사유")

    @field_validator("character_ids")
    @classmethod
    def validate_character_ids(cls, v: List[str]) -> List[str]:
        if any(not cid for cid in v):
            raise ValueError("character_ids must not contain empty values")
        return v


class ActivityType(str, Enum):
    RAID_ATTENDANCE = "raid_attendance"
    SIEGE_ATTENDANCE = "siege_attendance"
    BOSS_KILL = "boss_kill"


class ActivityAwardRequest(BaseModel):
    """시스템에 설정된 활동 포인트 지급"""

    character_ids: List[str] = Field(..., min_length=1, description="캐릭터 ID 목록")
    activity: ActivityType = Field(..., description="활동 유형")
    reason: Optional[str] = Field(None, max_length=255, description="사유 (기본: 활동명)")


class BulkAwardResponse(BaseModel):
    accounts: List[PointAccountResponse]
    awarded_count: int


class RankedAccount(BaseModel):
    """리더보드 항목"""

    rank: int = Field(..., description="순위 (동점 압축 없음)")
    account: PointAccountResponse
    priority_ratio: Optional[float] = Field(None, description="획득/사용 비율 (None = uncapped)")


class LeaderboardResponse(BaseModel):
    loot_system_id: int
    entries: List[RankedAccount]
    participants: int = Field(..., description="참여 캐릭터 수")
    total_points: int = Field(..., description="전체 현재 포인트 합계")


class PointsIntegrityCheckResponse(BaseModel):
    """포인트 정합성 검증 응답"""

    status: str = Field(..., description="검증 상태 (OK, MISMATCH)")
    account_id: int
    character_id: str
    earned_total: int = Field(..., description="계정에 기록된 누적 획득")
    ledger_earned: int = Field(..., description="원장 획득 합계")
    spent_total: int = Field(..., description="계정에 기록된 누적 사용")
    ledger_spent: int = Field(..., description="원장 사용 합계 (절대값)")
    current_points: int
    latest_balance_after: Optional[int] = Field(None, description="최신 원장 항목의 반영 후 잔액")
    entry_count: int
    verified_at: datetime


class DecayRunResponse(BaseModel):
    """감쇠 일괄 적용 결과"""

    loot_system_id: int
    decay_enabled: bool
    accounts_processed: int = 0
    accounts_decayed: int = 0
    total_decay_requested: int = 0
    accounts_failed: int = Field(0, description="오류로 건너뛴 계정 수 (다른 계정 처리는 계속됨)")
    failed_character_ids: List[str] = Field(default_factory=list)
    ran_at: datetime
