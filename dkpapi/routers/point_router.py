"""
DKP 포인트 API 라우터

이 파일은 루트 시스템 하위의 포인트 엔드포인트를 정의합니다:

조회용 엔드포인트 (인증 필요):
- GET /loot-systems/{id}/points/leaderboard: 순위표
- GET /loot-systems/{id}/points/accounts/{character_id}: 캐릭터 계정
- GET /loot-systems/{id}/points/accounts/{character_id}/ledger: 캐릭터 원장
- GET /loot-systems/{id}/points/accounts/{character_id}/integrity: 정합성 검증

관리자용 엔드포인트 (is_admin=True):
- POST /loot-systems/{id}/points/award: 포인트 지급
- POST /loot-systems/{id}/points/deduct: 포인트 차감
- POST /loot-systems/{id}/points/award-bulk: 일괄 지급
- POST /loot-systems/{id}/points/activity: 활동 포인트 지급
"""

from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query

from dkpapi.config import settings
from dkpapi.containers import Container
from dkpapi.core.auth_middleware import get_current_actor, require_admin
from dkpapi.schemas.auth import Actor
from dkpapi.schemas.points import (
    ActivityAwardRequest,
    BulkAwardRequest,
    BulkAwardResponse,
    LeaderboardResponse,
    LedgerPageResponse,
    PointAccountResponse,
    PointsAdjustmentRequest,
    PointsIntegrityCheckResponse,
)
from dkpapi.services.point_service import PointService
from dkpapi.services.ranking_service import RankingService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/loot-systems/{system_id}/points", tags=["points"])


@router.post("/award", response_model=PointAccountResponse)
@inject
async def award_points(
    request: PointsAdjustmentRequest,
    system_id: int = Path(..., ge=1, description="루트 시스템 ID"),
    current_actor: Actor = Depends(require_admin),
    point_service: PointService = Depends(Provide[Container.services.point_service]),
) -> PointAccountResponse:
    """
    포인트 지급

    계정이 없으면 시스템의 starting_points 를 더해 새로 생성합니다.

    HTTP Status:
        200: 지급 완료
        404: 활성 시스템 없음 (LOOT_001)
        422: 잘못된 금액
        503: 저장소 사용 불가
    """
    logger.info(
        f"Actor {current_actor.id} awarding {request.amount} to {request.character_id} "
        f"in system {system_id}"
    )
    return point_service.award(
        system_id, request.character_id, request.amount, request.reason
    )


@router.post("/deduct", response_model=PointAccountResponse)
@inject
async def deduct_points(
    request: PointsAdjustmentRequest,
    system_id: int = Path(..., ge=1, description="루트 시스템 ID"),
    current_actor: Actor = Depends(require_admin),
    point_service: PointService = Depends(Provide[Container.services.point_service]),
) -> PointAccountResponse:
    """
    포인트 차감

    잔액보다 큰 금액은 잔액 0 으로 고정됩니다 (오류 아님).
    계정이 없으면 404 POINTS_002.
    """
    logger.info(
        f"Actor {current_actor.id} deducting {request.amount} from {request.character_id} "
        f"in system {system_id}"
    )
    return point_service.deduct(
        system_id, request.character_id, request.amount, request.reason
    )


@router.post("/award-bulk", response_model=BulkAwardResponse)
@inject
async def award_points_bulk(
    request: BulkAwardRequest,
    system_id: int = Path(..., ge=1, description="루트 시스템 ID"),
    current_actor: Actor = Depends(require_admin),
    point_service: PointService = Depends(Provide[Container.services.point_service]),
) -> BulkAwardResponse:
    """일괄 지급 (캐릭터별 개별 트랜잭션, 실패 시 이전 지급은 유지)"""
    accounts = point_service.award_bulk(
        system_id, request.character_ids, request.amount, request.reason
    )
    return BulkAwardResponse(accounts=accounts, awarded_count=len(accounts))


@router.post("/activity", response_model=BulkAwardResponse)
@inject
async def award_activity_points(
    request: ActivityAwardRequest,
    system_id: int = Path(..., ge=1, description="루트 시스템 ID"),
    current_actor: Actor = Depends(require_admin),
    point_service: PointService = Depends(Provide[Container.services.point_service]),
) -> BulkAwardResponse:
    """레이드/공성 참여, 보스 처치 등 시스템 설정값 기준 지급"""
    accounts = point_service.award_activity(
        system_id, request.character_ids, request.activity, request.reason
    )
    return BulkAwardResponse(accounts=accounts, awarded_count=len(accounts))


@router.get("/leaderboard", response_model=LeaderboardResponse)
@inject
async def get_leaderboard(
    system_id: int = Path(..., ge=1, description="루트 시스템 ID"),
    limit: Optional[int] = Query(None, ge=1, le=500, description="상위 N 명"),
    current_actor: Actor = Depends(get_current_actor),
    ranking_service: RankingService = Depends(Provide[Container.services.ranking_service]),
) -> LeaderboardResponse:
    """
    리더보드

    현재 포인트 내림차순이며 동점에도 순위를 압축하지 않습니다.
    priority_ratio 가 null 이면 사용 내역이 없는(uncapped) 캐릭터입니다.
    """
    return ranking_service.leaderboard(system_id, limit=limit)


@router.get("/accounts/{character_id}", response_model=PointAccountResponse)
@inject
async def get_account(
    system_id: int = Path(..., ge=1, description="루트 시스템 ID"),
    character_id: str = Path(..., min_length=1, description="캐릭터 ID"),
    current_actor: Actor = Depends(get_current_actor),
    point_service: PointService = Depends(Provide[Container.services.point_service]),
) -> PointAccountResponse:
    return point_service.get_account(system_id, character_id)


@router.get("/accounts/{character_id}/ledger", response_model=LedgerPageResponse)
@inject
async def get_account_ledger(
    system_id: int = Path(..., ge=1, description="루트 시스템 ID"),
    character_id: str = Path(..., min_length=1, description="캐릭터 ID"),
    limit: int = Query(
        settings.LEDGER_DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.LEDGER_MAX_PAGE_SIZE,
        description="페이지 크기",
    ),
    offset: int = Query(0, ge=0, description="오프셋"),
    current_actor: Actor = Depends(get_current_actor),
    point_service: PointService = Depends(Provide[Container.services.point_service]),
) -> LedgerPageResponse:
    """
    캐릭터 원장 조회 (최신순)

    사용 예시:
        GET .../ledger?limit=20&offset=0
    """
    return point_service.get_account_ledger(
        system_id, character_id, limit=limit, offset=offset
    )


@router.get(
    "/accounts/{character_id}/integrity", response_model=PointsIntegrityCheckResponse
)
@inject
async def verify_account_integrity(
    system_id: int = Path(..., ge=1, description="루트 시스템 ID"),
    character_id: str = Path(..., min_length=1, description="캐릭터 ID"),
    current_actor: Actor = Depends(require_admin),
    point_service: PointService = Depends(Provide[Container.services.point_service]),
) -> PointsIntegrityCheckResponse:
    """계정 누적값과 원장 합계 비교 (OK / MISMATCH)"""
    return point_service.verify_account_integrity(system_id, character_id)
