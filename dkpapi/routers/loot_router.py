"""
루트 분배 API 라우터

- POST /loot-systems/{id}/loot: 드랍 기록 (선택적으로 즉시 분배)
- GET /loot-systems/{id}/loot: 루트 기록 조회 (rarity, search 필터)
- GET /loot/{loot_id}: 루트 기록 단건
- POST /loot/{loot_id}/distribute: 분배
- POST /loot/{loot_id}/undistribute: 분배 취소 (비용 환불)
"""

from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query

from dkpapi.config import settings
from dkpapi.containers import Container
from dkpapi.core.auth_middleware import get_current_actor, require_admin
from dkpapi.models.loot import ItemRarity
from dkpapi.schemas.auth import Actor
from dkpapi.schemas.loot import (
    DistributeRequest,
    LootHistoryResponse,
    LootRecordResponse,
    RecordDropRequest,
    UndistributeRequest,
)
from dkpapi.services.loot_service import LootService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["loot"])


@router.post(
    "/loot-systems/{system_id}/loot", response_model=LootRecordResponse, status_code=201
)
@inject
async def record_drop(
    request: RecordDropRequest,
    system_id: int = Path(..., ge=1, description="루트 시스템 ID"),
    current_actor: Actor = Depends(require_admin),
    loot_service: LootService = Depends(Provide[Container.services.loot_service]),
) -> LootRecordResponse:
    """
    드랍 기록

    award 를 함께 보내면 즉시 분배되며 cost > 0 이면 같은 트랜잭션에서 포인트가 차감됩니다.
    차감에 실패하면 드랍 기록도 남지 않습니다.
    """
    return loot_service.record_drop(
        system_id, request.item, award=request.award, awarded_by=current_actor.id
    )


@router.get("/loot-systems/{system_id}/loot", response_model=LootHistoryResponse)
@inject
async def get_loot_history(
    system_id: int = Path(..., ge=1, description="루트 시스템 ID"),
    limit: int = Query(
        settings.LOOT_HISTORY_DEFAULT_LIMIT,
        ge=1,
        le=settings.LOOT_HISTORY_MAX_LIMIT,
        description="페이지 크기",
    ),
    offset: int = Query(0, ge=0, description="오프셋"),
    rarity: Optional[ItemRarity] = Query(None, description="등급 필터"),
    search: Optional[str] = Query(None, max_length=100, description="아이템/출처/캐릭터 검색"),
    current_actor: Actor = Depends(get_current_actor),
    loot_service: LootService = Depends(Provide[Container.services.loot_service]),
) -> LootHistoryResponse:
    return loot_service.history(
        system_id, limit=limit, offset=offset, rarity=rarity, search=search
    )


@router.get("/loot/{loot_id}", response_model=LootRecordResponse)
@inject
async def get_loot(
    loot_id: int = Path(..., ge=1, description="루트 기록 ID"),
    current_actor: Actor = Depends(get_current_actor),
    loot_service: LootService = Depends(Provide[Container.services.loot_service]),
) -> LootRecordResponse:
    return loot_service.get_loot(loot_id)


@router.post("/loot/{loot_id}/distribute", response_model=LootRecordResponse)
@inject
async def distribute_loot(
    request: DistributeRequest,
    loot_id: int = Path(..., ge=1, description="루트 기록 ID"),
    current_actor: Actor = Depends(require_admin),
    loot_service: LootService = Depends(Provide[Container.services.loot_service]),
) -> LootRecordResponse:
    """
    미분배 아이템 분배

    HTTP Status:
        200: 분배 완료
        404: 루트 기록 없음 (LOOT_002) / 캐릭터 계정 없음 (POINTS_002)
        409: 이미 분배됨 (LOOT_003)
    """
    return loot_service.distribute(
        loot_id, request.character_id, request.cost, awarded_by=current_actor.id
    )


@router.post("/loot/{loot_id}/undistribute", response_model=LootRecordResponse)
@inject
async def undistribute_loot(
    request: UndistributeRequest,
    loot_id: int = Path(..., ge=1, description="루트 기록 ID"),
    current_actor: Actor = Depends(require_admin),
    loot_service: LootService = Depends(Provide[Container.services.loot_service]),
) -> LootRecordResponse:
    """분배 취소. 청구된 비용은 "Refund: <아이템>" 으로 환불됩니다."""
    logger.info(f"Actor {current_actor.id} undistributing loot {loot_id}")
    return loot_service.undistribute(loot_id, reason=request.reason)
