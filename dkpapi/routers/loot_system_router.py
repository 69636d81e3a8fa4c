"""
루트 시스템 API 라우터

- POST /loot-systems: 시스템 생성 (기존 활성 시스템 비활성화)
- GET /loot-systems?group_id=: 그룹의 시스템 목록
- GET /loot-systems/active?group_id=: 그룹의 활성 시스템
- GET/PATCH /loot-systems/{id}: 조회 / 부분 수정
- POST /loot-systems/{id}/activate, /deactivate
- POST /loot-systems/{id}/decay: 감쇠 1회 실행 (외부 타이머가 호출)

조회는 인증된 사용자, 변경은 관리자(is_admin) 권한이 필요합니다.
"""

from typing import List

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query

from dkpapi.containers import Container
from dkpapi.core.auth_middleware import get_current_actor, require_admin
from dkpapi.schemas.auth import Actor
from dkpapi.schemas.loot_system import (
    LootSystemCreate,
    LootSystemResponse,
    LootSystemUpdate,
)
from dkpapi.schemas.points import DecayRunResponse
from dkpapi.services.decay_service import DecayService
from dkpapi.services.loot_system_service import LootSystemService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/loot-systems", tags=["loot-systems"])


@router.post("", response_model=LootSystemResponse, status_code=201)
@inject
async def create_loot_system(
    config: LootSystemCreate,
    group_id: str = Query(..., min_length=1, description="그룹(길드) ID"),
    current_actor: Actor = Depends(require_admin),
    loot_system_service: LootSystemService = Depends(
        Provide[Container.services.loot_system_service]
    ),
) -> LootSystemResponse:
    """
    루트 시스템 생성

    새 시스템은 활성 상태이며 같은 그룹의 기존 활성 시스템은 비활성화됩니다.

    HTTP Status:
        201: 생성됨
        409: 동시에 다른 활성 시스템이 생성됨
        422: 설정 값 오류
    """
    logger.info(f"Actor {current_actor.id} creating loot system for group {group_id}")
    return loot_system_service.create_system(group_id, config)


@router.get("", response_model=List[LootSystemResponse])
@inject
async def list_loot_systems(
    group_id: str = Query(..., min_length=1, description="그룹(길드) ID"),
    current_actor: Actor = Depends(get_current_actor),
    loot_system_service: LootSystemService = Depends(
        Provide[Container.services.loot_system_service]
    ),
) -> List[LootSystemResponse]:
    return loot_system_service.list_systems(group_id)


@router.get("/active", response_model=LootSystemResponse)
@inject
async def get_active_loot_system(
    group_id: str = Query(..., min_length=1, description="그룹(길드) ID"),
    current_actor: Actor = Depends(get_current_actor),
    loot_system_service: LootSystemService = Depends(
        Provide[Container.services.loot_system_service]
    ),
) -> LootSystemResponse:
    """그룹의 활성 시스템 (없으면 404 LOOT_001)"""
    return loot_system_service.get_active_system(group_id)


@router.get("/{system_id}", response_model=LootSystemResponse)
@inject
async def get_loot_system(
    system_id: int = Path(..., ge=1),
    current_actor: Actor = Depends(get_current_actor),
    loot_system_service: LootSystemService = Depends(
        Provide[Container.services.loot_system_service]
    ),
) -> LootSystemResponse:
    return loot_system_service.get_system(system_id)


@router.patch("/{system_id}", response_model=LootSystemResponse)
@inject
async def update_loot_system(
    update: LootSystemUpdate,
    system_id: int = Path(..., ge=1),
    current_actor: Actor = Depends(require_admin),
    loot_system_service: LootSystemService = Depends(
        Provide[Container.services.loot_system_service]
    ),
) -> LootSystemResponse:
    """설정 부분 수정 (보내지 않은 필드는 유지)"""
    return loot_system_service.update_system(system_id, update)


@router.post("/{system_id}/activate", response_model=LootSystemResponse)
@inject
async def activate_loot_system(
    system_id: int = Path(..., ge=1),
    current_actor: Actor = Depends(require_admin),
    loot_system_service: LootSystemService = Depends(
        Provide[Container.services.loot_system_service]
    ),
) -> LootSystemResponse:
    return loot_system_service.activate_system(system_id)


@router.post("/{system_id}/deactivate", response_model=LootSystemResponse)
@inject
async def deactivate_loot_system(
    system_id: int = Path(..., ge=1),
    current_actor: Actor = Depends(require_admin),
    loot_system_service: LootSystemService = Depends(
        Provide[Container.services.loot_system_service]
    ),
) -> LootSystemResponse:
    return loot_system_service.deactivate_system(system_id)


@router.post("/{system_id}/decay", response_model=DecayRunResponse)
@inject
async def run_decay(
    system_id: int = Path(..., ge=1),
    current_actor: Actor = Depends(require_admin),
    decay_service: DecayService = Depends(Provide[Container.services.decay_service]),
) -> DecayRunResponse:
    """
    감쇠 1회 실행

    스케줄러(EventBridge, cron 등)에서 주기적으로 호출합니다.
    decay_enabled 가 꺼져 있으면 아무 것도 변경하지 않습니다.
    """
    logger.info(f"Actor {current_actor.id} triggered decay for system {system_id}")
    return decay_service.apply_decay(system_id)
