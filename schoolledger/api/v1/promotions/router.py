from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.rbac import require_roles
from schoolledger.auth.schemas import CurrentUser
from schoolledger.core.exceptions import ServiceError
from schoolledger.db.session import get_db

from .engine import run_year_end_promotion
from .schemas import (
    CancelPromotionRequest,
    PromotionRunConfigCreate,
    PromotionRunConfigResponse,
    PromotionSummary,
    YearEndPromotionRequest,
)
from . import service

router = APIRouter(prefix="/api/v1/promotions", tags=["promotions"])


@router.post("/configs", response_model=PromotionRunConfigResponse, status_code=status.HTTP_201_CREATED)
async def create_or_update_config(
    payload: PromotionRunConfigCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles()),
) -> PromotionRunConfigResponse:
    """Create the promotion config for a cycle, or update it while still SCHEDULED. Admin only."""
    try:
        return await service.create_or_update_config(db, current_user.tenant_id, payload, current_user.actor_tag)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/configs", response_model=List[PromotionRunConfigResponse])
async def list_configs(
    status_filter: Optional[str] = Query(None, description="SCHEDULED, IN_PROGRESS, COMPLETED, FAILED, CANCELLED"),
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles("BURSAR")),
) -> List[PromotionRunConfigResponse]:
    return await service.list_configs(db, current_user.tenant_id, status_filter, include_inactive)


@router.get("/configs/latest", response_model=Optional[PromotionRunConfigResponse])
async def get_latest_config(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles("BURSAR")),
) -> Optional[PromotionRunConfigResponse]:
    return await service.get_latest_active_config(db, current_user.tenant_id)


@router.get("/configs/{config_id}", response_model=PromotionRunConfigResponse)
async def get_config(
    config_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles("BURSAR")),
) -> PromotionRunConfigResponse:
    try:
        return await service.get_config(db, current_user.tenant_id, config_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/configs/{config_id}/cancel", response_model=PromotionRunConfigResponse)
async def cancel_config(
    config_id: UUID,
    payload: CancelPromotionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles()),
) -> PromotionRunConfigResponse:
    """Cancel a SCHEDULED promotion. Admin only."""
    try:
        return await service.cancel_config(db, current_user.tenant_id, config_id, payload.reason)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/configs/{config_id}/execute", response_model=PromotionSummary)
async def execute_config(
    config_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles()),
) -> PromotionSummary:
    """Run a SCHEDULED promotion now instead of waiting for its end-of-year date. Admin only."""
    try:
        return await service.trigger_config(db, current_user.tenant_id, config_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/configs/{config_id}", response_model=PromotionRunConfigResponse)
async def deactivate_config(
    config_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles()),
) -> PromotionRunConfigResponse:
    try:
        return await service.deactivate_config(db, current_user.tenant_id, config_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/year-end", response_model=PromotionSummary)
async def year_end_promotion(
    payload: YearEndPromotionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles()),
) -> PromotionSummary:
    """
    Promote all students of the school immediately, without a config.
    Per-student failures are reported in the summary; the call itself still succeeds.
    """
    try:
        return await run_year_end_promotion(db, current_user.tenant_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
