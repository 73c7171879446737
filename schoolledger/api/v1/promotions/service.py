"""
Promotion run lifecycle.

- One config per school per (academic_year, term). status moves
  SCHEDULED -> IN_PROGRESS -> COMPLETED | FAILED, or SCHEDULED -> CANCELLED.
- Execution claims the config with a conditional UPDATE (status must still be SCHEDULED),
  so two triggers racing for the same config cannot both run it.
- A COMPLETED run rolls the config over to the next cycle.
"""

import logging
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.core.audit_service import log_audit
from schoolledger.core.enums import PromotionStatus
from schoolledger.core.exceptions import NotFoundError, PromotionRunError, StateConflictError
from schoolledger.core.models import PromotionRunConfig
from schoolledger.core.tenant_service import get_tenant_or_404

from .engine import run_year_end_promotion
from .schemas import MAX_ACADEMIC_YEAR, PromotionRunConfigCreate, PromotionSummary, YearEndPromotionRequest

logger = logging.getLogger(__name__)

SYSTEM_ROLLOVER = "system-rollover"


def _dump_fee_structures(payload: PromotionRunConfigCreate):
    if not payload.fee_structures:
        return None
    return {grade: fs.model_dump(mode="json") for grade, fs in payload.fee_structures.items()}


def _add_one_year(d: date) -> date:
    try:
        return d.replace(year=d.year + 1)
    except ValueError:
        # 29 Feb
        return d.replace(year=d.year + 1, day=28)


def _request_from_config(config: PromotionRunConfig) -> YearEndPromotionRequest:
    return YearEndPromotionRequest(
        new_year=config.next_academic_year,
        new_term=config.next_term,
        carry_forward_balances=config.carry_forward_balances,
        fee_structures=config.fee_structures or {},
        default_fee_structure=config.default_fee_structure,
        promotion_notes=f"Automatic year-end promotion from {config.academic_year} Term {config.term}",
    )


async def _find_config_for_cycle(
    db: AsyncSession, tenant_id: UUID, academic_year: int, term: int
) -> Optional[PromotionRunConfig]:
    result = await db.execute(
        select(PromotionRunConfig).where(
            PromotionRunConfig.tenant_id == tenant_id,
            PromotionRunConfig.academic_year == academic_year,
            PromotionRunConfig.term == term,
        )
    )
    return result.scalar_one_or_none()


async def create_or_update_config(
    db: AsyncSession,
    tenant_id: UUID,
    payload: PromotionRunConfigCreate,
    created_by: Optional[str] = None,
) -> PromotionRunConfig:
    """Create the config for (academic_year, term) or update it while it is still SCHEDULED."""
    await get_tenant_or_404(db, tenant_id)
    config = await _find_config_for_cycle(db, tenant_id, payload.academic_year, payload.term)

    if config is not None:
        if config.status != PromotionStatus.SCHEDULED.value:
            raise StateConflictError(
                f"Promotion config for {payload.academic_year} Term {payload.term} is {config.status} and cannot be changed"
            )
        logger.info("Updating promotion config for tenant %s: %s Term %s", tenant_id, payload.academic_year, payload.term)
    else:
        config = PromotionRunConfig(
            tenant_id=tenant_id,
            academic_year=payload.academic_year,
            term=payload.term,
            status=PromotionStatus.SCHEDULED.value,
            created_by=created_by,
        )
        db.add(config)
        logger.info("Creating promotion config for tenant %s: %s Term %s", tenant_id, payload.academic_year, payload.term)

    config.end_of_year_date = payload.end_of_year_date
    config.next_academic_year = payload.next_academic_year
    config.next_term = payload.next_term
    config.carry_forward_balances = payload.carry_forward_balances
    config.fee_structures = _dump_fee_structures(payload)
    config.default_fee_structure = (
        payload.default_fee_structure.model_dump(mode="json") if payload.default_fee_structure else None
    )
    config.notes = payload.notes
    config.is_active = True

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise StateConflictError(
            f"Promotion config for {payload.academic_year} Term {payload.term} already exists"
        )
    await db.refresh(config)
    return config


async def list_configs(
    db: AsyncSession,
    tenant_id: UUID,
    status_filter: Optional[str] = None,
    include_inactive: bool = False,
) -> List[PromotionRunConfig]:
    stmt = select(PromotionRunConfig).where(PromotionRunConfig.tenant_id == tenant_id)
    if status_filter:
        stmt = stmt.where(PromotionRunConfig.status == status_filter.strip().upper())
    if not include_inactive:
        stmt = stmt.where(PromotionRunConfig.is_active.is_(True))
    stmt = stmt.order_by(PromotionRunConfig.academic_year.desc(), PromotionRunConfig.term.desc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_config(db: AsyncSession, tenant_id: UUID, config_id: UUID) -> PromotionRunConfig:
    result = await db.execute(
        select(PromotionRunConfig).where(
            PromotionRunConfig.id == config_id,
            PromotionRunConfig.tenant_id == tenant_id,
        )
    )
    config = result.scalar_one_or_none()
    if config is None:
        raise NotFoundError("Promotion config not found")
    return config


async def get_latest_active_config(db: AsyncSession, tenant_id: UUID) -> Optional[PromotionRunConfig]:
    result = await db.execute(
        select(PromotionRunConfig)
        .where(PromotionRunConfig.tenant_id == tenant_id, PromotionRunConfig.is_active.is_(True))
        .order_by(PromotionRunConfig.academic_year.desc(), PromotionRunConfig.term.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def deactivate_config(db: AsyncSession, tenant_id: UUID, config_id: UUID) -> PromotionRunConfig:
    """Soft delete. A running config cannot be deactivated."""
    config = await get_config(db, tenant_id, config_id)
    if config.status == PromotionStatus.IN_PROGRESS.value:
        raise StateConflictError("Cannot deactivate a promotion that is in progress")
    config.is_active = False
    await db.commit()
    await db.refresh(config)
    logger.info("Deactivated promotion config %s", config_id)
    return config


async def get_due_configs(db: AsyncSession, today: Optional[date] = None) -> List[PromotionRunConfig]:
    """Active SCHEDULED configs whose end-of-year date has been reached, across all schools."""
    today = today or date.today()
    result = await db.execute(
        select(PromotionRunConfig)
        .where(
            PromotionRunConfig.is_active.is_(True),
            PromotionRunConfig.status == PromotionStatus.SCHEDULED.value,
            PromotionRunConfig.end_of_year_date <= today,
        )
        .order_by(PromotionRunConfig.end_of_year_date, PromotionRunConfig.created_at)
    )
    return list(result.scalars().all())


async def cancel_config(db: AsyncSession, tenant_id: UUID, config_id: UUID, reason: str) -> PromotionRunConfig:
    """SCHEDULED -> CANCELLED. Any other status is a conflict."""
    result = await db.execute(
        update(PromotionRunConfig)
        .where(
            PromotionRunConfig.id == config_id,
            PromotionRunConfig.tenant_id == tenant_id,
            PromotionRunConfig.status == PromotionStatus.SCHEDULED.value,
        )
        .values(status=PromotionStatus.CANCELLED.value, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        config = await get_config(db, tenant_id, config_id)
        raise StateConflictError(f"Can only cancel SCHEDULED promotions (current status: {config.status})")

    config = await db.get(PromotionRunConfig, config_id, populate_existing=True)
    config.append_note(f"CANCELLED: {reason}")
    await log_audit(
        db,
        tenant_id,
        "PromotionRunConfig",
        config.id,
        "CANCEL_PROMOTION",
        description=f"Cancelled promotion for {config.academic_year} Term {config.term}: {reason}",
        before_value=PromotionStatus.SCHEDULED.value,
        after_value=PromotionStatus.CANCELLED.value,
    )
    await db.commit()
    await db.refresh(config)
    logger.info("Cancelled promotion config %s: %s", config_id, reason)
    return config


async def trigger_config(db: AsyncSession, tenant_id: UUID, config_id: UUID) -> PromotionSummary:
    """Manual run of a school's own config."""
    config = await get_config(db, tenant_id, config_id)
    if config.status != PromotionStatus.SCHEDULED.value:
        raise StateConflictError(f"Promotion is {config.status}; only SCHEDULED promotions can be executed")
    return await execute_config(db, config.id)


async def _record_completion(db: AsyncSession, config_id: UUID, summary: PromotionSummary) -> PromotionRunConfig:
    config = await db.get(PromotionRunConfig, config_id, populate_existing=True)
    config.status = PromotionStatus.COMPLETED.value
    config.executed_at = datetime.utcnow()
    config.students_promoted = summary.promoted_count
    config.students_completed = summary.completed_count
    config.promotion_errors = summary.error_count
    config.append_note(summary.message)
    await log_audit(
        db,
        config.tenant_id,
        "PromotionRunConfig",
        config.id,
        "EXECUTE_PROMOTION",
        description=summary.message,
        before_value=PromotionStatus.IN_PROGRESS.value,
        after_value=PromotionStatus.COMPLETED.value,
    )
    await db.commit()
    return config


async def _record_failure(db: AsyncSession, config_id: UUID, message: str) -> None:
    await db.rollback()
    config = await db.get(PromotionRunConfig, config_id, populate_existing=True)
    config.status = PromotionStatus.FAILED.value
    config.executed_at = datetime.utcnow()
    config.append_note(f"FAILED: {message}")
    await log_audit(
        db,
        config.tenant_id,
        "PromotionRunConfig",
        config.id,
        "EXECUTE_PROMOTION",
        description=f"Promotion failed: {message}",
        before_value=PromotionStatus.IN_PROGRESS.value,
        after_value=PromotionStatus.FAILED.value,
    )
    await db.commit()


async def execute_config(db: AsyncSession, config_id: UUID) -> PromotionSummary:
    """
    Run the promotion for one config and record the outcome on it.

    Raises StateConflictError when the config is not SCHEDULED (nothing runs), and
    PromotionRunError when anything after the claim fails (the config is left FAILED,
    never IN_PROGRESS).
    """
    claimed = await db.execute(
        update(PromotionRunConfig)
        .where(
            PromotionRunConfig.id == config_id,
            PromotionRunConfig.status == PromotionStatus.SCHEDULED.value,
        )
        .values(status=PromotionStatus.IN_PROGRESS.value, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount == 0:
        await db.rollback()
        config = await db.get(PromotionRunConfig, config_id, populate_existing=True)
        if config is None:
            raise NotFoundError("Promotion config not found")
        raise StateConflictError(f"Promotion is {config.status}; only SCHEDULED promotions can be executed")
    await db.commit()

    tenant_id = None
    cycle_label = str(config_id)
    try:
        config = await db.get(PromotionRunConfig, config_id, populate_existing=True)
        tenant_id = config.tenant_id
        cycle_label = f"{config.academic_year} Term {config.term}"
        request = _request_from_config(config)
        logger.info("Executing promotion config %s for tenant %s (%s)", config_id, tenant_id, cycle_label)

        summary = await run_year_end_promotion(db, tenant_id, request)
        config = await _record_completion(db, config_id, summary)
    except Exception as exc:
        message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
        logger.exception("Promotion %s failed for tenant %s: %s", cycle_label, tenant_id, message)
        await _record_failure(db, config_id, message)
        raise PromotionRunError(f"Promotion failed for {cycle_label}: {message}") from exc

    logger.info("Promotion %s completed for tenant %s: %s", cycle_label, tenant_id, summary.message)

    try:
        await rollover_config(db, config)
    except Exception:
        await db.rollback()
        logger.exception("Failed to roll over promotion config %s", config_id)
    return summary


async def rollover_config(db: AsyncSession, config: PromotionRunConfig) -> Optional[PromotionRunConfig]:
    """
    Schedule the next cycle from a completed config. Returns None when a config for
    that cycle already exists, or when the cycle after it would fall past MAX_ACADEMIC_YEAR.
    """
    tenant_id = config.tenant_id
    academic_year = config.next_academic_year
    term = config.next_term

    if academic_year + 1 > MAX_ACADEMIC_YEAR:
        logger.warning(
            "Not rolling over promotion config %s: %s Term %s would promote into %s",
            config.id, academic_year, term, academic_year + 1,
        )
        return None

    if await _find_config_for_cycle(db, tenant_id, academic_year, term) is not None:
        logger.info("Promotion config already exists for %s Term %s, skipping rollover", academic_year, term)
        return None

    next_config = PromotionRunConfig(
        tenant_id=tenant_id,
        academic_year=academic_year,
        term=term,
        end_of_year_date=_add_one_year(config.end_of_year_date),
        next_academic_year=academic_year + 1,
        next_term=term,
        carry_forward_balances=config.carry_forward_balances,
        fee_structures=config.fee_structures,
        default_fee_structure=config.default_fee_structure,
        status=PromotionStatus.SCHEDULED.value,
        is_active=True,
        created_by=SYSTEM_ROLLOVER,
        notes=f"Auto-created from {config.academic_year} Term {config.term} promotion",
    )
    db.add(next_config)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Promotion config for %s Term %s was created concurrently, skipping rollover", academic_year, term)
        return None
    await db.refresh(next_config)
    logger.info(
        "Rolled over promotion config for tenant %s: %s Term %s due %s",
        tenant_id, academic_year, term, next_config.end_of_year_date,
    )
    return next_config
